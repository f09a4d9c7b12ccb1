from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text
from .db import Base


class StoredSetting(Base):
	__tablename__ = "stored_settings"
	# Single key-value pair such as the API key or the JSON preferences record
	key = Column(String(64), primary_key=True)
	value = Column(Text, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
