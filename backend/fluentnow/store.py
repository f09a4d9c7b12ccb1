from __future__ import annotations

import json
import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .models import StoredSetting
from .schemas import Preferences

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "gemini_api_key"
PREFERENCES_KEY = "user_preferences"


class PreferenceStore:
    """Key-value persistence for the API key and the user's preferences.

    Reads never fail: a missing or unreadable record yields ``None`` or the
    default preferences.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def _get(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as db:
                row = db.get(StoredSetting, key)
                return row.value if row is not None else None
        except SQLAlchemyError as err:
            logger.warning("Could not read stored %s: %s", key, err)
            return None

    def _put(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            row = db.get(StoredSetting, key)
            if row is None:
                db.add(StoredSetting(key=key, value=value))
            else:
                row.value = value
            db.commit()

    def _delete(self, key: str) -> None:
        with self._session_factory() as db:
            row = db.get(StoredSetting, key)
            if row is not None:
                db.delete(row)
                db.commit()

    def load_credential(self) -> Optional[str]:
        value = self._get(CREDENTIAL_KEY)
        return value.strip() if value and value.strip() else None

    def save_credential(self, api_key: str) -> None:
        self._put(CREDENTIAL_KEY, api_key.strip())

    def clear_credential(self) -> None:
        self._delete(CREDENTIAL_KEY)

    def load_preferences(self) -> Preferences:
        raw = self._get(PREFERENCES_KEY)
        if not raw:
            return Preferences()
        try:
            return Preferences.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as err:
            logger.warning("Could not load user preferences: %s", err)
            return Preferences()

    def save_preferences(self, preferences: Preferences) -> None:
        self._put(PREFERENCES_KEY, preferences.model_dump_json(by_alias=True))
