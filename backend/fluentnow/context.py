from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Request

from .assistant import ConversationalAssistant
from .constants import CEFR_ORDER, DEFAULT_PREFERENCES, LANGUAGE_NAMES
from .db import init_db, make_engine, make_session_factory
from .gateway import ModelGateway
from .gemini_client import GeminiClient
from .pipeline import Session, TranslationPipeline
from .schemas import CredentialCheck, Preferences
from .settings import Settings
from .store import PreferenceStore

logger = logging.getLogger(__name__)


def _sanitize(preferences: Preferences) -> Preferences:
    data = preferences.model_dump()
    if data["source_language"] not in LANGUAGE_NAMES:
        data["source_language"] = DEFAULT_PREFERENCES["sourceLanguage"]
    if data["target_language"] not in LANGUAGE_NAMES:
        data["target_language"] = DEFAULT_PREFERENCES["targetLanguage"]
    level = str(data["difficulty_level"]).upper()
    data["difficulty_level"] = level if level in CEFR_ORDER else DEFAULT_PREFERENCES["difficultyLevel"]
    return Preferences.model_validate(data)


class AppContext:
    """Everything one running app needs, wired together explicitly."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        store: Optional[PreferenceStore] = None,
    ) -> None:
        self.settings = settings
        if store is None:
            engine = make_engine(settings.database_url)
            init_db(engine)
            store = PreferenceStore(make_session_factory(engine))
        self.store = store
        self.preferences = _sanitize(store.load_preferences())

        def client_factory(api_key: str) -> GeminiClient:
            return GeminiClient(api_key, settings, transport=transport)

        api_key = store.load_credential() or settings.gemini_api_key
        self.gateway = ModelGateway(client_factory, api_key, model=settings.gemini_model)
        self.session = Session(
            self.preferences.source_language,
            self.preferences.target_language,
            self.preferences.difficulty_level,
        )
        self.pipeline = TranslationPipeline(self.gateway, self.session)
        self.assistant = ConversationalAssistant(
            self.gateway,
            self.session,
            history_limit=settings.chat_history_limit,
        )
        logger.info("App context ready (model configured: %s)", self.gateway.configured)

    async def validate_and_install_credential(self, api_key: str) -> CredentialCheck:
        check = await self.gateway.validate_credential(api_key)
        if check.valid:
            await self.gateway.set_credential(api_key)
            self.store.save_credential(api_key)
            logger.info("API key validated and stored")
        else:
            logger.info("API key rejected: %s", check.error)
        return check

    def update_preferences(self, preferences: Preferences) -> Preferences:
        preferences = _sanitize(preferences)
        self.pipeline.set_languages(preferences.source_language, preferences.target_language)
        self.pipeline.set_level(preferences.difficulty_level)
        self.preferences = preferences
        self.store.save_preferences(preferences)
        return preferences

    def remember_session_preferences(self, theme: Optional[str] = None) -> None:
        data = self.preferences.model_dump()
        data.update(
            source_language=self.session.source_language,
            target_language=self.session.target_language,
            difficulty_level=self.session.difficulty_level,
        )
        if theme:
            data["theme"] = theme
        self.preferences = Preferences.model_validate(data)
        self.store.save_preferences(self.preferences)

    async def aclose(self) -> None:
        await self.gateway.aclose()


def get_context(request: Request) -> AppContext:
    return request.app.state.context
