from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

from .constants import CHAT_APOLOGY, CHAT_WELCOME
from .errors import FluentError
from .gateway import ModelGateway
from .pipeline import Session
from .schemas import ChatContext, ChatTurn

logger = logging.getLogger(__name__)


class ConversationalAssistant:
    """Free-form tutor chat grounded in the current session.

    History keeps the most recent ``history_limit`` turns. Model failures turn
    into an apology reply so the conversation stays usable.
    """

    def __init__(self, gateway: ModelGateway, session: Session, *, history_limit: int = 50) -> None:
        self.gateway = gateway
        self.session = session
        self._history: Deque[ChatTurn] = deque(maxlen=history_limit)

    @property
    def history(self) -> List[ChatTurn]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()

    def welcome(self) -> ChatTurn:
        return ChatTurn(role="assistant", text=CHAT_WELCOME)

    def snapshot_context(self) -> ChatContext:
        session = self.session
        feedback = session.feedback.to_markdown() if session.feedback is not None else None
        lesson = session.lesson.to_markdown() if session.lesson is not None else None
        return ChatContext(
            source_language=session.source_language,
            target_language=session.target_language,
            current_passage_text=session.passage_text or None,
            translation_attempts=session.attempts(),
            last_feedback_text=feedback,
            last_lesson_text=lesson,
        )

    async def send(self, message: str) -> Optional[ChatTurn]:
        text = (message or "").strip()
        if not text:
            return None
        self._history.append(ChatTurn(role="user", text=text))
        context = self.snapshot_context()
        try:
            answer = await self.gateway.chat(text, context)
        except FluentError as err:
            logger.warning("Chat request failed (%s): %s", err.code, err.message)
            answer = CHAT_APOLOGY
        if not answer:
            answer = CHAT_APOLOGY
        reply = ChatTurn(role="assistant", text=answer)
        self._history.append(reply)
        return reply
