"""Translation workflow for one learning session.

The pipeline owns the :class:`Session` and moves it through
``NO_PASSAGE -> PASSAGE_READY -> AWAITING_FEEDBACK -> FEEDBACK_READY -> LESSON_READY``.
Every model call captures the session version first; a result that comes back
after the passage or the languages changed is dropped with
:class:`StaleResultError` instead of being written into the new session.
"""

from __future__ import annotations

import enum
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar, Union

from .constants import LANGUAGE_NAMES
from .errors import InputValidationError, InvalidStateError, NoInputError, StaleResultError
from .gateway import ModelGateway, validate_level
from .schemas import (
    FeedbackResult,
    LessonResult,
    PassageFeedback,
    Sentence,
    TranslationAttempt,
)
from .story import get_story_params

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionState(str, enum.Enum):
    NO_PASSAGE = "no_passage"
    PASSAGE_READY = "passage_ready"
    AWAITING_FEEDBACK = "awaiting_feedback"
    FEEDBACK_READY = "feedback_ready"
    LESSON_READY = "lesson_ready"


class Session:
    def __init__(self, source_language: str, target_language: str, difficulty_level: str) -> None:
        self.source_language = source_language
        self.target_language = target_language
        self.difficulty_level = validate_level(difficulty_level)
        self.sentences: List[Sentence] = []
        self.sentence_translations: List[str] = []
        self.reference_translation: Optional[str] = None
        self.feedback: Optional[Union[PassageFeedback, FeedbackResult]] = None
        self.lesson: Optional[LessonResult] = None
        self.state = SessionState.NO_PASSAGE
        self.version = 0

    @property
    def passage_text(self) -> str:
        return " ".join(s.text for s in self.sentences)

    def attempts(self) -> List[TranslationAttempt]:
        return [
            TranslationAttempt(sentence_index=s.index, original_text=s.text, user_text=text.strip())
            for s, text in zip(self.sentences, self.sentence_translations)
            if text and text.strip()
        ]

    def settled_state(self) -> SessionState:
        if self.lesson is not None:
            return SessionState.LESSON_READY
        if self.feedback is not None:
            return SessionState.FEEDBACK_READY
        return SessionState.PASSAGE_READY if self.sentences else SessionState.NO_PASSAGE

    def reset_results(self) -> None:
        self.version += 1
        self.reference_translation = None
        self.feedback = None
        self.lesson = None
        self.state = self.settled_state()


class TranslationPipeline:
    def __init__(self, gateway: ModelGateway, session: Session) -> None:
        self.gateway = gateway
        self.session = session

    def _check_version(self, version: int) -> None:
        if self.session.version != version:
            logger.info("Discarding result for session version %d (now %d)", version, self.session.version)
            raise StaleResultError("The passage changed while the request was running")

    def _require_passage(self) -> None:
        if not self.session.sentences:
            raise InvalidStateError("No story available for translation")

    def set_languages(self, source: str, target: str) -> None:
        for name in (source, target):
            if name not in LANGUAGE_NAMES:
                raise InputValidationError(f"language must be one of {sorted(LANGUAGE_NAMES)}")
        if source == self.session.source_language and target == self.session.target_language:
            return
        self.session.source_language = source
        self.session.target_language = target
        self.session.reset_results()

    def swap_languages(self) -> None:
        self.set_languages(self.session.target_language, self.session.source_language)

    def set_level(self, level: str) -> None:
        self.session.difficulty_level = validate_level(level)

    def update_sentence_translation(self, index: int, text: str) -> None:
        if index < 0 or index >= len(self.session.sentences):
            raise InputValidationError(f"sentence index {index} is out of range")
        self.session.sentence_translations[index] = text or ""

    async def generate_passage(self, theme: str, custom_theme: Optional[str] = None) -> List[Sentence]:
        session = self.session
        theme_name, variant = get_story_params(theme, custom_theme)
        version = session.version
        language = LANGUAGE_NAMES.get(session.source_language, session.source_language)
        sentences = await self.gateway.generate_passage(language, session.difficulty_level, theme_name, variant)
        self._check_version(version)
        session.sentences = list(sentences)
        session.sentence_translations = [""] * len(sentences)
        session.reset_results()
        return session.sentences

    async def _run_feedback(self, call: Callable[[], Awaitable[T]]) -> T:
        session = self.session
        version = session.version
        session.state = SessionState.AWAITING_FEEDBACK
        try:
            result = await call()
        except BaseException:
            # Another submission may have settled the session meanwhile
            if session.version == version:
                session.state = session.settled_state()
            raise
        self._check_version(version)
        session.feedback = result
        session.lesson = None
        session.state = SessionState.FEEDBACK_READY
        return result

    async def process_translation(self, user_translation: str) -> PassageFeedback:
        self._require_passage()
        text = (user_translation or "").strip()
        if not text:
            raise NoInputError("Please enter your translation before submitting")
        session = self.session
        source, target = session.source_language, session.target_language
        version = session.version

        async def call() -> PassageFeedback:
            reference = session.reference_translation
            if reference is None:
                reference = await self.gateway.translate(session.passage_text, source, target)
            feedback = await self.gateway.rate_translation(session.passage_text, text, reference, source, target)
            if session.version == version:
                session.reference_translation = reference
            return PassageFeedback(feedback=feedback, reference_translation=reference, user_translation=text)

        return await self._run_feedback(call)

    async def process_sentence_translations(self, user_texts: Optional[Sequence[str]] = None) -> FeedbackResult:
        self._require_passage()
        session = self.session
        texts = list(session.sentence_translations if user_texts is None else user_texts)
        if len(texts) > len(session.sentences):
            raise InputValidationError("More translations than sentences in the passage")
        texts += [""] * (len(session.sentences) - len(texts))
        texts = [t or "" for t in texts]
        if not any(t.strip() for t in texts):
            raise NoInputError("Please translate at least one sentence first")
        originals = [s.text for s in session.sentences]
        source, target = session.source_language, session.target_language

        async def call() -> FeedbackResult:
            return await self.gateway.rate_sentence_batch(originals, texts, source, target)

        result = await self._run_feedback(call)
        session.sentence_translations = texts
        return result

    async def generate_sentence_mini_lesson(
        self,
        attempts: Optional[Sequence[TranslationAttempt]] = None,
    ) -> LessonResult:
        session = self.session
        attempts = list(session.attempts() if attempts is None else attempts)
        attempts = [a for a in attempts if a.user_text.strip()]
        if not attempts:
            raise NoInputError("Please translate at least one sentence first")
        if session.state not in (SessionState.FEEDBACK_READY, SessionState.LESSON_READY):
            raise InvalidStateError("Submit your translation for feedback before requesting a lesson")
        version = session.version
        lesson = await self.gateway.generate_lesson(attempts, session.source_language, session.target_language)
        self._check_version(version)
        session.lesson = lesson
        session.state = SessionState.LESSON_READY
        return lesson
