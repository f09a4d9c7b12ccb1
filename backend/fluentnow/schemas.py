from __future__ import annotations
import time
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_PREFERENCES


class Sentence(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    text: str


class TranslationAttempt(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sentence_index: int = Field(ge=0, alias="sentenceIndex")
    original_text: str = Field(alias="originalText")
    user_text: str = Field(alias="userText")


class SentenceFeedback(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sentence_index: int = Field(alias="sentenceIndex")
    grade: Literal["A", "B", "C", "D", "F"]
    narrative: str = ""
    reference_text: str = Field(default="", alias="referenceText")


class FeedbackResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    per_sentence: List[SentenceFeedback] = Field(default_factory=list, alias="perSentence")
    overall_narrative: str = Field(default="", alias="overallNarrative")
    translated_count: int = Field(ge=0, alias="translatedCount")
    total_count: int = Field(ge=0, alias="totalCount")

    def to_markdown(self) -> str:
        lines = [f"Translated {self.translated_count} of {self.total_count} sentences."]
        for item in self.per_sentence:
            lines.append(f"\nSentence {item.sentence_index + 1} (grade {item.grade}): {item.narrative}".rstrip())
            if item.reference_text:
                lines.append(f"Reference: {item.reference_text}")
        if self.overall_narrative:
            lines.append(f"\nOverall: {self.overall_narrative}")
        return "\n".join(lines)


class PassageFeedback(BaseModel):
    feedback: str
    reference_translation: str
    user_translation: str

    def to_markdown(self) -> str:
        return f"Reference translation: {self.reference_translation}\n\n{self.feedback}"


class VocabularyItem(BaseModel):
    word: str
    meaning: str
    example: str = ""


class CommonMistake(BaseModel):
    mistake: str
    correction: str
    example: str = ""


class Exercise(BaseModel):
    type: str = "practice"
    instruction: str = ""
    question: str
    answer: str
    explanation: str = ""


class MiniLesson(BaseModel):
    """Structured lesson as returned by the model.

    The four content fields are required; ``title`` falls back to a generic
    heading when the model leaves it out.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = "Mini Lesson"
    grammar_focus: str = Field(alias="grammarFocus")
    vocabulary: List[VocabularyItem]
    common_mistakes: List[CommonMistake] = Field(alias="commonMistakes")
    exercises: List[Exercise]

    def to_markdown(self) -> str:
        parts = [f"# {self.title}", "", "## Grammar focus", self.grammar_focus]
        if self.vocabulary:
            parts += ["", "## Vocabulary"]
            parts += [f"- **{v.word}**: {v.meaning}" + (f" ({v.example})" if v.example else "") for v in self.vocabulary]
        if self.common_mistakes:
            parts += ["", "## Common mistakes"]
            parts += [f"- {m.mistake} -> {m.correction}" + (f" ({m.example})" if m.example else "") for m in self.common_mistakes]
        if self.exercises:
            parts += ["", "## Exercises"]
            for n, ex in enumerate(self.exercises, start=1):
                parts.append(f"{n}. {ex.instruction} {ex.question}".replace("  ", " ").strip())
                parts.append(f"   Answer: {ex.answer}")
        return "\n".join(parts)


class StructuredLesson(BaseModel):
    kind: Literal["structured"] = "structured"
    lesson: MiniLesson

    def to_markdown(self) -> str:
        return self.lesson.to_markdown()


class FallbackLesson(BaseModel):
    kind: Literal["fallback"] = "fallback"
    markdown: str

    def to_markdown(self) -> str:
        return self.markdown


LessonResult = Union[StructuredLesson, FallbackLesson]


class ChatContext(BaseModel):
    source_language: Optional[str] = None
    target_language: Optional[str] = None
    current_passage_text: Optional[str] = None
    translation_attempts: List[TranslationAttempt] = Field(default_factory=list)
    last_feedback_text: Optional[str] = None
    last_lesson_text: Optional[str] = None
    timestamp: float = Field(default_factory=time.time)

    def has_content(self) -> bool:
        return bool(
            (self.source_language and self.target_language)
            or self.current_passage_text
            or self.translation_attempts
            or self.last_feedback_text
            or self.last_lesson_text
        )


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    text: str


class CredentialCheck(BaseModel):
    valid: bool
    # invalid-key, quota-exceeded, network-error or unknown
    error: Optional[str] = None
    message: Optional[str] = None


class Preferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_language: str = Field(default=DEFAULT_PREFERENCES["sourceLanguage"], alias="sourceLanguage")
    target_language: str = Field(default=DEFAULT_PREFERENCES["targetLanguage"], alias="targetLanguage")
    difficulty_level: str = Field(default=DEFAULT_PREFERENCES["difficultyLevel"], alias="difficultyLevel")
    theme: str = DEFAULT_PREFERENCES["theme"]
