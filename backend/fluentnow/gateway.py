"""Model gateway: the single point of contact with the generative model.

Builds the prompts, issues the calls through a :class:`GeminiClient` and turns
the raw completions into validated application data. Transport and parse
failures surface as the typed errors from :mod:`fluentnow.errors`.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .constants import CEFR_ORDER, CEFR_SPECS, DEFAULT_GRADE, GRADES
from .errors import (
    AuthError,
    EmptyResponseError,
    InputValidationError,
    MalformedResponseError,
    NetworkError,
    NoInputError,
    RateLimitedError,
)
from .gemini_client import GeminiClient, resolve_model
from .schemas import (
    ChatContext,
    CredentialCheck,
    FallbackLesson,
    FeedbackResult,
    LessonResult,
    MiniLesson,
    Sentence,
    SentenceFeedback,
    StructuredLesson,
    TranslationAttempt,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], GeminiClient]

_LIST_MARKER = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s+")


def validate_level(level: Optional[str]) -> str:
    level_u = (level or "").strip().upper()
    if level_u not in CEFR_ORDER:
        raise InputValidationError(f"level must be one of {CEFR_ORDER}")
    return level_u


def _strip_fences(text: str) -> str:
    text = text.strip()
    fenced = re.match(r"^```[a-zA-Z]*\s*([\s\S]*?)\s*```$", text)
    if fenced:
        return fenced.group(1).strip()
    return text


def _extract_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        pass
    code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
    if code_block:
        try:
            return json.loads(code_block.group(1))
        except ValueError:
            pass
    for opener, closer in (("{", "}"), ("[", "]")):
        first = text.find(opener)
        last = text.rfind(closer)
        if first != -1 and last > first:
            try:
                return json.loads(text[first : last + 1])
            except ValueError:
                pass
    raise MalformedResponseError("Model did not return valid JSON.")


def _split_sentences(raw: str) -> List[str]:
    try:
        data = _extract_json(raw)
    except MalformedResponseError:
        lines = [_LIST_MARKER.sub("", line).strip() for line in _strip_fences(raw).splitlines()]
        return [line for line in lines if line]
    if isinstance(data, dict):
        data = data.get("sentences")
    if not isinstance(data, list):
        raise MalformedResponseError("Model response has no sentence list")
    sentences: List[str] = []
    for item in data:
        if isinstance(item, dict):
            item = item.get("text", "")
        text = str(item).strip() if item is not None else ""
        if text:
            sentences.append(text)
    return sentences


_LESSON_SECTIONS = (
    ("vocabulary", "Vocabulary", ("word", "meaning", "example")),
    ("commonMistakes", "Common mistakes", ("mistake", "correction", "example")),
    ("exercises", "Exercises", ("instruction", "question", "answer")),
)


def _partial_lesson_markdown(data: Dict[str, Any]) -> str:
    """Render whatever lesson fields a JSON reply carried as markdown."""
    parts = [f"# {str(data.get('title') or '').strip() or 'Mini Lesson'}"]
    focus = str(data.get("grammarFocus") or "").strip()
    if focus:
        parts += ["", "## Grammar focus", focus]
    for key, heading, fields in _LESSON_SECTIONS:
        items = data.get(key)
        if not isinstance(items, list):
            continue
        lines = []
        for item in items:
            if isinstance(item, dict):
                text = " - ".join(str(item[f]).strip() for f in fields if item.get(f))
            else:
                text = str(item).strip()
            if text:
                lines.append(f"- {text}")
        if lines:
            parts += ["", f"## {heading}"] + lines
    known = {"title", "grammarFocus"} | {key for key, _, _ in _LESSON_SECTIONS}
    for key, value in data.items():
        if key not in known and isinstance(value, str) and value.strip():
            parts += ["", f"**{key}**: {value.strip()}"]
    return "\n".join(parts)


def format_chat_context(context: Optional[ChatContext]) -> Optional[str]:
    """Render a context snapshot as a prompt block, or ``None`` if it is empty."""
    if context is None or not context.has_content():
        return None
    out = "CURRENT SESSION CONTEXT:\n\n"
    if context.source_language and context.target_language:
        out += f"Learning languages: {context.source_language} → {context.target_language}\n\n"
    if context.current_passage_text:
        out += f"STORY TO TRANSLATE:\n{context.current_passage_text}\n\n"
    if context.translation_attempts:
        out += "USER'S TRANSLATION ATTEMPTS:\n"
        for n, attempt in enumerate(context.translation_attempts, start=1):
            out += f'{n}. Original: "{attempt.original_text}"\n   User translation: "{attempt.user_text}"\n'
        out += "\n"
    if context.last_feedback_text:
        out += f"CURRENT FEEDBACK:\n{context.last_feedback_text}\n\n"
    if context.last_lesson_text:
        out += f"CURRENT MINI LESSON:\n{context.last_lesson_text}\n\n"
    out += "Please help the user based on their current learning session context above."
    return out


def _passage_prompt(language: str, level: str, theme: str, variant: str) -> str:
    spec = CEFR_SPECS[level]
    return (
        f"You are a language teacher writing reading material in {language}.\n"
        f"Write a short, coherent story for a CEFR {level} learner ({spec['description']}).\n"
        f"Theme: {theme}. Scenario: {variant}.\n\n"
        f"CEFR {level} requirements:\n"
        f"- Vocabulary: {spec['vocabulary']}\n"
        f"- Grammar: {spec['grammar']}\n"
        f"- Sentences: {spec['sentences']}\n"
        f"- Complexity: {spec['complexity']}\n\n"
        f"Write 6-8 sentences, entirely in {language}. No title, no translation, no commentary.\n"
        'Return ONLY a JSON object: {"sentences": ["first sentence", "second sentence", ...]}'
    )


def _translate_prompt(text: str, source: str, target: str) -> str:
    return (
        f"Translate the following {source} text into natural, accurate {target}.\n"
        "Keep the sentence order and meaning. Output ONLY the translation, no notes.\n\n"
        f"Text:\n{text}"
    )


def _rating_prompt(original: str, user_text: str, reference: str, source: str, target: str) -> str:
    return (
        f"You are a supportive {target} teacher reviewing a student's translation from {source} into {target}.\n\n"
        f"Original ({source}):\n{original}\n\n"
        f"Student translation:\n{user_text}\n\n"
        f"Reference translation:\n{reference}\n\n"
        "Compare the student translation with the original and the reference. Give qualitative feedback in markdown "
        "with these sections: **What you did well**, **Areas to improve** (quote the phrase and suggest a correction), "
        "**Key takeaways**. The reference is one valid option; accept other correct renderings. "
        "Do not give a numeric score."
    )


def _batch_prompt(pairs: Sequence[tuple[int, str, str]], source: str, target: str) -> str:
    lines = [
        f'[{index}] Original: "{original}"\n    Student: "{user_text}"'
        for index, original, user_text in pairs
    ]
    return (
        f"You are a supportive {target} teacher grading a student's sentence translations from {source} into {target}.\n"
        "For each sentence below (identified by its [index]) give a letter grade (A, B, C, D or F), short markdown "
        f"feedback, and your own reference translation into {target}.\n\n"
        + "\n".join(lines)
        + "\n\nAlso write a short overall comment in markdown.\n"
        'Return ONLY JSON: {"sentences": [{"index": integer, "grade": "A"|"B"|"C"|"D"|"F", '
        '"feedback": string, "reference": string}], "overall": string}'
    )


def _lesson_prompt(attempts: Sequence[TranslationAttempt], source: str, target: str) -> str:
    lines = [
        f'{n}. Original ({source}): "{a.original_text}"\n   Student ({target}): "{a.user_text}"'
        for n, a in enumerate(attempts, start=1)
    ]
    return (
        f"You are a {target} teacher. Based on the student's translations from {source} into {target} below, "
        "write a short personalised mini lesson that targets the patterns they struggled with.\n\n"
        + "\n".join(lines)
        + "\n\nReturn ONLY a JSON object with keys:\n"
        "title (string), grammarFocus (string, markdown allowed), "
        "vocabulary (array of {word, meaning, example}), "
        "commonMistakes (array of {mistake, correction, example}), "
        "exercises (array of {type, instruction, question, answer, explanation}; 2-4 items)."
    )


def _chat_prompt(message: str, context_block: Optional[str]) -> str:
    prompt = (
        "You are a friendly, knowledgeable language learning assistant. Answer grammar, vocabulary, translation "
        "and study questions clearly and concisely in markdown, with short examples where useful.\n\n"
    )
    if context_block:
        prompt += context_block + "\n\n"
    return prompt + f"User question: {message}"


class ModelGateway:
    def __init__(
        self,
        client_factory: ClientFactory,
        api_key: Optional[str] = None,
        *,
        model: Optional[str] = None,
    ) -> None:
        self._client_factory = client_factory
        self._model = resolve_model(model) if model else None
        self._client: Optional[GeminiClient] = None
        if api_key:
            self._client = self._make_client(api_key)

    @property
    def configured(self) -> bool:
        return self._client is not None

    @property
    def model(self) -> Optional[str]:
        return self._client.model if self._client is not None else self._model

    def _make_client(self, api_key: str) -> GeminiClient:
        client = self._client_factory(api_key)
        if self._model:
            client.set_model(self._model)
        return client

    async def set_credential(self, api_key: str) -> None:
        old = self._client
        self._client = self._make_client(api_key)
        if old is not None:
            await old.aclose()

    async def clear_credential(self) -> None:
        old, self._client = self._client, None
        if old is not None:
            await old.aclose()

    def set_model(self, alias: str) -> None:
        self._model = resolve_model(alias)
        if self._client is not None:
            self._client.set_model(self._model)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _generate(self, prompt: str, **kwargs: Any) -> str:
        if self._client is None:
            raise AuthError("Please configure your Gemini API key first")
        return await self._client.generate(prompt, **kwargs)

    async def validate_credential(self, key: str) -> CredentialCheck:
        """Try ``key`` with a minimal request and classify the outcome."""
        if not key or not key.strip():
            return CredentialCheck(valid=False, error="invalid-key", message="Please enter your Gemini API key")
        try:
            checker = self._make_client(key)
        except AuthError as err:
            return CredentialCheck(valid=False, error="invalid-key", message=err.message)
        try:
            await checker.generate("Reply with the single word: OK")
        except (EmptyResponseError, MalformedResponseError):
            # The key was accepted; only the test answer was odd
            pass
        except AuthError as err:
            return CredentialCheck(valid=False, error="invalid-key", message=err.message)
        except RateLimitedError as err:
            return CredentialCheck(valid=False, error="quota-exceeded", message=err.message)
        except NetworkError as err:
            return CredentialCheck(valid=False, error="network-error", message=err.message)
        except Exception as err:
            logger.warning("Credential check failed: %s", err)
            return CredentialCheck(valid=False, error="unknown", message=str(err))
        finally:
            await checker.aclose()
        return CredentialCheck(valid=True)

    async def generate_passage(self, language: str, level: str, theme: str, variant: str) -> List[Sentence]:
        level = validate_level(level)
        raw = await self._generate(_passage_prompt(language, level, theme, variant), json_mode=True)
        texts = _split_sentences(raw)
        if not texts:
            raise MalformedResponseError("Model response could not be split into sentences")
        logger.info("Generated %s passage with %d sentences", level, len(texts))
        return [Sentence(index=i, text=t) for i, t in enumerate(texts)]

    async def translate(self, text: str, source: str, target: str) -> str:
        if not text or not text.strip():
            raise NoInputError("Nothing to translate")
        out = _strip_fences(await self._generate(_translate_prompt(text, source, target)))
        if not out:
            raise EmptyResponseError("Model returned an empty translation")
        return out

    async def rate_translation(
        self,
        original: str,
        user_text: str,
        reference: str,
        source: str,
        target: str,
    ) -> str:
        out = await self._generate(_rating_prompt(original, user_text, reference, source, target))
        return out.strip()

    async def rate_sentence_batch(
        self,
        originals: Sequence[str],
        user_texts: Sequence[str],
        source: str,
        target: str,
    ) -> FeedbackResult:
        if len(originals) != len(user_texts):
            raise InputValidationError("originals and translations must have the same length")
        pairs = [
            (i, original, (user_texts[i] or "").strip())
            for i, original in enumerate(originals)
            if (user_texts[i] or "").strip()
        ]
        if not pairs:
            raise NoInputError("Please translate at least one sentence first")
        raw = await self._generate(_batch_prompt(pairs, source, target), json_mode=True)
        data = _extract_json(raw)
        if isinstance(data, list):
            data = {"sentences": data}
        items = data.get("sentences") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise MalformedResponseError("Model response has no per-sentence feedback")

        by_index: Dict[int, Dict[str, Any]] = {}
        for item in items:
            if not isinstance(item, dict):
                continue
            index = item.get("index")
            if isinstance(index, int) and not isinstance(index, bool):
                by_index.setdefault(index, item)
        per_sentence: List[SentenceFeedback] = []
        for position, (index, _original, _user_text) in enumerate(pairs):
            item = by_index.get(index)
            if item is None and not by_index and position < len(items) and isinstance(items[position], dict):
                item = items[position]
            item = item or {}
            grade = str(item.get("grade") or "").strip().upper()[:1]
            per_sentence.append(
                SentenceFeedback(
                    sentence_index=index,
                    grade=grade if grade in GRADES else DEFAULT_GRADE,
                    narrative=str(item.get("feedback") or "").strip(),
                    reference_text=str(item.get("reference") or "").strip(),
                )
            )
        return FeedbackResult(
            per_sentence=per_sentence,
            overall_narrative=str(data.get("overall") or "").strip(),
            translated_count=len(pairs),
            total_count=len(originals),
        )

    async def generate_lesson(
        self,
        attempts: Sequence[TranslationAttempt],
        source: str,
        target: str,
    ) -> LessonResult:
        if not attempts:
            raise NoInputError("Please translate at least one sentence first")
        raw = await self._generate(_lesson_prompt(attempts, source, target), json_mode=True)
        try:
            data = _extract_json(raw)
        except MalformedResponseError:
            logger.info("Lesson was not JSON, using the reply as markdown")
            data = None
        if isinstance(data, dict):
            try:
                return StructuredLesson(lesson=MiniLesson.model_validate(data))
            except ValidationError as err:
                logger.info("Lesson JSON is incomplete, rendering present fields: %s", err)
            return FallbackLesson(markdown=_partial_lesson_markdown(data))
        markdown = _strip_fences(raw)
        if not markdown:
            raise EmptyResponseError("Model returned an empty lesson")
        return FallbackLesson(markdown=markdown)

    async def chat(self, message: str, context: Optional[ChatContext]) -> str:
        out = await self._generate(_chat_prompt(message, format_chat_context(context)))
        return out.strip()
