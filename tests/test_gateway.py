import asyncio
import json

import httpx
import pytest

from conftest import gemini_response, passage_json
from fluentnow.errors import (
    AuthError,
    EmptyResponseError,
    InputValidationError,
    MalformedResponseError,
    NetworkError,
    NoInputError,
)
from fluentnow.gateway import ModelGateway, format_chat_context
from fluentnow.gemini_client import GeminiClient
from fluentnow.schemas import ChatContext, FallbackLesson, StructuredLesson, TranslationAttempt
from fluentnow.settings import Settings

LESSON = {
    "title": "Greetings",
    "grammarFocus": "Use **hello** for hola.",
    "vocabulary": [{"word": "adiós", "meaning": "goodbye", "example": "Adiós, Ana."}],
    "commonMistakes": [{"mistake": "Hello bye", "correction": "Goodbye", "example": ""}],
    "exercises": [
        {"type": "translate", "instruction": "Translate:", "question": "Hola", "answer": "Hello", "explanation": ""}
    ],
}


class TestPassage:
    """Passage generation and sentence splitting."""

    @pytest.mark.parametrize("level", ["A1", "a2", "B1", "B2", "C1"])
    def test_every_level_yields_sentences(self, make_gateway, level):
        gateway, client = make_gateway(passage_json("Me llamo Ana.", "Vivo en Madrid."))
        sentences = asyncio.run(gateway.generate_passage("español", level, "Daily Life", "morning routine"))
        assert [s.text for s in sentences] == ["Me llamo Ana.", "Vivo en Madrid."]
        assert [s.index for s in sentences] == [0, 1]
        assert f"CEFR {level.upper()}" in client.prompts[0]
        assert client.kwargs[0]["json_mode"] is True

    def test_prompt_carries_level_spec(self, make_gateway):
        gateway, client = make_gateway(passage_json("Hola."))
        asyncio.run(gateway.generate_passage("español", "A1", "Travel & Adventure", "at the airport"))
        assert "5-8 words average" in client.prompts[0]
        assert "at the airport" in client.prompts[0]
        assert "español" in client.prompts[0]

    def test_bare_list_and_fenced_json(self, make_gateway):
        gateway, _ = make_gateway('```json\n["Uno.", "", "Dos."]\n```')
        sentences = asyncio.run(gateway.generate_passage("español", "A1", "Food", "baking"))
        assert [s.text for s in sentences] == ["Uno.", "Dos."]

    def test_numbered_lines_fallback(self, make_gateway):
        gateway, _ = make_gateway("1. Uno.\n2. Dos.\n\n- Tres.")
        sentences = asyncio.run(gateway.generate_passage("español", "A1", "Food", "baking"))
        assert [s.text for s in sentences] == ["Uno.", "Dos.", "Tres."]

    def test_empty_sentence_list_is_malformed(self, make_gateway):
        gateway, _ = make_gateway(json.dumps({"sentences": []}))
        with pytest.raises(MalformedResponseError):
            asyncio.run(gateway.generate_passage("español", "A1", "Food", "baking"))

    def test_json_without_sentences_is_malformed(self, make_gateway):
        gateway, _ = make_gateway(json.dumps({"story": "Hola."}))
        with pytest.raises(MalformedResponseError):
            asyncio.run(gateway.generate_passage("español", "A1", "Food", "baking"))

    def test_unknown_level(self, make_gateway):
        gateway, client = make_gateway()
        with pytest.raises(InputValidationError):
            asyncio.run(gateway.generate_passage("español", "C2", "Food", "baking"))
        assert client.prompts == []


class TestTranslateAndRate:
    def test_translate_strips_output(self, make_gateway):
        gateway, client = make_gateway("  Hello.  \n")
        assert asyncio.run(gateway.translate("Hola.", "Spanish", "English")) == "Hello."
        assert "Spanish" in client.prompts[0] and "English" in client.prompts[0]

    def test_translate_empty_response(self, make_gateway):
        gateway, _ = make_gateway("```\n```")
        with pytest.raises(EmptyResponseError):
            asyncio.run(gateway.translate("Hola.", "Spanish", "English"))

    def test_rate_translation_returns_markdown(self, make_gateway):
        gateway, client = make_gateway("**What you did well** ...")
        out = asyncio.run(gateway.rate_translation("Hola.", "Hi.", "Hello.", "Spanish", "English"))
        assert out.startswith("**What you did well**")
        assert "Hi." in client.prompts[0] and "Hello." in client.prompts[0]

    def test_unconfigured_gateway(self):
        gateway = ModelGateway(lambda key: None)
        assert not gateway.configured
        with pytest.raises(AuthError):
            asyncio.run(gateway.translate("Hola.", "Spanish", "English"))


class TestSentenceBatch:
    """Batched per-sentence grading."""

    def test_blank_translations_counted_but_not_graded(self, make_gateway):
        reply = {"sentences": [{"index": 0, "grade": "A", "feedback": "Perfect.", "reference": "Hello"}], "overall": "Nice."}
        gateway, client = make_gateway(json.dumps(reply))
        result = asyncio.run(gateway.rate_sentence_batch(["Hola", "Adiós"], ["Hello", ""], "Spanish", "English"))
        assert result.total_count == 2
        assert result.translated_count == 1
        assert len(result.per_sentence) == 1
        assert result.per_sentence[0].sentence_index == 0
        assert result.per_sentence[0].grade == "A"
        assert result.per_sentence[0].reference_text == "Hello"
        assert result.overall_narrative == "Nice."
        assert "Adiós" not in client.prompts[0]
        assert len(client.prompts) == 1

    def test_missing_grade_defaults_to_c(self, make_gateway):
        reply = {"sentences": [{"index": 1, "feedback": "Close."}, {"index": 0, "grade": "excellent?"}]}
        gateway, _ = make_gateway(json.dumps(reply))
        result = asyncio.run(gateway.rate_sentence_batch(["Hola", "Adiós"], ["Hello", "Bye"], "Spanish", "English"))
        assert [(f.sentence_index, f.grade) for f in result.per_sentence] == [(0, "C"), (1, "C")]
        assert result.per_sentence[1].narrative == "Close."

    def test_lowercase_grade_and_positional_items(self, make_gateway):
        gateway, _ = make_gateway(json.dumps([{"grade": "b", "feedback": "Ok"}]))
        result = asyncio.run(gateway.rate_sentence_batch(["Hola", "Adiós"], ["", "Bye"], "Spanish", "English"))
        assert result.per_sentence[0].sentence_index == 1
        assert result.per_sentence[0].grade == "B"

    def test_entry_missing_from_reply_still_reported(self, make_gateway):
        gateway, _ = make_gateway(json.dumps({"sentences": [{"index": 0, "grade": "A"}]}))
        result = asyncio.run(gateway.rate_sentence_batch(["Hola", "Adiós"], ["Hello", "Bye"], "Spanish", "English"))
        assert len(result.per_sentence) == 2
        assert result.per_sentence[1].grade == "C"

    def test_boolean_index_ignored(self, make_gateway):
        reply = [{"index": True, "grade": "A"}, {"index": 0, "grade": "F"}]
        gateway, _ = make_gateway(json.dumps(reply))
        result = asyncio.run(gateway.rate_sentence_batch(["Hola", "Adiós"], ["Hello", "Bye"], "Spanish", "English"))
        assert [(f.sentence_index, f.grade) for f in result.per_sentence] == [(0, "F"), (1, "C")]

    def test_length_mismatch(self, make_gateway):
        gateway, _ = make_gateway()
        with pytest.raises(InputValidationError):
            asyncio.run(gateway.rate_sentence_batch(["Hola"], ["Hello", "x"], "Spanish", "English"))

    def test_all_blank(self, make_gateway):
        gateway, client = make_gateway()
        with pytest.raises(NoInputError):
            asyncio.run(gateway.rate_sentence_batch(["Hola"], ["  "], "Spanish", "English"))
        assert client.prompts == []

    def test_unparseable_reply(self, make_gateway):
        gateway, _ = make_gateway("I think they did fine")
        with pytest.raises(MalformedResponseError):
            asyncio.run(gateway.rate_sentence_batch(["Hola"], ["Hello"], "Spanish", "English"))


class TestLesson:
    """Structured lessons with markdown fallback."""

    attempts = [TranslationAttempt(sentence_index=0, original_text="Hola", user_text="Hello")]

    def test_structured(self, make_gateway):
        gateway, _ = make_gateway(json.dumps(LESSON))
        lesson = asyncio.run(gateway.generate_lesson(self.attempts, "Spanish", "English"))
        assert isinstance(lesson, StructuredLesson)
        assert lesson.lesson.grammar_focus.startswith("Use")
        assert lesson.lesson.vocabulary[0].word == "adiós"
        assert "## Exercises" in lesson.to_markdown()

    def test_invalid_json_falls_back(self, make_gateway):
        gateway, _ = make_gateway("# Lesson\nRemember that *hola* means hello.")
        lesson = asyncio.run(gateway.generate_lesson(self.attempts, "Spanish", "English"))
        assert isinstance(lesson, FallbackLesson)
        assert lesson.markdown.startswith("# Lesson")

    def test_missing_field_falls_back(self, make_gateway):
        partial = {k: v for k, v in LESSON.items() if k != "commonMistakes"}
        gateway, _ = make_gateway(json.dumps(partial))
        lesson = asyncio.run(gateway.generate_lesson(self.attempts, "Spanish", "English"))
        assert isinstance(lesson, FallbackLesson)
        assert not lesson.markdown.lstrip().startswith("{")
        assert "## Grammar focus" in lesson.markdown
        assert "## Common mistakes" not in lesson.markdown

    def test_sparse_json_renders_present_fields(self, make_gateway):
        sparse = {"title": "Ser vs estar", "vocabulary": [{"word": "hola", "meaning": "hello"}]}
        gateway, _ = make_gateway(json.dumps(sparse))
        lesson = asyncio.run(gateway.generate_lesson(self.attempts, "Spanish", "English"))
        assert isinstance(lesson, FallbackLesson)
        assert not lesson.markdown.lstrip().startswith("{")
        assert lesson.markdown.startswith("# Ser vs estar")
        assert "hola - hello" in lesson.markdown

    def test_missing_title_is_fine(self, make_gateway):
        untitled = {k: v for k, v in LESSON.items() if k != "title"}
        gateway, _ = make_gateway(json.dumps(untitled))
        lesson = asyncio.run(gateway.generate_lesson(self.attempts, "Spanish", "English"))
        assert isinstance(lesson, StructuredLesson)
        assert lesson.lesson.title == "Mini Lesson"

    def test_no_attempts(self, make_gateway):
        gateway, _ = make_gateway()
        with pytest.raises(NoInputError):
            asyncio.run(gateway.generate_lesson([], "Spanish", "English"))

    def test_transport_errors_propagate(self, make_gateway):
        gateway, _ = make_gateway(NetworkError("down"))
        with pytest.raises(NetworkError):
            asyncio.run(gateway.generate_lesson(self.attempts, "Spanish", "English"))


class TestChat:
    def test_without_context(self, make_gateway):
        gateway, client = make_gateway("Ser is permanent.")
        assert asyncio.run(gateway.chat("ser vs estar?", None)) == "Ser is permanent."
        assert "CURRENT SESSION CONTEXT" not in client.prompts[0]
        assert client.prompts[0].endswith("User question: ser vs estar?")

    def test_context_precedes_message(self, make_gateway):
        gateway, client = make_gateway("Sure.")
        context = ChatContext(
            source_language="Spanish",
            target_language="English",
            current_passage_text="Hola. Adiós.",
            translation_attempts=[TranslationAttempt(sentence_index=0, original_text="Hola.", user_text="Hi.")],
        )
        asyncio.run(gateway.chat("Why?", context))
        prompt = client.prompts[0]
        assert prompt.index("STORY TO TRANSLATE:\nHola. Adiós.") < prompt.index("User question: Why?")
        assert 'User translation: "Hi."' in prompt

    def test_empty_context_renders_nothing(self):
        assert format_chat_context(ChatContext()) is None
        assert format_chat_context(None) is None


class TestCredentialCheck:
    """validate_credential classifies failed checks."""

    def _gateway(self, handler):
        settings = Settings(_env_file=None)

        def factory(key):
            return GeminiClient(key, settings, transport=httpx.MockTransport(handler))

        return ModelGateway(factory)

    def test_valid(self):
        check = asyncio.run(self._gateway(lambda r: gemini_response("OK")).validate_credential("good"))
        assert check.valid and check.error is None

    def test_auth_failure_is_invalid_key(self):
        handler = lambda r: httpx.Response(400, json={"error": {"message": "API key not valid", "status": "API_KEY_INVALID"}})
        check = asyncio.run(self._gateway(handler).validate_credential("bad"))
        assert not check.valid
        assert check.error == "invalid-key"

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        check = asyncio.run(self._gateway(handler).validate_credential("good"))
        assert check.error == "network-error"

    def test_quota(self):
        check = asyncio.run(self._gateway(lambda r: httpx.Response(429)).validate_credential("good"))
        assert check.error == "quota-exceeded"

    def test_other_failure_is_unknown(self):
        check = asyncio.run(self._gateway(lambda r: httpx.Response(500)).validate_credential("good"))
        assert check.error == "unknown"

    def test_blank_key(self):
        check = asyncio.run(self._gateway(lambda r: gemini_response("OK")).validate_credential(""))
        assert check.error == "invalid-key"

    def test_empty_answer_still_valid(self):
        check = asyncio.run(self._gateway(lambda r: httpx.Response(200, json={"candidates": []})).validate_credential("k"))
        assert check.valid
