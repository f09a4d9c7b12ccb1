import asyncio

from conftest import passage_json
from fluentnow.assistant import ConversationalAssistant
from fluentnow.constants import CHAT_APOLOGY
from fluentnow.errors import NetworkError, RateLimitedError


def _assistant(pipeline, limit=50):
    return ConversationalAssistant(pipeline.gateway, pipeline.session, history_limit=limit)


class TestContextSnapshot:
    def test_no_passage(self, make_pipeline):
        pipeline, client = make_pipeline("You can say 'hola'.")
        assistant = _assistant(pipeline)
        context = assistant.snapshot_context()
        assert not context.current_passage_text
        assert context.translation_attempts == []
        reply = asyncio.run(assistant.send("How do I greet someone?"))
        assert reply.text == "You can say 'hola'."
        assert "STORY TO TRANSLATE" not in client.prompts[0]

    def test_snapshot_reflects_session(self, make_pipeline):
        pipeline, client = make_pipeline(passage_json("Hola.", "Adiós."), "Good question.")
        assistant = _assistant(pipeline)
        asyncio.run(pipeline.generate_passage("food"))
        pipeline.update_sentence_translation(1, "Bye.")
        context = assistant.snapshot_context()
        assert context.current_passage_text == "Hola. Adiós."
        assert [(a.sentence_index, a.user_text) for a in context.translation_attempts] == [(1, "Bye.")]
        asyncio.run(assistant.send("Is 'Bye' right?"))
        assert "STORY TO TRANSLATE:\nHola. Adiós." in client.prompts[-1]
        assert 'User translation: "Bye."' in client.prompts[-1]


class TestSend:
    def test_history_records_both_turns(self, make_pipeline):
        pipeline, _ = make_pipeline("Answer.")
        assistant = _assistant(pipeline)
        asyncio.run(assistant.send("  Question?  "))
        assert [(t.role, t.text) for t in assistant.history] == [("user", "Question?"), ("assistant", "Answer.")]

    def test_gateway_error_becomes_apology(self, make_pipeline):
        pipeline, _ = make_pipeline(NetworkError("offline"), RateLimitedError("slow down"))
        assistant = _assistant(pipeline)
        assert asyncio.run(assistant.send("Hi")).text == CHAT_APOLOGY
        assert asyncio.run(assistant.send("Hi again")).text == CHAT_APOLOGY
        assert len(assistant.history) == 4

    def test_blank_message_ignored(self, make_pipeline):
        pipeline, client = make_pipeline()
        assistant = _assistant(pipeline)
        assert asyncio.run(assistant.send("   ")) is None
        assert assistant.history == []
        assert client.prompts == []

    def test_history_is_bounded(self, make_pipeline):
        pipeline, _ = make_pipeline(*[f"a{n}" for n in range(5)])
        assistant = _assistant(pipeline, limit=4)
        for n in range(5):
            asyncio.run(assistant.send(f"q{n}"))
        assert [t.text for t in assistant.history] == ["q3", "a3", "q4", "a4"]

    def test_clear(self, make_pipeline):
        pipeline, _ = make_pipeline("a")
        assistant = _assistant(pipeline)
        asyncio.run(assistant.send("q"))
        assistant.clear()
        assert assistant.history == []
        assert assistant.welcome().role == "assistant"
