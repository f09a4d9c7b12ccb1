import json

import httpx
import pytest

from fluentnow.gateway import ModelGateway
from fluentnow.gemini_client import resolve_model
from fluentnow.pipeline import Session, TranslationPipeline
from fluentnow.settings import Settings


class FakeClient:
    """Scripted stand-in for GeminiClient.

    Each queued response is returned in order; exceptions are raised and
    callables are invoked with the prompt so a test can mutate state mid-call.
    """

    def __init__(self, responses=None, api_key="test-key"):
        self.api_key = api_key
        self.responses = list(responses or [])
        self.prompts = []
        self.kwargs = []
        self.model = resolve_model("flash-lite")
        self.closed = False

    def set_model(self, alias):
        self.model = resolve_model(alias)

    async def generate(self, prompt, **kwargs):
        self.prompts.append(prompt)
        self.kwargs.append(kwargs)
        if not self.responses:
            raise AssertionError(f"unexpected model call: {prompt[:60]!r}")
        item = self.responses.pop(0)
        if callable(item):
            item = item(prompt)
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self):
        self.closed = True


def gemini_response(text):
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def passage_json(*sentences):
    return json.dumps({"sentences": list(sentences)})


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        GEMINI_API_KEY="test-key",
        DATABASE_URL=f"sqlite:///{tmp_path / 'fluentnow.db'}",
        CHAT_HISTORY_LIMIT=6,
    )


@pytest.fixture
def make_gateway():
    def _make(*responses):
        client = FakeClient(responses)
        gateway = ModelGateway(lambda key: client, "test-key")
        return gateway, client

    return _make


@pytest.fixture
def make_pipeline(make_gateway):
    def _make(*responses, source="Spanish", target="English", level="A1"):
        gateway, client = make_gateway(*responses)
        session = Session(source, target, level)
        return TranslationPipeline(gateway, session), client

    return _make
