"""Shared test fixtures for meowchat."""

import json

import httpx
import pytest

from meowchat.config import ChatConfig, Settings, SettingsProvider
from meowchat.controller import ConversationController
from meowchat.core import Message
from meowchat.router import MessageRouter
from meowchat.storage import KeyValueStorage
from meowchat.store import ContextStore

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-bytes"


class FakeClock:
    """Epoch-millisecond clock that advances by one second per call."""

    def __init__(self, start: int = 1_736_935_200_000):
        self.now = start

    def __call__(self) -> int:
        self.now += 1000
        return self.now


class SequentialIds:
    def __init__(self):
        self.count = 0

    def __call__(self) -> str:
        self.count += 1
        return f"thread-{self.count}"


class RecordingTransport:
    """httpx transport that records requests and answers with a handler."""

    def __init__(self, handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep real credentials and data directories out of the tests."""
    for var in ("XAI_API_KEY", "GEMINI_API_KEY", "HF_API_TOKEN", "MEOWCHAT_MODEL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("MEOWCHAT_DATA_PATH", str(tmp_path / "data"))


@pytest.fixture
def storage(tmp_path):
    return KeyValueStorage(tmp_path / "storage.json")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(storage, clock):
    return ContextStore(storage, clock=clock, id_factory=SequentialIds())


@pytest.fixture
def settings_provider(storage):
    provider = SettingsProvider(storage)
    provider.save(Settings(
        xai_api_key="xai-test-key",
        gemini_api_key="gemini-test-key",
        hf_api_token="hf-test-token",
    ))
    return provider


@pytest.fixture
def sample_history():
    return [
        Message(role="user", content="What is a cat?"),
        Message(role="assistant", content="A small furry mammal. Meow!"),
        Message(role="user", content="Tell me more"),
    ]


@pytest.fixture
def make_controller(store, settings_provider):
    """Build a controller whose outbound HTTP calls go to `handler`."""

    def _make(handler):
        recorder = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=recorder.transport)
        config = ChatConfig()
        router = MessageRouter(config, client=client)
        controller = ConversationController(store, router, settings_provider, config)
        return controller, recorder

    return _make


def chat_response(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": text}}]})


def gemini_response(text: str) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def image_response(data: bytes = PNG_BYTES) -> httpx.Response:
    return httpx.Response(200, content=data, headers={"content-type": "image/png"})
