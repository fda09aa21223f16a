from typing import Callable, List, Optional, Tuple

import pytest

from gijiroku.session import TranscriptionSession

SAMPLE_RESPONSE = "話者A: こんにちは。\n話者B: 今日は良い天気ですね。\n話者A: そうですね。\n"


class FakeBackend:
    """Scripted stand-in for the Gemini backend."""

    def __init__(
        self,
        transcript: str = SAMPLE_RESPONSE,
        responder: Optional[Callable[[str], str]] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        self.transcript = transcript
        self.responder = responder or (lambda prompt: "")
        self.error = error
        self.calls: List[Tuple[str, str, str]] = []

    async def transcribe(self, audio: bytes, mime_type: str, prompt: str, model_id: str) -> str:
        self.calls.append(("transcribe", prompt, model_id))
        if self.error is not None:
            raise self.error
        return self.transcript

    async def generate(self, prompt: str, model_id: str) -> str:
        self.calls.append(("generate", prompt, model_id))
        if self.error is not None:
            raise self.error
        return self.responder(prompt)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def session(fake_backend) -> TranscriptionSession:
    return TranscriptionSession(api_key="test-key", backend_factory=lambda api_key: fake_backend)


@pytest.fixture
def make_backend() -> Callable[..., FakeBackend]:
    return FakeBackend
