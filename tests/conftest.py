import asyncio
import io
from types import SimpleNamespace

import pytest
from PIL import Image


@pytest.fixture(autouse=True, scope="session")
def configure_settings():
    # Disable API key auth and the real model credential for tests
    from app.config import settings
    settings.api_key = ""
    settings.openai_api_key = ""


@pytest.fixture(autouse=True)
def reset_app_state():
    from app.main import app
    from app.services.session_state import session_store

    yield
    session_store.clear()
    app.dependency_overrides.clear()
    app.state.analysis_client = None


def _completion(text, model="gpt-4-turbo"):
    choices = [] if text is None else [SimpleNamespace(message=SimpleNamespace(content=text))]
    return SimpleNamespace(choices=choices, model=model)


class FakeCompletions:
    """Stands in for `AsyncOpenAI().chat.completions`.

    Each call consumes one outcome: a string (response text), None (no
    choices), an exception (raised), or a `(asyncio.Event, outcome)` pair
    that waits for the event before resolving.
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, tuple):
            gate, outcome = outcome
            await gate.wait()
        if isinstance(outcome, BaseException):
            raise outcome
        return _completion(outcome)


class FakeOpenAI:
    def __init__(self, *outcomes):
        self.chat = SimpleNamespace(completions=FakeCompletions(outcomes))

    @property
    def calls(self) -> list[dict]:
        return self.chat.completions.calls

    async def close(self):
        pass


@pytest.fixture
def fake_openai():
    return FakeOpenAI


def make_png(size=(24, 24)) -> bytes:
    image = Image.effect_noise(size, 64).convert("RGB")
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def png_factory():
    return make_png


async def wait_for(predicate, timeout: float = 2.0):
    """Yield to the event loop until `predicate()` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def wait_until():
    return wait_for
