import io
import random
from types import SimpleNamespace

import pytest
from PIL import Image

import dependencies


def make_image_bytes(size=(48, 48), fmt="PNG", color=(120, 110, 100)) -> bytes:
    img = Image.new("RGB", size, color=color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


class FakeGeminiModels:
    """Stands in for `genai.Client().models`; replays canned responses or raises."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class FakeGeminiClient:
    def __init__(self, *responses):
        self.models = FakeGeminiModels(responses)


def gemini_text_response(text):
    return SimpleNamespace(text=text, candidates=[])


def gemini_image_response(data, mime_type="image/png", with_text=True):
    parts = []
    if with_text:
        parts.append(SimpleNamespace(text="Aquí está tu imagen", inline_data=None))
    parts.append(SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type)))
    return SimpleNamespace(text=None, candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


class FakeCompletions:
    def __init__(self, outcomes):
        self._outcomes = list(outcomes)
        self.calls = []

    def create(self, messages, model, temperature):
        self.calls.append({"messages": messages, "model": model, "temperature": temperature})
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])


class FakeGroqClient:
    """Stands in for `groq.Groq`; each outcome is reply text, None, or an exception to raise."""

    def __init__(self, *outcomes):
        self.chat = SimpleNamespace(completions=FakeCompletions(outcomes))


class FakeImageGenerator:
    def __init__(self, error=None):
        self.prompts = []
        self._error = error

    def generate(self, prompt):
        from models import GeneratedImage
        self.prompts.append(prompt)
        if self._error is not None:
            raise self._error
        return GeneratedImage(data=make_image_bytes())


class ScriptedSynthesizer:
    """Returns the given questions (or raises the given exceptions) in order."""

    def __init__(self, *outcomes):
        self._outcomes = list(outcomes)
        self.calls = 0

    def next_question(self):
        self.calls += 1
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def png_bytes():
    return make_image_bytes()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def client():
    from main import app, limiter
    app.config["TESTING"] = True
    limiter.enabled = False
    dependencies.reset()
    with app.test_client() as test_client:
        yield test_client
    dependencies.reset()
