"""
Pytest Configuration and Fixtures

A fake genai client that records every generate_content call and replays
canned responses built from the real google.genai types.
"""

import base64

import pytest
from google.genai import types

from gemini_client import MangaGenAI, PromptLogger
from models import Character

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-body"
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-body"


def data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def response_with(*parts: types.Part) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(candidates=[
        types.Candidate(content=types.Content(role="model", parts=list(parts)))
    ])


def image_response(data: bytes = PNG_BYTES, mime: str = "image/png", text: str = None):
    parts = [types.Part(inline_data=types.Blob(data=data, mime_type=mime))]
    if text:
        parts.append(types.Part(text=text))
    return response_with(*parts)


def text_response(text: str):
    return response_with(types.Part(text=text))


def empty_response():
    return types.GenerateContentResponse(candidates=[])


class FakeModels:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        return self.responses.pop(0)


class FakeClient:
    def __init__(self, *responses):
        self.models = FakeModels(responses)

    @property
    def last_call(self):
        return self.models.calls[-1]


@pytest.fixture
def fake_genai():
    """Returns a factory: fake_genai(*responses) -> (MangaGenAI, FakeClient)."""
    def make(*responses):
        client = FakeClient(*responses)
        return MangaGenAI(client=client, text_model="text-model", image_model="image-model"), client
    return make


@pytest.fixture
def quiet_log():
    return PromptLogger(echo=False)


@pytest.fixture
def hero():
    return Character(
        name="Kaito",
        description="A stubborn swordsman.",
        sheetImage=data_uri(b"kaito-sheet"),
        referenceImages=[data_uri(b"kaito-color-1", "image/jpeg"), data_uri(b"kaito-color-2")],
    )


@pytest.fixture
def rival():
    return Character(
        name="Anya",
        description="",
        sheetImage=data_uri(b"anya-sheet", "image/webp"),
        referenceImages=[data_uri(b"anya-color")],
    )
