"""
Tests for manga_service: one backend call per operation, the right model and
config, and the parts sent in the order the prompt names them.
"""

import json

import pytest

import manga_service
from conftest import data_uri, empty_response, image_response, text_response
from errors import EmptyResponse, InvalidStructuredPayload, MissingCharacterSheet, MissingExpectedImage
from models import AnalysisResult, Character, GeneratedContent, Page, StorySuggestion


def sent_images(call):
    return [p.inline_data.data for p in call["contents"][1:]]


def sent_text(call):
    return call["contents"][0].text


class TestWorldview:

    def test_plain_text_call(self, fake_genai, quiet_log, hero):
        g, client = fake_genai(text_response("A floating archipelago."))
        assert manga_service.generate_worldview(g, [hero], quiet_log) == "A floating archipelago."
        call = client.last_call
        assert call["model"] == "text-model"
        assert call["config"] is None
        assert "Kaito" in sent_text(call)


class TestStorySuggestion:

    def test_structured_call(self, fake_genai, quiet_log, hero):
        payload = '{"summary":"Test","panels":[{"panel":1,"description":"A hero stands."}]}'
        g, client = fake_genai(text_response(payload))
        pages = [Page(sceneDescription="Before", generatedImage=data_uri(b"p1")),
                 Page(sceneDescription="Draft only")]

        s = manga_service.generate_detailed_story_suggestion(g, "", "", [hero], pages, quiet_log)

        assert isinstance(s, StorySuggestion)
        assert s.panels[0].dialogue == ""
        call = client.last_call
        assert call["model"] == "text-model"
        assert call["config"]["response_mime_type"] == "application/json"
        assert call["config"]["response_schema"] is StorySuggestion
        assert sent_images(call) == [b"p1"]

    def test_partial_payload_is_not_returned(self, fake_genai, quiet_log):
        g, _ = fake_genai(text_response('{"summary":"Test"}'))
        with pytest.raises(InvalidStructuredPayload):
            manga_service.generate_detailed_story_suggestion(g, "premise", "", [], None, quiet_log)


class TestImageOperations:

    def test_layout_proposal(self, fake_genai, quiet_log, hero):
        g, client = fake_genai(image_response(b"sketch"))
        image = manga_service.generate_layout_proposal(
            g, "A chase.", [hero], "Nonexistent", current_canvas=data_uri(b"canvas"), log=quiet_log)
        assert image == data_uri(b"sketch")
        call = client.last_call
        assert call["model"] == "image-model"
        assert call["config"].response_modalities == ["IMAGE", "TEXT"]
        assert sent_images(call) == [b"canvas", b"kaito-sheet"]
        assert "210:297" in sent_text(call)

    def test_character_sheet(self, fake_genai, quiet_log):
        g, client = fake_genai(image_response(b"sheet"))
        refs = [data_uri(b"r1"), data_uri(b"r2", "image/jpeg")]
        assert manga_service.generate_character_sheet(g, refs, "Kaito", "color", quiet_log) == data_uri(b"sheet")
        parts = client.last_call["contents"][1:]
        assert [p.inline_data.mime_type for p in parts] == ["image/png", "image/jpeg"]

    def test_character_from_reference(self, fake_genai, quiet_log):
        g, client = fake_genai(image_response(b"new"))
        manga_service.generate_character_from_reference(
            g, [data_uri(b"style")], "Mira", "A courier.", "monochrome", quiet_log)
        assert sent_images(client.last_call) == [b"style"]

    def test_edit_character_sheet(self, fake_genai, quiet_log):
        g, client = fake_genai(image_response(b"edited"))
        out = manga_service.edit_character_sheet(g, data_uri(b"sheet"), "Kaito", "add a scar", quiet_log)
        assert out == data_uri(b"edited")
        assert sent_images(client.last_call) == [b"sheet"]

    def test_manga_page_order_with_previous_page(self, fake_genai, quiet_log, hero, rival):
        g, client = fake_genai(image_response(b"page", text="Done."))
        prev = Page(sceneDescription="They meet.", generatedImage=data_uri(b"prev"))
        result = manga_service.generate_manga_page(
            g, [hero, rival], data_uri(b"layout"), "They fight.", "color", prev, False, quiet_log)
        assert result == GeneratedContent(image=data_uri(b"page"), text="Done.")
        assert sent_images(client.last_call) == [b"prev", b"kaito-sheet", b"anya-sheet", b"layout"]

    def test_manga_page_order_without_previous_page(self, fake_genai, quiet_log, hero, rival):
        g, client = fake_genai(image_response(b"page"))
        manga_service.generate_manga_page(
            g, [hero, rival], data_uri(b"layout"), "They fight.", "color", None, True, quiet_log)
        assert sent_images(client.last_call) == [b"kaito-sheet", b"anya-sheet", b"layout"]

    def test_manga_page_requires_sheets(self, fake_genai, quiet_log):
        g, client = fake_genai(image_response())
        with pytest.raises(MissingCharacterSheet):
            manga_service.generate_manga_page(
                g, [Character(name="Ghost")], data_uri(b"layout"), "s", "color", log=quiet_log)
        assert client.models.calls == []

    def test_colorize(self, fake_genai, quiet_log, hero):
        g, client = fake_genai(image_response(b"colored"))
        out = manga_service.colorize_manga_page(g, data_uri(b"mono"), [hero], quiet_log)
        assert out == data_uri(b"colored")
        assert sent_images(client.last_call) == [b"mono", b"kaito-color-1", b"kaito-color-2", b"kaito-sheet"]

    def test_edit_page_with_mask(self, fake_genai, quiet_log):
        g, client = fake_genai(image_response(b"fixed"))
        manga_service.edit_manga_page(
            g, data_uri(b"orig"), "rain", data_uri(b"mask"), [data_uri(b"ref")], quiet_log)
        assert sent_images(client.last_call) == [b"orig", b"mask", b"ref"]

    def test_refusal_surfaces_model_text(self, fake_genai, quiet_log):
        g, _ = fake_genai(text_response("That request violates policy."))
        with pytest.raises(MissingExpectedImage, match="That request violates policy."):
            manga_service.edit_manga_page(g, data_uri(b"orig"), "rain", log=quiet_log)

    def test_blocked_request(self, fake_genai, quiet_log):
        g, _ = fake_genai(empty_response())
        with pytest.raises(EmptyResponse):
            manga_service.colorize_manga_page(g, data_uri(b"mono"), [], quiet_log)


class TestAnalysis:

    def test_analysis(self, fake_genai, quiet_log, hero):
        payload = json.dumps({"analysis": "Accurate.", "has_discrepancies": False, "correction_prompt": ""})
        g, client = fake_genai(text_response(payload))
        result = manga_service.analyze_and_suggest_corrections(
            g, data_uri(b"layout"), data_uri(b"gen"), "Kaito draws.", [hero], quiet_log)
        assert result == AnalysisResult(analysis="Accurate.", has_discrepancies=False, correction_prompt="")
        call = client.last_call
        assert call["config"]["response_schema"] is AnalysisResult
        assert sent_images(call) == [b"layout", b"gen"]
