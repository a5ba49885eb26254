from typing import Any, Dict, List, Optional

from flask import Flask, request, jsonify

import config
import manga_service
from errors import GenerationError
from gemini_client import MangaGenAI
from image_codec import blank_canvas
from models import ASPECT_RATIOS, Character, LayoutPage, Page

app = Flask(__name__, static_folder=None)

COLOR_MODES = ("color", "monochrome")


def get_genai() -> MangaGenAI:
    """Shared client, created on first use. Tests put a fake under app.config["GENAI"]."""
    g = app.config.get("GENAI")
    if g is None:
        g = MangaGenAI(config.require_api_key())
        app.config["GENAI"] = g
    return g


# ------------------ REQUEST HELPERS ---------------


def body() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def required(data: Dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise ValueError(f"Missing required field: {key}")
    return value


def images_of(data: Dict[str, Any], key: str, must: bool = False) -> Optional[List[str]]:
    value = required(data, key) if must else data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key} must be a list of image data URLs")
    return value


def characters_of(data: Dict[str, Any]) -> List[Character]:
    return [Character.model_validate(c) for c in data.get("characters") or []]


def color_mode_of(data: Dict[str, Any]) -> str:
    mode = data.get("colorMode", "monochrome")
    if mode not in COLOR_MODES:
        raise ValueError(f"colorMode must be one of {', '.join(COLOR_MODES)}")
    return mode


def optional_page(data: Dict[str, Any], key: str, model) -> Optional[Any]:
    value = data.get(key)
    return model.model_validate(value) if value else None


@app.errorhandler(GenerationError)
def on_generation_error(e: GenerationError):
    return jsonify({"error": str(e), "kind": e.kind}), 502


@app.errorhandler(ValueError)
def on_bad_request(e: ValueError):
    return jsonify({"error": str(e)}), 400


# ------------------ ROUTES ------------------------


@app.route("/api/aspect-ratios")
def api_aspect_ratios():
    return jsonify({key: {"width": p.width, "height": p.height, "ratio": p.ratio}
                    for key, p in ASPECT_RATIOS.items()})


@app.route("/api/blank-canvas")
def api_blank_canvas():
    return jsonify({"image": blank_canvas(request.args.get("aspectRatio", ""))})


@app.route("/api/worldview", methods=["POST"])
def api_worldview():
    data = body()
    worldview = manga_service.generate_worldview(get_genai(), characters_of(data))
    return jsonify({"worldview": worldview})


@app.route("/api/story-suggestion", methods=["POST"])
def api_story_suggestion():
    data = body()
    pages = [Page.model_validate(p) for p in data.get("previousPages") or []]
    suggestion = manga_service.generate_detailed_story_suggestion(
        get_genai(), (data.get("premise") or "").strip(), data.get("worldview", ""),
        characters_of(data), pages)
    return jsonify(suggestion.model_dump())


@app.route("/api/layout-proposal", methods=["POST"])
def api_layout_proposal():
    data = body()
    proposal = manga_service.generate_layout_proposal(
        get_genai(), required(data, "story"), characters_of(data), data.get("aspectRatio", "A4"),
        optional_page(data, "previousPage", LayoutPage), data.get("currentCanvas"))
    return jsonify({"proposalImage": proposal})


@app.route("/api/character-sheet", methods=["POST"])
def api_character_sheet():
    data = body()
    sheet = manga_service.generate_character_sheet(
        get_genai(), images_of(data, "referenceImages", must=True), required(data, "characterName"),
        color_mode_of(data))
    return jsonify({"sheetImage": sheet})


@app.route("/api/character-from-reference", methods=["POST"])
def api_character_from_reference():
    data = body()
    sheet = manga_service.generate_character_from_reference(
        get_genai(), images_of(data, "referenceSheets", must=True), required(data, "characterName"),
        required(data, "characterConcept"), color_mode_of(data))
    return jsonify({"sheetImage": sheet})


@app.route("/api/character-sheet/edit", methods=["POST"])
def api_edit_character_sheet():
    data = body()
    sheet = manga_service.edit_character_sheet(
        get_genai(), required(data, "sheetImage"), required(data, "characterName"),
        required(data, "editPrompt"))
    return jsonify({"sheetImage": sheet})


@app.route("/api/manga-page", methods=["POST"])
def api_manga_page():
    data = body()
    result = manga_service.generate_manga_page(
        get_genai(), characters_of(data), required(data, "panelLayoutImage"),
        required(data, "sceneDescription"), color_mode_of(data),
        optional_page(data, "previousPage", Page), bool(data.get("generateEmptyBubbles", False)))
    return jsonify(result.model_dump())


@app.route("/api/colorize", methods=["POST"])
def api_colorize():
    data = body()
    image = manga_service.colorize_manga_page(
        get_genai(), required(data, "monochromePage"), characters_of(data))
    return jsonify({"image": image})


@app.route("/api/edit-page", methods=["POST"])
def api_edit_page():
    data = body()
    image = manga_service.edit_manga_page(
        get_genai(), required(data, "originalImage"), required(data, "prompt"),
        data.get("maskImage"), images_of(data, "referenceImages"))
    return jsonify({"image": image})


@app.route("/api/analyze", methods=["POST"])
def api_analyze():
    data = body()
    result = manga_service.analyze_and_suggest_corrections(
        get_genai(), required(data, "panelLayoutImage"), required(data, "generatedImage"),
        data.get("sceneDescription", ""), characters_of(data))
    return jsonify(result.model_dump())


if __name__ == "__main__":
    app.run(host=config.SERVER_HOST, port=config.SERVER_PORT, debug=True, threaded=True)
