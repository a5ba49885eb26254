# manga_service.py
"""
Public operations. Each one builds its prompt, makes exactly one backend call
and returns the typed result, or raises. Nothing here keeps state between
calls, so operations may run concurrently on a shared `MangaGenAI`.
"""
from typing import Callable, List, Optional, Sequence, TypeVar

import prompts
from errors import GenerationError
from extraction import extract_generated_content, extract_structured, extract_text
from gemini_client import MangaGenAI, PromptLogger, default_logger
from models import AnalysisResult, Character, ColorMode, GeneratedContent, LayoutPage, Page, StorySuggestion

T = TypeVar("T")


def _exchange(prompt: prompts.Prompt, send: Callable, extract: Callable[..., T],
              summarize: Callable[[T], str], log: Optional[PromptLogger]) -> T:
    log = log or default_logger()
    title = prompt.kind.upper()
    log.log_prompt(prompt)
    try:
        result = extract(send(prompt))
        log.log(f"{title}_RESPONSE", summarize(result))
        return result
    except GenerationError as e:
        log.log(f"{title}_ERROR", f"{type(e).__name__}: {e}")
        raise
    finally:
        log.flush()


def _image_call(g: MangaGenAI, prompt: prompts.Prompt, what: str, log: Optional[PromptLogger]) -> GeneratedContent:
    return _exchange(
        prompt, g.generate_multimodal,
        lambda response: extract_generated_content(response, what),
        lambda r: f"image: {len(r.image)} chars; text: {r.text or '(none)'}",
        log)


# ------------------ STORY -------------------------


def generate_worldview(g: MangaGenAI, characters: Sequence[Character], log: Optional[PromptLogger] = None) -> str:
    prompt = prompts.build_worldview_prompt(characters)
    return _exchange(prompt, g.generate_text,
                     lambda response: extract_text(response, "the worldview"), str, log)


def generate_detailed_story_suggestion(g: MangaGenAI, premise: str, worldview: str,
                                       characters: Sequence[Character],
                                       previous_pages: Optional[Sequence[Page]] = None,
                                       log: Optional[PromptLogger] = None) -> StorySuggestion:
    prompt = prompts.build_story_suggestion_prompt(premise, worldview, characters, previous_pages)
    return _exchange(
        prompt, lambda p: g.generate_structured(p, StorySuggestion),
        lambda response: extract_structured(response, StorySuggestion, "story suggestion"),
        lambda s: s.model_dump_json(indent=2), log)


# ------------------ LAYOUT ------------------------


def generate_layout_proposal(g: MangaGenAI, story: str, characters: Sequence[Character], aspect_ratio_key: str,
                             previous_page: Optional[LayoutPage] = None, current_canvas: Optional[str] = None,
                             log: Optional[PromptLogger] = None) -> str:
    prompt = prompts.build_layout_prompt(story, characters, aspect_ratio_key, previous_page, current_canvas)
    return _image_call(g, prompt, "the layout proposal", log).image


# ------------------ CHARACTERS --------------------


def generate_character_sheet(g: MangaGenAI, reference_images: Sequence[str], character_name: str,
                             color_mode: ColorMode, log: Optional[PromptLogger] = None) -> str:
    prompt = prompts.build_character_sheet_prompt(reference_images, character_name, color_mode)
    return _image_call(g, prompt, "the character sheet", log).image


def generate_character_from_reference(g: MangaGenAI, reference_sheets: Sequence[str], character_name: str,
                                      character_concept: str, color_mode: ColorMode,
                                      log: Optional[PromptLogger] = None) -> str:
    prompt = prompts.build_character_from_reference_prompt(
        reference_sheets, character_name, character_concept, color_mode)
    return _image_call(g, prompt, "the character sheet", log).image


def edit_character_sheet(g: MangaGenAI, sheet_image: str, character_name: str, edit_prompt: str,
                         log: Optional[PromptLogger] = None) -> str:
    prompt = prompts.build_edit_character_sheet_prompt(sheet_image, character_name, edit_prompt)
    return _image_call(g, prompt, "the character sheet edit", log).image


# ------------------ PAGES -------------------------


def generate_manga_page(g: MangaGenAI, characters: Sequence[Character], panel_layout_image: str,
                        scene_description: str, color_mode: ColorMode, previous_page: Optional[Page] = None,
                        generate_empty_bubbles: bool = False, log: Optional[PromptLogger] = None) -> GeneratedContent:
    prompt = prompts.build_manga_page_prompt(
        characters, panel_layout_image, scene_description, color_mode, previous_page, generate_empty_bubbles)
    return _image_call(g, prompt, "the manga page", log)


def colorize_manga_page(g: MangaGenAI, monochrome_page: str, characters: Sequence[Character],
                        log: Optional[PromptLogger] = None) -> str:
    prompt = prompts.build_colorize_prompt(monochrome_page, characters)
    return _image_call(g, prompt, "colorization", log).image


def edit_manga_page(g: MangaGenAI, original_image: str, instruction: str, mask_image: Optional[str] = None,
                    reference_images: Optional[List[str]] = None, log: Optional[PromptLogger] = None) -> str:
    prompt = prompts.build_edit_page_prompt(original_image, instruction, mask_image, reference_images)
    return _image_call(g, prompt, "the image edit", log).image


# ------------------ QA ----------------------------


def analyze_and_suggest_corrections(g: MangaGenAI, panel_layout_image: str, generated_image: str,
                                    scene_description: str, characters: Sequence[Character],
                                    log: Optional[PromptLogger] = None) -> AnalysisResult:
    prompt = prompts.build_analysis_prompt(panel_layout_image, generated_image, scene_description, characters)
    return _exchange(
        prompt, lambda p: g.generate_structured(p, AnalysisResult),
        lambda response: extract_structured(response, AnalysisResult, "analysis"),
        lambda r: r.model_dump_json(indent=2), log)
