# gemini_client.py
from pathlib import Path
from typing import List, Optional, Type

from google import genai
from google.genai import types
from pydantic import BaseModel

import config
from prompts import Prompt

# --- Simple prompt logger (stdout + file) ---


class PromptLogger:
    def __init__(self, out_file: Optional[Path] = None, echo: Optional[bool] = None):
        self.out_file = out_file
        self.echo = config.PRINT_PROMPTS if echo is None else echo
        self.lines: List[str] = []

    def log(self, title: str, content: str):
        block = f"\n===== {title} =====\n{content.strip()}\n"
        self.lines.append(block)
        if self.echo:
            print(block)

    def log_prompt(self, prompt: Prompt):
        attached = "\n".join(
            f"  [{i}] {a.label} ({a.media_type}, {len(a.data)} bytes)"
            for i, a in enumerate(prompt.attachments, start=1)) or "  (none)"
        self.log(f"{prompt.kind.upper()}_PROMPT", f"{prompt.text}\n\nAttachments:\n{attached}")

    def flush(self):
        """Append what has been logged since the last flush to out_file, if there is one."""
        if self.out_file is None or not self.lines:
            return
        self.out_file.parent.mkdir(parents=True, exist_ok=True)
        with self.out_file.open("a", encoding="utf-8") as f:
            f.write("".join(self.lines))
        self.lines = []


def default_logger() -> PromptLogger:
    return PromptLogger(Path(config.PROMPT_LOG_FILE) if config.PROMPT_LOG_FILE else None)


# ------------------ GENAI WRAPPER ----------------


def to_contents(prompt: Prompt) -> List[types.Part]:
    """Instruction text first, then each attachment in the order the text names them."""
    parts = [types.Part.from_text(text=prompt.text)]
    for a in prompt.attachments:
        parts.append(types.Part.from_bytes(data=a.data, mime_type=a.media_type))
    return parts


class MangaGenAI:
    """
    One request, one response. No retries, no streaming: whatever the SDK raises
    goes straight back to the caller.
    """

    def __init__(self, api_key: Optional[str] = None, client=None,
                 text_model: str = config.TEXT_MODEL, image_model: str = config.IMAGE_MODEL):
        self.client = client if client is not None else genai.Client(
            api_key=api_key or config.require_api_key())
        self.text_model = text_model
        self.image_model = image_model

    def _call(self, model: str, prompt: Prompt, generation_config) -> types.GenerateContentResponse:
        try:
            return self.client.models.generate_content(
                model=model,
                contents=to_contents(prompt),
                config=generation_config,
            )
        except Exception as e:
            print(f"[ERROR] Gemini call for {prompt.kind} failed: {e}")
            raise

    # Plain text (worldview)
    def generate_text(self, prompt: Prompt) -> types.GenerateContentResponse:
        return self._call(self.text_model, prompt, None)

    # Structured output generation
    def generate_structured(self, prompt: Prompt, response_schema: Type[BaseModel]) -> types.GenerateContentResponse:
        return self._call(self.text_model, prompt, {
            "response_mime_type": "application/json",
            "response_schema": response_schema,
        })

    # Image + optional caption
    def generate_multimodal(self, prompt: Prompt) -> types.GenerateContentResponse:
        return self._call(self.image_model, prompt, types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
        ))
