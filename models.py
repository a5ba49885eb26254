# models.py
from typing import Literal, List, Optional, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, field_validator, model_validator

ColorMode = Literal["color", "monochrome"]

# ------------------ DATA MODELS -------------------
# Collaborator-owned values. Field names mirror the UI's JSON.


class Character(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = ""
    # EncodedImage; required by every operation that has to draw the character
    sheetImage: Optional[str] = None
    referenceImages: List[str] = Field(default_factory=list)


class Page(BaseModel):
    model_config = ConfigDict(frozen=True)

    sceneDescription: str = ""
    generatedImage: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.generatedImage) and bool(self.sceneDescription)


class LayoutPage(BaseModel):
    """Previous page as seen by the layout step: its rough sketch and script."""
    model_config = ConfigDict(frozen=True)

    proposalImage: str
    sceneDescription: str = ""


class GeneratedContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    image: Optional[str] = None
    text: Optional[str] = None


# ------------------ STRUCTURED RESPONSES ----------
# Used both as the response_schema sent to Gemini and to validate what comes back.


class Panel(BaseModel):
    model_config = ConfigDict(frozen=True)

    panel: StrictInt = Field(description="The panel number (e.g., 1, 2, 3).")
    description: StrictStr = Field(
        description="A description of the visual action, camera angle, character expressions, or environment in the panel.")
    dialogue: StrictStr = Field(
        default="",
        description="The dialogue spoken by a character in the panel. Format as 'Character Name: \"Line of dialogue\"'. Can be empty.")

    @field_validator("dialogue", mode="before")
    @classmethod
    def _null_dialogue(cls, v):
        return "" if v is None else v


class StorySuggestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: StrictStr = Field(
        description="A brief, one-sentence summary of the page's story.")
    panels: List[Panel] = Field(
        description="An array of panel objects, describing the scene.")


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    analysis: StrictStr
    has_discrepancies: StrictBool
    correction_prompt: StrictStr

    @model_validator(mode="after")
    def _correction_matches_flag(self):
        if self.has_discrepancies and not self.correction_prompt:
            raise ValueError(
                "correction_prompt must be non-empty when has_discrepancies is true")
        if not self.has_discrepancies and self.correction_prompt:
            raise ValueError(
                "correction_prompt must be empty when has_discrepancies is false")
        return self


# ------------------ ASPECT RATIOS -----------------


class AspectRatioProfile(NamedTuple):
    width: int
    height: int
    ratio: str


DEFAULT_ASPECT_RATIO = "A4"

ASPECT_RATIOS = {
    "A4": AspectRatioProfile(595, 842, "210:297"),
    "Portrait (3:4)": AspectRatioProfile(600, 800, "3:4"),
    "Square (1:1)": AspectRatioProfile(800, 800, "1:1"),
    "Widescreen (16:9)": AspectRatioProfile(1280, 720, "16:9"),
}


def aspect_ratio_profile(key: Optional[str]) -> AspectRatioProfile:
    return ASPECT_RATIOS.get(key or "", ASPECT_RATIOS[DEFAULT_ASPECT_RATIO])
