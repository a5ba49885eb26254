# errors.py
from typing import Optional


class GenerationError(RuntimeError):
    """Base for every failure raised while turning a backend response into a result."""
    kind = "generation_error"


class EmptyResponse(GenerationError):
    """The backend returned no candidates at all, usually a content-policy block."""
    kind = "empty_response"

    def __init__(self, message: str, block_reason: Optional[str] = None):
        super().__init__(message)
        self.block_reason = block_reason


class MissingExpectedImage(GenerationError):
    """Candidates came back but none of the parts carried image bytes."""
    kind = "missing_expected_image"

    def __init__(self, message: str, model_text: Optional[str] = None, finish_reason: Optional[str] = None):
        super().__init__(message)
        self.model_text = model_text
        self.finish_reason = finish_reason


class MissingExpectedOutput(GenerationError):
    kind = "missing_expected_output"


class InvalidStructuredPayload(GenerationError):
    """
    The JSON text of a structured-mode call did not parse, or parsed but did not
    match the declared schema. `stage` is "parse" or "validate"; `cause` keeps
    the underlying exception.
    """
    kind = "invalid_structured_payload"

    def __init__(self, message: str, stage: str, cause: Optional[Exception] = None, payload: str = ""):
        super().__init__(message)
        self.stage = stage
        self.cause = cause
        self.payload = payload


class MissingCharacterSheet(ValueError):
    """A character without a sheet image was passed to an operation that draws it."""

    def __init__(self, character_name: str, operation: str):
        super().__init__(
            f"Character '{character_name}' has no sheet image; it is required for {operation}.")
        self.character_name = character_name
        self.operation = operation
