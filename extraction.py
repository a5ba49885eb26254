# extraction.py
"""
Turns a raw `GenerateContentResponse` into the value an operation promised, or
raises one of the errors in `errors`. Checks are structural only: a part is
there and has the right shape. Whether the picture is any good is not judged
here.
"""
import json
from typing import List, Optional, Type, TypeVar

from google.genai import types
from pydantic import BaseModel, ValidationError

import image_codec
from errors import EmptyResponse, InvalidStructuredPayload, MissingExpectedImage, MissingExpectedOutput
from models import GeneratedContent

M = TypeVar("M", bound=BaseModel)


def _block_reason(response: types.GenerateContentResponse) -> Optional[str]:
    feedback = getattr(response, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None) if feedback else None
    if reason is None:
        return None
    return getattr(reason, "name", str(reason))


def _finish_reason(candidate: types.Candidate) -> Optional[str]:
    reason = getattr(candidate, "finish_reason", None)
    if reason is None:
        return None
    return getattr(reason, "name", str(reason))


def _finish_detail(candidate: types.Candidate) -> str:
    """' Finish reason: X (message).' for the log and the error, or '' when the candidate says nothing."""
    reason = _finish_reason(candidate)
    message = getattr(candidate, "finish_message", None)
    if not reason and not message:
        return ""
    detail = f" Finish reason: {reason or 'unknown'}"
    if message:
        detail += f" ({message})"
    return detail + "."


def first_candidate(response: types.GenerateContentResponse, what: str) -> types.Candidate:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        reason = _block_reason(response)
        msg = f"The AI did not return a valid response for {what}. It may have been blocked."
        if reason:
            msg += f" Block reason: {reason}."
        raise EmptyResponse(msg, block_reason=reason)
    return candidates[0]


def candidate_parts(candidate: types.Candidate) -> List[types.Part]:
    content = getattr(candidate, "content", None)
    return list(getattr(content, "parts", None) or [])


def _texts(parts: List[types.Part]) -> List[str]:
    return [p.text for p in parts if getattr(p, "text", None) and not getattr(p, "thought", False)]


def extract_text(response: types.GenerateContentResponse, what: str) -> str:
    candidate = first_candidate(response, what)
    text = "".join(_texts(candidate_parts(candidate))).strip()
    if not text:
        raise MissingExpectedOutput(f"The AI returned no text for {what}.{_finish_detail(candidate)}")
    return text


def parse_structured(payload: str, schema: Type[M], what: str) -> M:
    """
    JSON text -> validated model. A JSON syntax error and a schema mismatch are
    both InvalidStructuredPayload; `stage` tells them apart.
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise InvalidStructuredPayload(
            f"The AI returned an invalid {what} structure: response is not valid JSON ({e}).",
            stage="parse", cause=e, payload=payload) from e
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise InvalidStructuredPayload(
            f"The AI returned an invalid {what} structure: {e.error_count()} field error(s). {e}",
            stage="validate", cause=e, payload=payload) from e


def extract_structured(response: types.GenerateContentResponse, schema: Type[M], what: str) -> M:
    return parse_structured(extract_text(response, what), schema, what)


def extract_generated_content(response: types.GenerateContentResponse, what: str) -> GeneratedContent:
    """
    First image part and first text part of the first candidate. The image is
    mandatory; without one, the error carries every text part the model sent
    and the candidate's finish reason.
    """
    candidate = first_candidate(response, what)
    parts = candidate_parts(candidate)

    image = None
    for p in parts:
        blob = getattr(p, "inline_data", None)
        if blob is not None and blob.data:
            image = image_codec.encode(blob.mime_type, blob.data)
            break
    texts = _texts(parts)

    if image is None:
        said = "".join(texts).strip() or None
        reason = _finish_reason(candidate)
        msg = f"The AI did not return an image for {what}.{_finish_detail(candidate)}"
        if said:
            msg += f" Response: \"{said}\""
        print(f"[ERROR] {msg}")
        raise MissingExpectedImage(msg, model_text=said, finish_reason=reason)
    return GeneratedContent(image=image, text=texts[0] if texts else None)
