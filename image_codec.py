# image_codec.py
"""
The only place that reads or writes the `data:<media-type>;base64,<payload>`
form the UI hands us and expects back.
"""
import io
import re
import base64
from typing import Tuple

from PIL import Image

from models import aspect_ratio_profile

DEFAULT_MEDIA_TYPE = "image/png"

_DATA_PREFIX = "data:"
_BASE64_MARKER = ";base64"
_MEDIA_TYPE = re.compile(r"^[A-Za-z0-9][\w.+-]*/[\w.+-]+$")
_NOT_BASE64 = re.compile(r"[^A-Za-z0-9+/]")


def media_type_of(image: str) -> str:
    """
    Media type declared in the data-URI header, or image/png when the header is
    missing or does not carry a `type/subtype` token before `;base64,`.
    """
    if not image or not image.startswith(_DATA_PREFIX):
        return DEFAULT_MEDIA_TYPE
    comma = image.find(",")
    if comma < 0:
        return DEFAULT_MEDIA_TYPE
    header = image[len(_DATA_PREFIX):comma]
    if not header.endswith(_BASE64_MARKER):
        return DEFAULT_MEDIA_TYPE
    token = header.split(";", 1)[0].strip()
    if not _MEDIA_TYPE.match(token):
        return DEFAULT_MEDIA_TYPE
    return token


def _payload_text(image: str) -> str:
    comma = image.find(",")
    return image[comma + 1:] if comma >= 0 else image


def _lenient_b64decode(text: str) -> bytes:
    text = text.replace("-", "+").replace("_", "/")
    text = _NOT_BASE64.sub("", text)
    # a lone trailing sextet cannot encode a byte
    if len(text) % 4 == 1:
        text = text[:-1]
    text += "=" * (-len(text) % 4)
    return base64.b64decode(text)


def decode(image: str) -> Tuple[str, bytes]:
    """Split an EncodedImage into (media type, raw bytes). Never raises."""
    image = image or ""
    return media_type_of(image), _lenient_b64decode(_payload_text(image))


def encode(media_type: str, data: bytes) -> str:
    return f"data:{media_type or DEFAULT_MEDIA_TYPE};base64,{base64.b64encode(data).decode('ascii')}"


# ------------------ PIL HELPERS -------------------


def pil_to_png_bytes(img: Image.Image) -> bytes:
    """Converts a PIL Image object to PNG bytes."""
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def blank_canvas(aspect_ratio_key: str) -> str:
    """White PNG sized for the aspect-ratio preset, ready to send as the layout canvas."""
    profile = aspect_ratio_profile(aspect_ratio_key)
    canvas = Image.new("RGB", (profile.width, profile.height), (255, 255, 255))
    return encode("image/png", pil_to_png_bytes(canvas))
