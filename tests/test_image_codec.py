"""
Tests for image_codec: data-URI parsing and building.
"""

import io

import pytest
from PIL import Image

import image_codec
from conftest import data_uri


class TestDecode:

    @pytest.mark.parametrize("mime, data", [
        ("image/png", b"\x89PNG\r\n\x1a\n\x00\x01"),
        ("image/jpeg", b"\xff\xd8\xff"),
        ("image/svg+xml", b"<svg/>"),
        ("image/webp", b""),
    ])
    def test_encode_then_decode_is_identity(self, mime, data):
        assert image_codec.decode(image_codec.encode(mime, data)) == (mime, data)

    def test_reads_media_type_from_prefix(self):
        assert image_codec.media_type_of(data_uri(b"x", "image/jpeg")) == "image/jpeg"

    def test_bare_base64_defaults_to_png(self):
        mime, data = image_codec.decode("aGVsbG8=")
        assert mime == "image/png"
        assert data == b"hello"

    @pytest.mark.parametrize("value", [
        "",
        "not an image at all",
        "data:;base64,aGVsbG8=",
        "data:image/png,aGVsbG8=",
        "data:garbage;base64,aGVsbG8=",
        "data:image/png;base64",
    ])
    def test_malformed_input_never_raises(self, value):
        mime, _ = image_codec.decode(value)
        assert mime == "image/png"

    def test_none_is_treated_as_empty(self):
        assert image_codec.decode(None) == ("image/png", b"")

    def test_missing_padding_and_whitespace_are_tolerated(self):
        mime, data = image_codec.decode("data:image/gif;base64,aGVs\nbG8")
        assert mime == "image/gif"
        assert data == b"hello"

    def test_urlsafe_alphabet_is_accepted(self):
        # b"\xfb\xff" encodes to "+/8=" standard, "-_8=" url-safe
        assert image_codec.decode("data:image/png;base64,-_8=")[1] == b"\xfb\xff"


class TestEncode:

    def test_builds_data_uri(self):
        assert image_codec.encode("image/png", b"hello") == "data:image/png;base64,aGVsbG8="

    def test_empty_media_type_falls_back(self):
        assert image_codec.encode("", b"hi").startswith("data:image/png;base64,")


class TestBlankCanvas:

    def test_uses_preset_dimensions(self):
        mime, data = image_codec.decode(image_codec.blank_canvas("Widescreen (16:9)"))
        img = Image.open(io.BytesIO(data))
        assert mime == "image/png"
        assert img.size == (1280, 720)

    def test_unknown_preset_is_a4(self):
        _, data = image_codec.decode(image_codec.blank_canvas("Letter"))
        assert Image.open(io.BytesIO(data)).size == (595, 842)
