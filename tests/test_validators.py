"""
Tests for input validation functions.

Tests cover:
- validate_text() - empty, whitespace, max length, valid, unicode
- validate_voice() - optional, max length, path separators
"""
import pytest

from tts_gateway.services.validators import MAX_VOICE_CHARS, validate_text, validate_voice
from tts_gateway.tts.errors import ErrorCode, InvalidInputError


class TestValidateText:
    """Tests for validate_text() function."""

    def test_valid_text(self):
        assert validate_text("Hello, world!") == "Hello, world!"

    def test_strips_whitespace(self):
        assert validate_text("  Hello  \n") == "Hello"

    def test_unicode(self):
        assert validate_text("你好，世界") == "你好，世界"

    @pytest.mark.parametrize("text", [None, "", "   ", "\n\t"])
    def test_blank_rejected(self, text):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_text(text)
        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert exc_info.value.details["code"] == "TEXT_REQUIRED"

    def test_max_length(self):
        assert validate_text("a" * 10, max_length=10) == "a" * 10
        with pytest.raises(InvalidInputError) as exc_info:
            validate_text("a" * 11, max_length=10)
        assert exc_info.value.details["code"] == "TEXT_TOO_LONG"


class TestValidateVoice:
    """Tests for validate_voice() function."""

    @pytest.mark.parametrize("voice", [None, ""])
    def test_missing_voice_is_none(self, voice):
        assert validate_voice(voice) is None

    @pytest.mark.parametrize("voice", ["Cherry", "sambert-zhichu-v1", "longxiaochun"])
    def test_valid_voice(self, voice):
        assert validate_voice(voice) == voice

    def test_too_long(self):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_voice("v" * (MAX_VOICE_CHARS + 1))
        assert exc_info.value.details["code"] == "VOICE_TOO_LONG"

    @pytest.mark.parametrize("voice", ["../etc", "a\\b"])
    def test_path_separators(self, voice):
        with pytest.raises(InvalidInputError) as exc_info:
            validate_voice(voice)
        assert exc_info.value.details["code"] == "VOICE_INVALID_CHARS"
