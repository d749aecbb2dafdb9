"""
Tests for backend selection by voice identifier.

Tests cover:
- "sambert" substring routes to sambert
- The four Qwen voices route to qwen (exact, case-sensitive)
- Everything else, including empty and None, routes to cosyvoice
- Rule priority and custom rules
"""
import pytest

from tts_gateway.tts.backend import BackendKind
from tts_gateway.tts.selector import (
    QWEN_VOICES,
    BackendSelector,
    default_selector,
    select_backend,
)


class TestDefaultRules:
    """Tests for the built-in selection rules."""

    @pytest.mark.parametrize("voice", ["sambert-zhichu-v1", "sambert-zhiqi-v1", "my-sambert-voice", "sambert"])
    def test_sambert_substring(self, voice):
        assert select_backend(voice) is BackendKind.SAMBERT

    @pytest.mark.parametrize("voice", sorted(QWEN_VOICES))
    def test_qwen_voices(self, voice):
        assert select_backend(voice) is BackendKind.QWEN

    @pytest.mark.parametrize("voice", ["cherry", "CHERRY", "Cherry ", "Cherry2", "Sambert-x"])
    def test_near_misses_fall_through(self, voice):
        assert select_backend(voice) is BackendKind.COSYVOICE

    @pytest.mark.parametrize("voice", ["longxiaochun", "", None, "  ", "!!"])
    def test_default_backend(self, voice):
        assert select_backend(voice) is BackendKind.COSYVOICE

    def test_sambert_rule_wins_over_qwen(self):
        selector = default_selector()
        selector.register(lambda v: v == "sambert-qwen", BackendKind.QWEN, name="late")
        assert selector.select("sambert-qwen") is BackendKind.SAMBERT

    def test_selection_is_deterministic(self):
        assert {select_backend("Ethan") for _ in range(20)} == {BackendKind.QWEN}

    def test_explain_reports_rule(self):
        selector = default_selector()
        assert selector.explain("sambert-zhichu-v1") == (BackendKind.SAMBERT, "sambert-marker")
        assert selector.explain("Serena") == (BackendKind.QWEN, "qwen-voice")
        assert selector.explain("longxiaochun") == (BackendKind.COSYVOICE, "default")


class TestCustomRules:
    """Tests for extending the selector."""

    def test_register_appends_rule(self):
        selector = BackendSelector()
        selector.register(lambda v: v.startswith("long"), BackendKind.SAMBERT, name="long-prefix")
        assert selector.select("longxiaochun") is BackendKind.SAMBERT
        assert selector.select("Cherry") is BackendKind.QWEN

    def test_register_first_takes_priority(self):
        selector = BackendSelector()
        selector.register(lambda v: v == "Cherry", BackendKind.COSYVOICE, first=True)
        assert selector.select("Cherry") is BackendKind.COSYVOICE

    def test_custom_default(self):
        selector = BackendSelector(rules=[], default=BackendKind.QWEN)
        assert selector.select("sambert-zhichu-v1") is BackendKind.QWEN

    def test_default_selector_instances_are_independent(self):
        a = default_selector()
        a.register(lambda v: True, BackendKind.SAMBERT, first=True)
        assert default_selector().select("longxiaochun") is BackendKind.COSYVOICE
