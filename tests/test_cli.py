"""
Tests for the command-line interface.

Synthesis runs against scripted backends: TTSService is swapped for a
factory that injects a CosyVoice backend with a fake SDK primitive.
"""
from __future__ import annotations

import json

import pytest

from conftest import RecordingWait, ScriptedPrimitive
from tts_gateway import cli
from tts_gateway.core.metrics import GatewayMetrics
from tts_gateway.services import tts_service
from tts_gateway.tts.backends.cosyvoice import CosyVoiceBackend


def _json_line(out: str) -> dict:
    lines = [line for line in out.splitlines() if line.startswith("{")]
    return json.loads(lines[-1])


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in ("DASHSCOPE_API_KEY", "TTS_GW_VOICE", "TTS_GW_OUTPUT_PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TTS_GW_SETTINGS", str(tmp_path / "missing.yaml"))


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "provider:\n"
        "  api_key: sk-test\n"
        "  voice_name: longxiaochun\n"
        f"  output_path: {tmp_path / 'audio'}\n"
        "retry:\n"
        "  retry_delay_ms: 10\n"
        "  synth_timeout_s: 1\n",
        encoding="utf-8",
    )
    return path


def _scripted_service(monkeypatch, primitive=None, stream_primitive=None):
    real = tts_service.TTSService

    def factory(provider, config):
        backend = CosyVoiceBackend(primitive=primitive, stream_primitive=stream_primitive)
        return real(provider, config, backend=backend, retry_wait=RecordingWait(), metrics=GatewayMetrics())

    monkeypatch.setattr(tts_service, "TTSService", factory)


class TestSelect:
    """--select prints the backend choice without credentials."""

    @pytest.mark.parametrize("voice, backend, rule", [
        ("Cherry", "qwen", "qwen-voice"),
        ("sambert-zhichu-v1", "sambert", "sambert-marker"),
        ("longxiaochun", "cosyvoice", "default"),
    ])
    def test_select_voice(self, capsys, voice, backend, rule):
        code = cli.main(["--select", voice, "--json"])

        assert code == 0
        out = capsys.readouterr().out
        assert "SELECT_OK" in out
        payload = _json_line(out)
        assert payload["backend"] == backend
        assert payload["rule"] == rule

    def test_select_configured_voice(self, capsys, settings_file):
        code = cli.main(["--settings", str(settings_file), "--select", "--json"])
        assert code == 0
        assert _json_line(capsys.readouterr().out)["voice"] == "longxiaochun"


class TestSynthesis:
    """Synthesis through the CLI."""

    def test_missing_api_key(self, capsys):
        code = cli.main(["Hello there", "--json"])
        assert code == 2
        assert _json_line(capsys.readouterr().out)["error"] == "NOT_CONFIGURED"

    def test_settings_not_a_mapping(self, capsys, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- provider\n- retry\n", encoding="utf-8")

        code = cli.main(["--settings", str(path), "Hello there", "--json"])

        assert code == 2
        assert _json_line(capsys.readouterr().out)["error"] == "NOT_CONFIGURED"

    def test_writes_file(self, capsys, monkeypatch, settings_file, tmp_path):
        _scripted_service(monkeypatch, primitive=ScriptedPrimitive(b"RIFFcli"))
        out_dir = tmp_path / "cli-out"

        code = cli.main(["--settings", str(settings_file), "--text", "Hello there",
                         "--out-dir", str(out_dir), "--json"])

        assert code == 0
        out = capsys.readouterr().out
        assert "CLI_OK" in out
        item = _json_line(out)["items"][0]
        assert item["ok"] is True
        files = list(out_dir.iterdir())
        assert len(files) == 1
        assert files[0].read_bytes() == b"RIFFcli"
        assert item["out"] == str(files[0])

    def test_batch_file(self, capsys, monkeypatch, settings_file, tmp_path):
        _scripted_service(monkeypatch, primitive=ScriptedPrimitive(b"RIFF"))
        inputs = tmp_path / "inputs.txt"
        inputs.write_text("first\n\nsecond\n", encoding="utf-8")

        code = cli.main(["--settings", str(settings_file), "--file", str(inputs), "--json"])

        assert code == 0
        assert len(_json_line(capsys.readouterr().out)["items"]) == 2

    def test_unavailable_backend(self, capsys, monkeypatch, settings_file):
        _scripted_service(monkeypatch, primitive=ScriptedPrimitive(None))

        code = cli.main(["--settings", str(settings_file), "Hello there", "--json"])

        assert code == 1
        out = capsys.readouterr().out
        assert "CLI_FAILED" in out
        assert _json_line(out)["items"] == [{"out": "", "ok": False}]

    def test_stream_to_file(self, capsys, monkeypatch, settings_file, tmp_path):
        _scripted_service(monkeypatch, stream_primitive=lambda params: [b"ab", b"cd"])
        out_path = tmp_path / "hello.pcm"

        code = cli.main(["--settings", str(settings_file), "Hello", "--stream", "--out", str(out_path), "--json"])

        assert code == 0
        assert out_path.read_bytes() == b"abcd"
        assert _json_line(capsys.readouterr().out)["items"][0]["chunks"] == 2

    def test_stream_unsupported_for_qwen_voice(self, capsys, settings_file, tmp_path):
        code = cli.main(["--settings", str(settings_file), "Hello", "--voice", "Cherry",
                         "--stream", "--out", str(tmp_path / "x.pcm"), "--json"])

        assert code == 1
        item = _json_line(capsys.readouterr().out)["items"][0]
        assert item["error"] == "UNSUPPORTED_OPERATION"

    def test_no_text(self, settings_file):
        with pytest.raises(SystemExit):
            cli.main(["--settings", str(settings_file)])
