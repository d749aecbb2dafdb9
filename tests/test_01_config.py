"""
Tests for configuration validation and defaults.

Tests cover:
- Defaults class values
- GatewayConfig.from_settings() - all sections
- ConfigValidationError on invalid values
- String log level coercion ("DEBUG" -> 4)
- Missing sections use defaults
- ProviderConfig cache keys
- load_settings() file handling and environment overrides
"""

import pytest

from tts_gateway.core.config import (
    ConfigValidationError,
    Defaults,
    GatewayConfig,
    ProviderConfig,
    RetryConfig,
    Settings,
    load_settings,
)


class TestDefaults:
    """Tests for Defaults class values."""

    def test_retry_defaults(self):
        assert Defaults.RETRY_MAX_ATTEMPTS == 3
        assert Defaults.RETRY_DELAY_MS == 1000
        assert Defaults.SYNTH_TIMEOUT_S == 5.0
        assert Defaults.DOWNLOAD_TIMEOUT_S == 5.0

    def test_backend_defaults(self):
        assert Defaults.SAMPLE_RATE == 16000
        assert Defaults.AUDIO_FORMAT == "wav"
        assert Defaults.QWEN_MODEL == "qwen-tts"
        assert Defaults.COSYVOICE_MODEL == "cosyvoice-v1"

    def test_retry_delay_seconds(self):
        assert RetryConfig().retry_delay_s == 1.0
        assert RetryConfig(retry_delay_ms=10).retry_delay_s == pytest.approx(0.01)


class TestGatewayConfigFromSettings:
    """Tests for GatewayConfig.from_settings()."""

    def test_empty_settings_use_defaults(self):
        config = GatewayConfig.from_settings(Settings(raw={}))
        assert config.retry.max_attempts == Defaults.RETRY_MAX_ATTEMPTS
        assert config.retry.retry_delay_ms == Defaults.RETRY_DELAY_MS
        assert config.backends.audio_format == "wav"
        assert config.logging.level == Defaults.LOGGING_LEVEL
        assert config.text_max_chars == Defaults.TEXT_MAX_CHARS

    def test_null_sections_use_defaults(self):
        config = GatewayConfig.from_settings(Settings(raw={"retry": None, "input": None, "logging": None}))
        assert config.retry.max_attempts == 3
        assert config.text_max_chars == Defaults.TEXT_MAX_CHARS

    def test_retry_section(self):
        raw = {"retry": {"max_attempts": 5, "retry_delay_ms": 250, "synth_timeout_s": 2, "download_timeout_s": 7}}
        config = GatewayConfig.from_settings(Settings(raw=raw))
        assert config.retry == RetryConfig(max_attempts=5, retry_delay_ms=250, synth_timeout_s=2.0,
                                           download_timeout_s=7.0)

    def test_backend_section(self):
        raw = {"backends": {"sample_rate": 24000, "audio_format": "MP3", "qwen_model": "qwen-tts-latest"}}
        config = GatewayConfig.from_settings(Settings(raw=raw))
        assert config.backends.sample_rate == 24000
        assert config.backends.audio_format == "mp3"
        assert config.backends.qwen_model == "qwen-tts-latest"

    def test_zero_attempts_rejected(self):
        with pytest.raises(ConfigValidationError, match="retry.max_attempts"):
            GatewayConfig.from_settings(Settings(raw={"retry": {"max_attempts": 0}}))

    def test_negative_delay_rejected(self):
        with pytest.raises(ConfigValidationError, match="retry.retry_delay_ms"):
            GatewayConfig.from_settings(Settings(raw={"retry": {"retry_delay_ms": -1}}))

    def test_zero_delay_allowed(self):
        config = GatewayConfig.from_settings(Settings(raw={"retry": {"retry_delay_ms": 0}}))
        assert config.retry.retry_delay_ms == 0

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ConfigValidationError, match="synth_timeout_s"):
            GatewayConfig.from_settings(Settings(raw={"retry": {"synth_timeout_s": 0}}))

    def test_audio_format_must_be_extension(self):
        with pytest.raises(ConfigValidationError, match="audio_format"):
            GatewayConfig.from_settings(Settings(raw={"backends": {"audio_format": "../wav"}}))

    def test_service_cache_size(self):
        assert GatewayConfig.from_settings(Settings(raw={})).service_cache_size == Defaults.SERVICE_CACHE_SIZE
        config = GatewayConfig.from_settings(Settings(raw={"service": {"cache_size": 4}}))
        assert config.service_cache_size == 4

    def test_zero_service_cache_rejected(self):
        with pytest.raises(ConfigValidationError, match="service.cache_size"):
            GatewayConfig.from_settings(Settings(raw={"service": {"cache_size": 0}}))

    def test_string_log_level(self):
        config = GatewayConfig.from_settings(Settings(raw={"logging": {"level": "DEBUG"}}))
        assert config.logging.level == 4

    def test_log_level_out_of_range(self):
        with pytest.raises(ConfigValidationError, match="logging.level"):
            GatewayConfig.from_settings(Settings(raw={"logging": {"level": 7}}))


class TestProviderConfig:
    """Tests for the provider record."""

    def test_provider_from_settings(self):
        settings = Settings(raw={"provider": {"api_key": "sk-1", "voice_name": "Cherry", "output_path": "out/"}})
        provider = settings.provider_config()
        assert provider.api_key == "sk-1"
        assert provider.voice_name == "Cherry"
        assert provider.output_path == "out/"

    def test_provider_defaults(self):
        provider = Settings(raw={"provider": {"api_key": "sk-1"}}).provider_config()
        assert provider.voice_name == Defaults.PROVIDER_VOICE_NAME
        assert provider.output_path == Defaults.PROVIDER_OUTPUT_PATH

    def test_missing_api_key_rejected(self):
        with pytest.raises(ConfigValidationError, match="api_key"):
            Settings(raw={}).provider_config()

    def test_cache_key_uses_config_id(self):
        assert ProviderConfig(api_key="k", config_id="42").cache_key == "id:42"

    def test_cache_key_depends_on_fields(self):
        a = ProviderConfig(api_key="k", voice_name="Cherry")
        b = ProviderConfig(api_key="k", voice_name="Cherry")
        c = ProviderConfig(api_key="k", voice_name="Ethan")
        assert a.cache_key == b.cache_key
        assert a.cache_key != c.cache_key
        assert a.cache_key.startswith("cfg:")

    def test_api_key_not_in_repr_of_request(self):
        from pathlib import Path

        from tts_gateway.tts.outcome import SynthesisRequest

        request = SynthesisRequest(text="hi", voice="Cherry", credentials="sk-secret", output_dir=Path("."))
        assert "sk-secret" not in repr(request)


class TestLoadSettings:
    """Tests for load_settings()."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for name in ("DASHSCOPE_API_KEY", "TTS_GW_VOICE", "TTS_GW_OUTPUT_PATH", "TTS_GW_SETTINGS"):
            monkeypatch.delenv(name, raising=False)

    def test_missing_file_gives_empty_settings(self, tmp_path):
        settings = load_settings(str(tmp_path / "missing.yaml"))
        assert settings.raw == {"provider": {}}

    def test_yaml_file_loaded(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("provider:\n  api_key: sk-file\n  voice_name: Serena\nretry:\n  max_attempts: 2\n",
                        encoding="utf-8")
        settings = load_settings(str(path))
        assert settings.provider_config().voice_name == "Serena"
        assert settings.get_gateway_config().retry.max_attempts == 2

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="mapping"):
            load_settings(str(path))

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("provider:\n  api_key: sk-file\n  voice_name: Serena\n", encoding="utf-8")
        monkeypatch.setenv("DASHSCOPE_API_KEY", "sk-env")
        monkeypatch.setenv("TTS_GW_VOICE", "sambert-zhichu-v1")
        monkeypatch.setenv("TTS_GW_OUTPUT_PATH", "elsewhere/")
        provider = load_settings(str(path)).provider_config()
        assert provider.api_key == "sk-env"
        assert provider.voice_name == "sambert-zhichu-v1"
        assert provider.output_path == "elsewhere/"

    def test_settings_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("provider:\n  api_key: sk-custom\n", encoding="utf-8")
        monkeypatch.setenv("TTS_GW_SETTINGS", str(path))
        assert load_settings().provider_config().api_key == "sk-custom"
