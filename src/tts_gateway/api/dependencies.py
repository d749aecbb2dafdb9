"""
FastAPI Dependency Injection Providers.

Hierarchy:
    1. get_settings() - loads and caches the settings file
    2. get_service_resolver() - returns resolve(voice) -> TTSService
    3. get_text_validator() - returns check(text) -> stripped text

Services are cached per provider configuration, so a request that
overrides the voice gets (and reuses) the service for that voice. The
cache is bounded by service.cache_size; the least recently used voice
is dropped first.

Tests replace get_service_resolver and get_text_validator through
app.dependency_overrides.
"""
from __future__ import annotations

from dataclasses import replace
from functools import lru_cache
from typing import Callable, Optional

from tts_gateway.core.config import GatewayConfig, Settings, load_settings
from tts_gateway.services.tts_service import TTSService, get_service
from tts_gateway.services.validators import validate_text, validate_voice

ServiceResolver = Callable[[Optional[str]], TTSService]
TextValidator = Callable[[Optional[str]], str]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The file comes from TTS_GW_SETTINGS or config/settings.yaml; a missing
    file means defaults plus environment overrides.
    """
    return load_settings()


@lru_cache(maxsize=1)
def get_gateway_config() -> GatewayConfig:
    return get_settings().get_gateway_config()


def get_service_resolver() -> ServiceResolver:
    """
    Resolve services by voice override.

    Raises:
        ConfigValidationError: (from resolve) if no API key is configured.
        InvalidInputError: (from resolve) if the voice override is invalid.
    """
    def resolve(voice: Optional[str] = None) -> TTSService:
        provider = get_settings().provider_config()
        voice = validate_voice(voice)
        if voice and voice != provider.voice_name:
            provider = replace(provider, voice_name=voice, config_id=None)
        return get_service(provider, get_gateway_config())

    return resolve


def get_text_validator() -> TextValidator:
    """
    Validate request text against input.text_max_chars.

    Raises:
        ConfigValidationError: (from check) if the settings are invalid.
        InvalidInputError: (from check) if the text is blank or too long.
    """
    def check(text: Optional[str]) -> str:
        return validate_text(text, get_gateway_config().text_max_chars)

    return check
