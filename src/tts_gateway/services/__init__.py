"""
tts-gateway Services Layer.

Business logic between the API/CLI surfaces and the synthesis components.

Components:
    - tts_service.py: TTSService (select, attempt, retry, persist) and the
      per-configuration service cache
    - validators.py: Input validation functions
"""
from .tts_service import (
    TTSService,
    get_service,
    remove_cache,
    reset_services,
)

__all__ = [
    "TTSService",
    "get_service",
    "remove_cache",
    "reset_services",
]
