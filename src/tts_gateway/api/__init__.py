"""
FastAPI REST API Layer for tts-gateway.

    - routes.py: /v1/tts, /health, /metrics
    - schemas.py: Request/response models
    - dependencies.py: Settings and service resolution
"""
