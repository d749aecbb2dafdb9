"""
TTS API Routes.

Endpoints:
    POST /v1/tts   - Synthesize and persist audio, return the file record
    GET  /health   - Service configuration for the default voice
    GET  /metrics  - Prometheus metrics

Error Handling:
    Errors are returned as JSON:
    {
        "ok": false,
        "error": "<ERROR_CODE>",
        "message": "<human readable message>",
        "request_id": "<id>"
    }

    HTTP status codes by error code:
        - INVALID_INPUT -> 400
        - SYNTHESIS_UNAVAILABLE -> 503
        - CANCELLED -> 503
        - PERSISTENCE_FAILED -> 500
        - NOT_CONFIGURED -> 503

Example:
    curl -X POST http://localhost:8000/v1/tts \\
        -H "Content-Type: application/json" \\
        -d '{"text": "Hello there", "voice": "Cherry"}'
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from tts_gateway.api.dependencies import (
    ServiceResolver,
    TextValidator,
    get_service_resolver,
    get_text_validator,
)
from tts_gateway.api.schemas import TTSRequest, TTSResponse
from tts_gateway.core.config import ConfigValidationError
from tts_gateway.core.logging import set_request_id
from tts_gateway.core.metrics import metrics
from tts_gateway.tts.errors import ErrorCode, TTSError

router = APIRouter()

NOT_CONFIGURED = "NOT_CONFIGURED"

_STATUS_MAP = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.SYNTHESIS_UNAVAILABLE: 503,
    ErrorCode.CANCELLED: 503,
    ErrorCode.PERSISTENCE_FAILED: 500,
}


def _error_response(e: TTSError, rid: str) -> JSONResponse:
    content = e.to_dict()
    content["request_id"] = rid
    return JSONResponse(status_code=_STATUS_MAP.get(e.code, 500), content=content,
                        headers={"X-Request-Id": rid})


def _not_configured(e: ConfigValidationError, rid: str | None = None) -> JSONResponse:
    content = {"ok": False, "error": NOT_CONFIGURED, "message": str(e)}
    if rid:
        content["request_id"] = rid
    return JSONResponse(status_code=503, content=content)


@router.post("/v1/tts", response_model=TTSResponse)
def tts_v1(
    req: TTSRequest,
    response: Response,
    resolve: ServiceResolver = Depends(get_service_resolver),
    check_text: TextValidator = Depends(get_text_validator),
):
    """
    Synthesize ``req.text`` into a new file under the output path.

    The voice override, when given, picks the backend for this request.
    Text is validated before a service is resolved, so rejected requests
    never create one. Response header X-Request-Id matches the request_id
    in the log lines.
    """
    rid = uuid.uuid4().hex[:12]
    set_request_id(rid)
    try:
        text = check_text(req.text)
        service = resolve(req.voice)
        persisted = service.synthesize(text)
    except ConfigValidationError as e:
        return _not_configured(e, rid)
    except TTSError as e:
        return _error_response(e, rid)

    response.headers["X-Request-Id"] = rid
    return TTSResponse(
        ok=True,
        path=str(persisted.file_path),
        file_name=persisted.file_path.name,
        size_bytes=persisted.size_bytes,
        backend=service.backend_name,
        format=service.audio_format,
        request_id=rid,
    )


@router.get("/health")
def health(resolve: ServiceResolver = Depends(get_service_resolver)):
    """Configuration and capabilities of the default voice's service."""
    try:
        return resolve(None).get_health_info()
    except ConfigValidationError as e:
        return _not_configured(e)


@router.get("/metrics")
def prometheus_metrics():
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
