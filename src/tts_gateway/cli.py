"""
Command-Line Interface for tts-gateway.

Synthesis without running the HTTP server.

Usage Examples:
    # Single text, configured voice
    tts-gateway "Hello there"

    # Voice override (switches backend) and output directory
    tts-gateway --text "Hello there" --voice Cherry --out-dir audio/

    # Batch processing from file (one text per line)
    tts-gateway --file inputs.txt

    # Stream PCM chunks into a file (cosyvoice voices only)
    tts-gateway "Hello there" --stream --out hello.pcm

    # Show which backend a voice selects, no credentials needed
    tts-gateway --select sambert-zhichu-v1 --json

Environment Variables:
    DASHSCOPE_API_KEY: API key
    TTS_GW_VOICE: Default voice
    TTS_GW_OUTPUT_PATH: Default output directory
    TTS_GW_SETTINGS: Settings file path
"""

from __future__ import annotations

import argparse
import json
from dataclasses import replace
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from tts_gateway.core.config import ConfigValidationError, load_settings
from tts_gateway.core.logging import configure_logging, get_logger, info, set_request_id
from tts_gateway.tts.errors import TTSError


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="tts-gateway CLI (serverless synth)")

    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")
    parser.add_argument("--file", help="Batch input file (1 line = 1 item)")

    parser.add_argument("--voice", help="Voice override")
    parser.add_argument("--out-dir", help="Output directory override")
    parser.add_argument("--settings", help="Settings file (default: config/settings.yaml)")

    parser.add_argument("--stream", action="store_true",
                        help="Stream PCM chunks into --out instead of writing a file per text")
    parser.add_argument("--out", help="Output file for --stream (default: out.pcm)")

    parser.add_argument("--select", metavar="VOICE", nargs="?", const="",
                        help="Print the backend selected for VOICE (or the configured voice) and exit")
    parser.add_argument("--json", action="store_true", help="Print JSON summary")

    return parser.parse_args(argv)


def _load_texts(args: argparse.Namespace) -> List[str]:
    """
    Load input texts from arguments or file.

    Raises:
        SystemExit: If no input provided or conflicting options used.
    """
    text = args.text or args.text_pos

    if args.file:
        if text:
            raise SystemExit("Use --file without --text or positional text.")
        lines = Path(args.file).read_text(encoding="utf-8").splitlines()
        items = [line.strip() for line in lines if line.strip()]
        if not items:
            raise SystemExit("Input file is empty.")
        return items

    if not text:
        raise SystemExit("Provide --text or a positional text.")
    return [text]


def _emit(payload: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(payload)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        0 on success, 1 if any item failed, 2 on configuration errors.
    """
    args = _parse_args(argv)

    configure_logging()
    log = get_logger("tts-gateway.cli")
    set_request_id(uuid4().hex[:12])

    try:
        settings = load_settings(args.settings)
    except ConfigValidationError as e:
        _emit({"ok": False, "error": "NOT_CONFIGURED", "message": str(e)}, args.json)
        return 2

    # Selection only: no credentials, no backend call
    if args.select is not None:
        from tts_gateway.tts.selector import default_selector
        provider_raw = settings.raw.get("provider", {}) or {}
        voice = args.select or args.voice or str(provider_raw.get("voice_name") or "")
        kind, rule = default_selector().explain(voice)
        backend = getattr(kind, "value", kind)
        _emit({"ok": True, "voice": voice, "backend": backend, "rule": rule}, args.json)
        print("SELECT_OK")
        return 0

    try:
        provider = settings.provider_config()
        config = settings.get_gateway_config()
    except ConfigValidationError as e:
        _emit({"ok": False, "error": "NOT_CONFIGURED", "message": str(e)}, args.json)
        return 2

    overrides = {}
    if args.voice:
        overrides["voice_name"] = args.voice
    if args.out_dir:
        overrides["output_path"] = args.out_dir
    if overrides:
        provider = replace(provider, config_id=None, **overrides)

    texts = _load_texts(args)

    from tts_gateway.services.tts_service import TTSService
    service = TTSService(provider, config)
    results = []
    ok = True

    if args.stream:
        out_path = Path(args.out or "out.pcm")
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("wb") as f:
            for text in texts:
                info(log, "stream_start", chars=len(text), out=str(out_path))
                try:
                    count = service.stream_text_to_speech(text, f.write)
                    results.append({"out": str(out_path), "chunks": count})
                except TTSError as e:
                    ok = False
                    results.append(e.to_dict())
    else:
        for text in texts:
            info(log, "synth_start", chars=len(text), backend=service.backend_name)
            try:
                path = service.text_to_speech(text)
            except TTSError as e:
                ok = False
                results.append(e.to_dict())
                continue
            if not path:
                ok = False
            results.append({"out": path, "ok": bool(path)})

    _emit({"ok": ok, "backend": service.backend_name, "items": results}, args.json)
    print("CLI_OK" if ok else "CLI_FAILED")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
