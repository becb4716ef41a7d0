"""Content-type helpers for generated artifacts."""

from __future__ import annotations

from ..generation.generation_models import GenerationKind

DEFAULT_CONTENT_TYPES = {
    GenerationKind.VIDEO: "video/mp4",
    GenerationKind.IMAGE: "image/png",
}


def sniff_content_type(payload: bytes, default: str) -> str:
    """Guess the MIME type from magic bytes, falling back to ``default``."""
    if payload.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if payload.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if payload.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if payload[:4] == b"RIFF" and payload[8:12] == b"WEBP":
        return "image/webp"
    if payload[4:8] == b"ftyp":
        return "video/quicktime" if payload[8:10] == b"qt" else "video/mp4"
    if payload.startswith(b"\x1a\x45\xdf\xa3"):
        return "video/webm"
    return default
