"""Request building and transport for the image endpoints."""

from __future__ import annotations

from .base import EditRequest, GenerateRequest, GenerationResponse, ImagePayload, Request
from .builder import build
from .transport import decode_response, post, send

__all__ = [
    "EditRequest",
    "GenerateRequest",
    "GenerationResponse",
    "ImagePayload",
    "Request",
    "build",
    "decode_response",
    "post",
    "send",
]
