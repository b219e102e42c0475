"""Blocking HTTP transport and response decoding."""

from __future__ import annotations

import json
import logging
import time
from http.client import HTTPException
from typing import Any, Callable, Mapping, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request as UrlRequest
from urllib.request import urlopen

from ..errors import DecodeError, TransportError
from .base import EditRequest, FilePart, GenerateRequest, GenerationResponse, ImagePayload, Request

logger = logging.getLogger(__name__)


def send(
    request: Request,
    timeout_s: float | None = None,
    on_received: Callable[[], None] | None = None,
) -> GenerationResponse:
    """Perform one POST for the request and decode the image payloads.

    No retries are attempted: any transport failure raises ``TransportError``
    and any malformed body raises ``DecodeError``. ``on_received`` is called
    once the body has arrived, before decoding starts.
    """
    status_code, raw = post(request, timeout_s)
    if on_received is not None:
        on_received()
    response = decode_response(raw)
    response.status_code = status_code
    logger.debug("%s request returned %d image(s) (status %d)", request.kind, len(response), status_code)
    return response


def post(request: Request, timeout_s: float | None = None) -> tuple[int, bytes]:
    """Send the request and return the status code and raw response body."""
    if isinstance(request, EditRequest):
        return _post_multipart(request, timeout_s)
    if isinstance(request, GenerateRequest):
        return _post_json(request, timeout_s)
    raise TypeError(f"Unsupported request type: {type(request)!r}")


def decode_response(raw: bytes | str) -> GenerationResponse:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Response body is not valid UTF-8: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Response body is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise DecodeError("Response body is not a JSON object.")
    data = payload.get("data")
    if not isinstance(data, list):
        raise DecodeError("Response is missing the 'data' array.")
    payloads: list[ImagePayload] = []
    for idx, item in enumerate(data):
        blob = item.get("b64_json") if isinstance(item, Mapping) else None
        if not isinstance(blob, str):
            raise DecodeError(f"Response item {idx} has no 'b64_json' string.")
        payloads.append(ImagePayload(b64_data=blob))
    return GenerationResponse(payloads=payloads)


def _post_json(request: GenerateRequest, timeout_s: float | None) -> tuple[int, bytes]:
    body = json.dumps(request.body).encode("utf-8")
    headers = dict(request.headers)
    headers.setdefault("Content-Type", "application/json")
    return _open(request.url, body, headers, timeout_s)


def _post_multipart(request: EditRequest, timeout_s: float | None) -> tuple[int, bytes]:
    boundary = f"----ImgmcBoundary{int(time.time() * 1000)}"
    body = _build_multipart_body(boundary, request.fields, request.files)
    headers = dict(request.headers)
    headers["Content-Type"] = f"multipart/form-data; boundary={boundary}"
    return _open(request.url, body, headers, timeout_s)


def _open(url: str, body: bytes, headers: dict[str, str], timeout_s: float | None) -> tuple[int, bytes]:
    kwargs: dict[str, Any] = {}
    if timeout_s is not None:
        kwargs["timeout"] = timeout_s
    try:
        req = UrlRequest(url, data=body, headers=headers, method="POST")
        with urlopen(req, **kwargs) as response:
            status_code = int(getattr(response, "status", 200))
            raw = response.read()
    except HTTPError as exc:
        text = exc.read().decode("utf-8", errors="replace") if exc.fp else str(exc)
        raise TransportError(f"Image API error ({exc.code}): {text}", status_code=exc.code, body=text) from exc
    except URLError as exc:
        raise TransportError(f"Image API request failed: {exc.reason}") from exc
    except OSError as exc:
        raise TransportError(f"Image API request failed: {exc}") from exc
    except HTTPException as exc:
        raise TransportError(f"Image API response was interrupted: {exc!r}") from exc
    except ValueError as exc:
        raise TransportError(f"Image API request to {url!r} failed: {exc}") from exc
    return status_code, raw


def _build_multipart_body(
    boundary: str,
    fields: Sequence[tuple[str, str]],
    files: Sequence[FilePart],
) -> bytes:
    boundary_bytes = boundary.encode("utf-8")
    payload = bytearray()
    for key, value in fields:
        payload.extend(b"--")
        payload.extend(boundary_bytes)
        payload.extend(b"\r\n")
        disposition = f'Content-Disposition: form-data; name="{_multipart_quote(key)}"\r\n\r\n'
        payload.extend(disposition.encode("utf-8"))
        payload.extend(str(value).encode("utf-8"))
        payload.extend(b"\r\n")
    for part in files:
        payload.extend(b"--")
        payload.extend(boundary_bytes)
        payload.extend(b"\r\n")
        disposition = (
            "Content-Disposition: form-data; "
            f'name="{_multipart_quote(part.field_name)}"; filename="{_multipart_quote(part.filename)}"\r\n'
        )
        payload.extend(disposition.encode("utf-8"))
        payload.extend(f"Content-Type: {part.mime_type or 'application/octet-stream'}\r\n".encode("utf-8"))
        payload.extend(b"\r\n")
        payload.extend(part.blob)
        payload.extend(b"\r\n")
    payload.extend(b"--")
    payload.extend(boundary_bytes)
    payload.extend(b"--\r\n")
    return bytes(payload)


def _multipart_quote(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"')
