"""Build generate/edit requests from a request descriptor."""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from ..descriptor import RequestDescriptor
from ..errors import ReferenceFileError
from .base import EditRequest, FilePart, GenerateRequest, Request

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "png"

_AZURE_URL_TEMPLATE = "{base}/openai/deployments/{deployment}/images/{operation}?api-version={version}"
_OPENAI_URL_TEMPLATE = "{base}/images/{operation}"


def build(descriptor: RequestDescriptor) -> Request:
    """Return an edit request when a reference image is given, else a generate request."""
    if descriptor.reference_image_path is not None:
        return _build_edit(descriptor, Path(descriptor.reference_image_path))
    return _build_generate(descriptor)


def endpoint_url(descriptor: RequestDescriptor, operation: str) -> str:
    base = descriptor.endpoint_base.rstrip("/")
    if descriptor.provider == "openai":
        return _OPENAI_URL_TEMPLATE.format(base=base, operation=operation)
    return _AZURE_URL_TEMPLATE.format(
        base=base,
        deployment=descriptor.deployment_id,
        operation=operation,
        version=descriptor.api_version,
    )


def auth_headers(descriptor: RequestDescriptor) -> dict[str, str]:
    if descriptor.provider == "openai":
        return {"Authorization": f"Bearer {descriptor.credential}"}
    return {"api-key": descriptor.credential}


def _scalar_fields(descriptor: RequestDescriptor) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if descriptor.provider == "openai":
        fields["model"] = descriptor.deployment_id
    fields.update(
        {
            "prompt": descriptor.prompt,
            "n": int(descriptor.count),
            "size": descriptor.resolution,
            "quality": descriptor.quality,
            "output_format": OUTPUT_FORMAT,
        }
    )
    return fields


def _build_generate(descriptor: RequestDescriptor) -> GenerateRequest:
    url = endpoint_url(descriptor, "generations")
    headers = auth_headers(descriptor)
    headers["Content-Type"] = "application/json"
    logger.debug("Using generations endpoint %s", url.split("?", 1)[0])
    return GenerateRequest(url=url, headers=headers, body=_scalar_fields(descriptor))


def _build_edit(descriptor: RequestDescriptor, reference: Path) -> EditRequest:
    path = reference.expanduser()
    try:
        blob = path.read_bytes()
    except OSError as exc:
        raise ReferenceFileError(f"Could not read reference image {path}: {exc}") from exc
    url = endpoint_url(descriptor, "edits")
    fields = [(key, str(value)) for key, value in _scalar_fields(descriptor).items()]
    image = FilePart(
        field_name="image",
        filename=path.name or "image.png",
        blob=blob,
        mime_type=_sniff_mime_type(blob, path.suffix),
    )
    logger.debug("Using edits endpoint %s with %s (%d bytes)", url.split("?", 1)[0], path, len(blob))
    return EditRequest(url=url, headers=auth_headers(descriptor), fields=fields, files=[image])


def _sniff_mime_type(blob: bytes, suffix: str | None) -> str | None:
    try:
        with Image.open(BytesIO(blob)) as image:
            fmt = image.format
    except (UnidentifiedImageError, OSError):
        fmt = None
    if fmt and fmt in Image.MIME:
        return Image.MIME[fmt]
    return _mime_type_for_suffix(suffix)


def _mime_type_for_suffix(suffix: str | None) -> str | None:
    normalized = str(suffix or "").strip().lower()
    if normalized == ".png":
        return "image/png"
    if normalized in {".jpg", ".jpeg"}:
        return "image/jpeg"
    if normalized == ".webp":
        return "image/webp"
    return None
