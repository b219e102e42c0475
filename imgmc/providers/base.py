"""Request and response types shared by the builder and the transport."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union


@dataclass(frozen=True)
class GenerateRequest:
    url: str
    headers: Mapping[str, str]
    body: Mapping[str, Any]
    kind: str = field(default="generate", init=False)


@dataclass(frozen=True)
class FilePart:
    field_name: str
    filename: str
    blob: bytes
    mime_type: str | None = None


@dataclass(frozen=True)
class EditRequest:
    url: str
    headers: Mapping[str, str]
    fields: Sequence[tuple[str, str]]
    files: Sequence[FilePart]
    kind: str = field(default="edit", init=False)


Request = Union[GenerateRequest, EditRequest]


@dataclass(frozen=True)
class ImagePayload:
    b64_data: str


@dataclass
class GenerationResponse:
    payloads: list[ImagePayload]
    status_code: int = 200

    def __len__(self) -> int:
        return len(self.payloads)
