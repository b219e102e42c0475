"""Validated request descriptor handed from the CLI to the engine."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

PROVIDERS = ("azure", "openai")
QUALITIES = ("high", "medium", "low")
RESOLUTIONS = ("1024x1024", "1024x1536", "1536x1024")
MAX_COUNT = 10
DEFAULT_API_VERSION = "2025-04-01-preview"


@dataclass(frozen=True)
class RequestDescriptor:
    prompt: str
    endpoint_base: str
    credential: str
    deployment_id: str
    quality: str = "high"
    resolution: str = "1024x1024"
    count: int = 1
    reference_image_path: Path | None = None
    provider: str = "azure"
    api_version: str = DEFAULT_API_VERSION

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ValueError(f"Unsupported provider: {self.provider}")
        if self.quality not in QUALITIES:
            raise ValueError(f"Unsupported quality: {self.quality}")
        if self.resolution not in RESOLUTIONS:
            raise ValueError(f"Unsupported resolution: {self.resolution}")
        if not 1 <= int(self.count) <= MAX_COUNT:
            raise ValueError(f"Image count must be between 1 and {MAX_COUNT}, got {self.count}")

    @property
    def is_edit(self) -> bool:
        return self.reference_image_path is not None
