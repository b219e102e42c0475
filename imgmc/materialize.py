"""Write decoded image payloads to collision-free files."""

from __future__ import annotations

import base64
import binascii
import logging
import re
import sys
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from .errors import Base64DecodeError, CounterOverflowError, FileWriteError
from .providers.base import ImagePayload

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 50
_MAX_COUNTER = sys.maxsize
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class GeneratedFile:
    path: Path
    sequence_index: int


def slugify(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Lowercase ASCII slug of ``text``, at most ``max_length`` characters.

    Accented letters fold to their base letter. Characters with no ASCII
    decomposition (CJK, ``ß``) are dropped, and a prompt left with nothing
    slugs to ``image``.
    """
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM_RE.sub("-", folded.lower()).strip("-")
    if not slug:
        slug = "image"
    return slug[:max_length]


def decode_payload(payload: ImagePayload) -> bytes:
    try:
        return base64.b64decode(payload.b64_data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise Base64DecodeError(f"Base64 decode failed: {exc}") from exc


def materialize(
    prompt: str,
    payloads: Sequence[ImagePayload],
    out_dir: Path | None = None,
    emit: Callable[[str], None] | None = None,
) -> list[GeneratedFile]:
    """Decode and save each payload as ``{slug}_{n}.png``.

    Numbering starts at the payload's 1-based position and skips names that
    already exist, so earlier files are never overwritten. Files written
    before a failure are left in place.
    """
    base_dir = out_dir if out_dir is not None else Path(".")
    slug = slugify(prompt)
    results: list[GeneratedFile] = []
    for idx, payload in enumerate(payloads, start=1):
        image_bytes = decode_payload(payload)
        path = _write_new_file(base_dir, slug, idx, image_bytes)
        results.append(GeneratedFile(path=path, sequence_index=idx))
        logger.debug("Wrote %d bytes to %s", len(image_bytes), path)
        if emit is not None:
            emit(f"Image saved to: {path}")
    return results


def next_free_path(base_dir: Path, slug: str, start: int, limit: int = _MAX_COUNTER) -> Path:
    counter = start
    while True:
        if counter > limit:
            raise CounterOverflowError("Counter overflow: too many files with similar names")
        candidate = base_dir / f"{slug}_{counter}.png"
        if not candidate.exists():
            return candidate
        counter += 1


def _write_new_file(base_dir: Path, slug: str, start: int, blob: bytes) -> Path:
    counter = start
    while True:
        path = next_free_path(base_dir, slug, counter)
        try:
            with path.open("xb") as handle:
                handle.write(blob)
        except FileExistsError:
            # Created by someone else after the existence check.
            counter = int(path.stem.rsplit("_", 1)[1]) + 1
            continue
        except OSError as exc:
            raise FileWriteError(f"Could not write {path}: {exc}") from exc
        return path

