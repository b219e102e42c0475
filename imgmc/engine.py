"""Run one generate/edit request end to end."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, TextIO

from .cli_progress import Spinner
from .descriptor import RequestDescriptor
from .materialize import GeneratedFile, materialize
from .providers import build, send
from .providers.base import GenerationResponse

logger = logging.getLogger(__name__)

IDLE = "idle"
REQUESTING = "requesting"
DECODING = "decoding"
MATERIALIZING = "materializing"
DONE = "done"
FAILED = "failed"


class ImageEngine:
    def __init__(
        self,
        descriptor: RequestDescriptor,
        *,
        timeout_s: float | None = None,
        out_dir: Path | None = None,
        stream: TextIO | None = None,
        spinner_message: str = "Calling API...",
    ) -> None:
        self.descriptor = descriptor
        self.timeout_s = timeout_s
        self.out_dir = out_dir
        self.stream = stream
        self.spinner_message = spinner_message
        self.state = IDLE
        self.failed_error: str | None = None
        self.response: GenerationResponse | None = None

    def run(self, emit: Callable[[str], None] | None = print) -> list[GeneratedFile]:
        """Request the images and save them, returning the written files.

        The spinner is stopped before anything is emitted or raised. Any error
        leaves the engine in the ``failed`` state and propagates.
        """
        try:
            self.response = self._request()
            self.state = MATERIALIZING
            files = materialize(self.descriptor.prompt, self.response.payloads, out_dir=self.out_dir, emit=emit)
        except Exception as exc:
            self.state = FAILED
            self.failed_error = type(exc).__name__
            raise
        self.state = DONE
        return files

    def _request(self) -> GenerationResponse:
        mode = "edit" if self.descriptor.is_edit else "generate"
        logger.debug("Submitting %s request (n=%d)", mode, self.descriptor.count)
        self.state = REQUESTING
        spinner = Spinner.start(self.spinner_message, stream=self.stream)
        try:
            request = build(self.descriptor)
            response = send(request, timeout_s=self.timeout_s, on_received=self._mark_decoding)
        finally:
            spinner.stop()
        return response

    def _mark_decoding(self) -> None:
        self.state = DECODING
