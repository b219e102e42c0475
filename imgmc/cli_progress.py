"""CLI progress helpers."""

from __future__ import annotations

import sys
import threading
from typing import TextIO

FRAMES = ("-", "\\", "|", "/")
CLEAR_LINE = "\r\x1b[2K"


class Spinner:
    """Animated status line on stderr, driven by a background thread.

    The line is rendered only when the stream is a TTY. ``stop`` sets the
    stop event and joins the thread; on a TTY the line is cleared exactly once.
    On any other stream no thread is started and nothing is written, not even
    the clear sequence.
    """

    def __init__(self, message: str, stream: TextIO | None = None, interval_s: float = 0.08) -> None:
        self.message = message
        self.stream = stream or sys.stderr
        self.interval_s = interval_s
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="imgmc-spinner", daemon=True)
        self._enabled = bool(getattr(self.stream, "isatty", lambda: False)())
        self._started = False

    @classmethod
    def start(cls, message: str, stream: TextIO | None = None, interval_s: float = 0.08) -> Spinner:
        spinner = cls(message, stream=stream, interval_s=interval_s)
        spinner.start_spinning()
        return spinner

    @property
    def running(self) -> bool:
        return self._started and self._thread.is_alive()

    def start_spinning(self) -> None:
        if self._started or not self._enabled:
            return
        self._started = True
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._started:
            self._thread.join()

    def __enter__(self) -> Spinner:
        self.start_spinning()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.stop()
        return False

    def _run(self) -> None:
        idx = 0
        while not self._stop.is_set():
            self._write(f"\r{FRAMES[idx]} {self.message}")
            idx = (idx + 1) % len(FRAMES)
            self._stop.wait(self.interval_s)
        self._write(CLEAR_LINE)

    def _write(self, text: str) -> None:
        try:
            self.stream.write(text)
            self.stream.flush()
        except (OSError, ValueError):
            pass
