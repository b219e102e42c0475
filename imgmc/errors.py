"""Error types raised by the imgmc pipeline."""

from __future__ import annotations


class ImgmcError(Exception):
    """Base class for every fatal pipeline error."""


class ConfigError(ImgmcError):
    pass


class ReferenceFileError(ImgmcError):
    pass


class TransportError(ImgmcError):
    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DecodeError(ImgmcError):
    pass


class Base64DecodeError(ImgmcError):
    pass


class CounterOverflowError(ImgmcError):
    pass


class FileWriteError(ImgmcError):
    pass
