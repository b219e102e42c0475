from __future__ import annotations

import base64
import json
from dataclasses import replace
from pathlib import Path
from urllib.error import URLError

import pytest

from imgmc.cli_progress import CLEAR_LINE
from imgmc.descriptor import RequestDescriptor
from imgmc.engine import DONE, FAILED, IDLE, ImageEngine
from imgmc.errors import Base64DecodeError, DecodeError, ReferenceFileError, TransportError


class FakeStream:
    def __init__(self, is_tty: bool) -> None:
        self._isatty = is_tty
        self.buffer: list[str] = []

    def isatty(self) -> bool:  # pragma: no cover - signature mimic
        return self._isatty

    def write(self, data: str) -> None:
        self.buffer.append(data)

    def flush(self) -> None:  # pragma: no cover - no-op for tests
        return None

    @property
    def text(self) -> str:
        return "".join(self.buffer)


class DummyResponse:
    def __init__(self, payload: dict, status: int = 200) -> None:
        self._payload = payload
        self.status = status

    def read(self) -> bytes:
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self) -> "DummyResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False


def _image_payload(*blobs: bytes) -> dict:
    return {"data": [{"b64_json": base64.b64encode(blob).decode("utf-8")} for blob in blobs]}


def test_engine_generates_and_saves_images(descriptor: RequestDescriptor, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "imgmc.providers.transport.urlopen",
        lambda req, timeout=None: DummyResponse(_image_payload(b"fox-1", b"fox-2")),
    )
    stream = FakeStream(is_tty=True)
    lines: list[str] = []

    def emit(line: str) -> None:
        # The spinner line must already be cleared before results are printed.
        assert stream.text.endswith(CLEAR_LINE)
        lines.append(line)

    engine = ImageEngine(descriptor, stream=stream)
    assert engine.state == IDLE
    files = engine.run(emit=emit)

    assert engine.state == DONE
    assert lines == [
        "Image saved to: a-red-fox-in-snow_1.png",
        "Image saved to: a-red-fox-in-snow_2.png",
    ]
    assert [f.sequence_index for f in files] == [1, 2]
    assert (tmp_path / "a-red-fox-in-snow_2.png").read_bytes() == b"fox-2"
    assert stream.text.count(CLEAR_LINE) == 1


def test_engine_uses_edits_endpoint_for_reference(
    descriptor: RequestDescriptor, tmp_path: Path, monkeypatch
) -> None:
    ref_path = tmp_path / "ref.png"
    ref_path.write_bytes(b"reference")
    captured: dict[str, str] = {}

    def fake_urlopen(req, timeout=None):
        captured["url"] = req.full_url
        return DummyResponse(_image_payload(b"edited"))

    monkeypatch.setattr("imgmc.providers.transport.urlopen", fake_urlopen)
    engine = ImageEngine(replace(descriptor, reference_image_path=ref_path), out_dir=tmp_path)
    files = engine.run(emit=None)

    assert "/images/edits?" in captured["url"]
    assert [f.path.name for f in files] == ["a-red-fox-in-snow_1.png"]


def test_engine_transport_failure_stops_spinner(descriptor: RequestDescriptor, tmp_path: Path, monkeypatch) -> None:
    def fake_urlopen(req, timeout=None):
        raise URLError("network down")

    monkeypatch.setattr("imgmc.providers.transport.urlopen", fake_urlopen)
    stream = FakeStream(is_tty=True)
    engine = ImageEngine(descriptor, out_dir=tmp_path, stream=stream)

    with pytest.raises(TransportError):
        engine.run(emit=None)

    assert engine.state == FAILED
    assert engine.failed_error == "TransportError"
    assert stream.text.endswith(CLEAR_LINE)
    assert list(tmp_path.glob("*.png")) == []


def test_engine_reference_failure_is_reported(descriptor: RequestDescriptor, tmp_path: Path, monkeypatch) -> None:
    def fake_urlopen(req, timeout=None):  # pragma: no cover - must not be reached
        raise AssertionError("no request expected")

    monkeypatch.setattr("imgmc.providers.transport.urlopen", fake_urlopen)
    engine = ImageEngine(replace(descriptor, reference_image_path=tmp_path / "nope.png"), out_dir=tmp_path)

    with pytest.raises(ReferenceFileError):
        engine.run(emit=None)
    assert engine.failed_error == "ReferenceFileError"


def test_engine_keeps_partial_results(descriptor: RequestDescriptor, tmp_path: Path, monkeypatch) -> None:
    payload = _image_payload(b"ok")
    payload["data"].append({"b64_json": "%%%"})
    monkeypatch.setattr("imgmc.providers.transport.urlopen", lambda req, timeout=None: DummyResponse(payload))
    engine = ImageEngine(descriptor, out_dir=tmp_path)

    with pytest.raises(Base64DecodeError):
        engine.run(emit=None)

    assert engine.state == FAILED
    assert [p.name for p in tmp_path.glob("*.png")] == ["a-red-fox-in-snow_1.png"]


def test_engine_marks_decode_failures(descriptor: RequestDescriptor, tmp_path: Path, monkeypatch) -> None:
    class TextResponse(DummyResponse):
        def read(self) -> bytes:
            return b"<html>gateway error</html>"

    monkeypatch.setattr("imgmc.providers.transport.urlopen", lambda req, timeout=None: TextResponse({}))
    engine = ImageEngine(descriptor, out_dir=tmp_path)

    with pytest.raises(DecodeError):
        engine.run(emit=None)
    assert engine.state == FAILED
    assert engine.failed_error == "DecodeError"
