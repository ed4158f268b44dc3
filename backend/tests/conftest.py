"""Shared fixtures: scratch directory, sample images, fake backends, a service."""
import re
from pathlib import Path

import pytest
from PIL import Image

from tconvert.conversion.backends import DocumentBackend, MediaBackend, ProcessBackend
from tconvert.conversion.service import ConversionService


class RecordingMediaBackend(MediaBackend):
    """Writes a fixed payload to the output and remembers every call."""

    name = "recording"

    def __init__(self, payload: bytes = b"media-bytes", error: Exception = None):
        self.payload = payload
        self.error = error
        self.calls = []

    async def transcode(self, input_path, output_path, params, timeout):
        self.calls.append({"input": input_path, "output": output_path, "params": list(params), "timeout": timeout})
        if self.error is not None:
            raise self.error
        Path(output_path).write_bytes(self.payload)
        return Path(output_path)


class StaticDocumentBackend(DocumentBackend):
    name = "static"

    def __init__(self, payload: bytes = b"%PDF-1.4\n% converted\n"):
        self.payload = payload
        self.calls = []

    async def convert(self, data, target_format, suffix):
        self.calls.append({"data": data, "target": target_format, "suffix": suffix})
        return self.payload


class ShellBackend(ProcessBackend):
    """Runs a shell snippet with $1 = input path and $2 = output path."""

    name = "sh"

    def __init__(self, script: str):
        self.script = script

    def build_command(self, input_path, output_path, params):
        return ["sh", "-c", self.script, "sh", str(input_path), str(output_path)]


@pytest.fixture
def scratch(tmp_path):
    directory = tmp_path / "scratch"
    directory.mkdir()
    return directory


@pytest.fixture
def make_image(scratch):
    def _make(name="input.png", size=(1, 1), mode="RGB", color=(255, 0, 0), **save_kw):
        path = scratch / name
        Image.new(mode, size, color).save(path, **save_kw)
        return path

    return _make


@pytest.fixture
def make_file(scratch):
    def _make(name, content=b"data", size=None):
        path = scratch / name
        with open(path, "wb") as f:
            f.write(content)
            if size is not None:
                f.truncate(size)
        return path

    return _make


@pytest.fixture
def media_backend():
    return RecordingMediaBackend()


@pytest.fixture
def document_backend():
    return StaticDocumentBackend()


@pytest.fixture
def shell_backend():
    return ShellBackend


@pytest.fixture
def service(scratch, media_backend, document_backend):
    svc = ConversionService(
        media_backend=media_backend,
        document_backend=document_backend,
        scratch_dir=scratch,
        max_workers=2,
    )
    yield svc
    svc.shutdown()


@pytest.fixture
def converted_files(scratch):
    """Artifacts currently present in the scratch directory."""
    return lambda: sorted(p.name for p in scratch.iterdir() if "_converted" in p.name or "_raster" in p.name)


def _read_xref(data: bytes):
    """Return (xref offset, entries) where entries are the raw 19-byte lines."""
    start = int(re.search(rb"startxref\n(\d+)\n%%EOF\n$", data).group(1))
    assert data[start:start + 5] == b"xref\n"
    lines = data[start:].split(b"\n")
    count = int(lines[1].split()[1])
    return start, lines[2:2 + count]


@pytest.fixture
def read_xref():
    return _read_xref

