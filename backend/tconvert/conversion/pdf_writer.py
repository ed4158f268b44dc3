"""Minimal one-page PDF wrapping a single JPEG.

Layout (objects 1-6):
    1 Catalog -> 2 Pages -> 3 Page (MediaBox = page size)
    4 Resources (/Im1 -> 5), 5 Image XObject (DCTDecode, the JPEG bytes),
    6 Content stream painting /Im1 over the whole page.

The cross-reference table stores the byte offset of every "N 0 obj" record,
so offsets are taken from the assembled bytes themselves, never estimated.
"""
import math
from pathlib import Path
from typing import Union

from tconvert.config import PDF_PAGE_SIZE

PDF_HEADER = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n"

COLOR_SPACES = {
    "RGB": "DeviceRGB",
    "L": "DeviceGray",
    "CMYK": "DeviceCMYK",
}


class SingleImagePdfWriter:
    """Build a PDF whose only page shows one JPEG scaled to fit the page limit."""

    def __init__(
        self,
        jpeg_bytes: bytes,
        width: int,
        height: int,
        mode: str = "RGB",
        page_limit: tuple[int, int] = PDF_PAGE_SIZE,
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid image size {width}x{height}")
        if mode not in COLOR_SPACES:
            raise ValueError(f"Unsupported JPEG mode for PDF: {mode}")
        self.jpeg_bytes = jpeg_bytes
        self.width = width
        self.height = height
        self.color_space = COLOR_SPACES[mode]
        self.page_limit = page_limit
        self.offsets: list[int] = []
        self.xref_offset = 0

    def page_size(self) -> tuple[int, int]:
        """Image size scaled down (never up) to fit the page limit, aspect kept."""
        limit_w, limit_h = self.page_limit
        scale = min(limit_w / self.width, limit_h / self.height, 1.0)
        if scale >= 1.0:
            return self.width, self.height
        return (
            max(1, math.floor(self.width * scale)),
            max(1, math.floor(self.height * scale)),
        )

    def _objects(self) -> list[bytes]:
        page_w, page_h = self.page_size()
        content = f"q {page_w} 0 0 {page_h} 0 0 cm /Im1 Do Q".encode("ascii")
        return [
            b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n",
            b"2 0 obj\n<< /Type /Pages /Kids [3 0 R] /Count 1 >>\nendobj\n",
            (
                f"3 0 obj\n<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {page_w} {page_h}] "
                f"/Resources 4 0 R /Contents 6 0 R >>\nendobj\n"
            ).encode("ascii"),
            b"4 0 obj\n<< /XObject << /Im1 5 0 R >> >>\nendobj\n",
            (
                f"5 0 obj\n<< /Type /XObject /Subtype /Image /Width {self.width} "
                f"/Height {self.height} /ColorSpace /{self.color_space} /BitsPerComponent 8 "
                f"/Filter /DCTDecode /Length {len(self.jpeg_bytes)} >>\nstream\n"
            ).encode("ascii")
            + self.jpeg_bytes
            + b"\nendstream\nendobj\n",
            f"6 0 obj\n<< /Length {len(content)} >>\nstream\n".encode("ascii")
            + content
            + b"\nendstream\nendobj\n",
        ]

    def build(self) -> bytes:
        objects = self._objects()
        parts = [PDF_HEADER]
        position = len(PDF_HEADER)
        self.offsets = []
        for record in objects:
            self.offsets.append(position)
            parts.append(record)
            position += len(record)
        self.xref_offset = position

        size = len(objects) + 1
        xref = [f"xref\n0 {size}\n", "0000000000 65535 f \n"]
        xref.extend(f"{offset:010d} 00000 n \n" for offset in self.offsets)
        parts.append("".join(xref).encode("ascii"))
        parts.append(
            f"trailer\n<< /Size {size} /Root 1 0 R >>\nstartxref\n{self.xref_offset}\n%%EOF\n".encode("ascii")
        )
        return b"".join(parts)

    def write(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.write_bytes(self.build())
        return path
