"""Image conversion: auto-orient, strip metadata, bound the size, encode."""
import logging
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from tconvert.config import DEFAULT_QUALITY, MAX_IMAGE_DIMENSION, PDF_JPEG_QUALITY
from tconvert.conversion.catalog import ALLOWED_TARGETS, normalize_format
from tconvert.conversion.errors import BackendError, ConversionError, UnsupportedFormatError
from tconvert.conversion.models import MediaCategory
from tconvert.conversion.pdf_writer import SingleImagePdfWriter
from tconvert.conversion.scratch import output_path_for, remove_file

logger = logging.getLogger("tconvert.images")

IMAGE_TARGETS = ALLOWED_TARGETS[MediaCategory.IMAGE]


def fit_within(img: Image.Image, max_dimension: int = MAX_IMAGE_DIMENSION) -> Image.Image:
    """
    Scale so the longer side equals max_dimension, keeping aspect ratio.
    Images already within the bound are returned unchanged (no upscaling).
    """
    w, h = img.size
    longest = max(w, h)
    if longest <= max_dimension:
        return img
    scale = max_dimension / longest
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    return img.resize((new_w, new_h), Image.Resampling.LANCZOS)


def strip_metadata(img: Image.Image) -> Image.Image:
    """Copy without EXIF, XMP, ICC or text chunks. Palette transparency is kept."""
    out = img.copy()
    transparency = img.info.get("transparency")
    out.info = {}
    if transparency is not None:
        out.info["transparency"] = transparency
    return out


def flatten_to_rgb(img: Image.Image) -> Image.Image:
    """RGB copy with any alpha composited onto white."""
    if img.mode == "RGB":
        return img
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    return img.convert("RGB")


def prepare_image(img: Image.Image, max_dimension: int = MAX_IMAGE_DIMENSION) -> Image.Image:
    oriented = ImageOps.exif_transpose(img)
    return fit_within(strip_metadata(oriented), max_dimension)


def encode_options(target: str, quality: int) -> dict:
    if target in ("jpg", "jpeg"):
        return {"format": "JPEG", "quality": quality, "progressive": True, "optimize": True}
    if target == "png":
        return {"format": "PNG", "compress_level": 9, "optimize": True}
    if target == "webp":
        return {"format": "WEBP", "quality": quality}
    if target == "gif":
        return {"format": "GIF"}
    raise UnsupportedFormatError(f"Unsupported format: {target}")


def _encodable(img: Image.Image, target: str) -> Image.Image:
    if target in ("jpg", "jpeg"):
        return flatten_to_rgb(img)
    if target == "webp" and img.mode not in ("RGB", "RGBA"):
        return img.convert("RGBA" if img.has_transparency_data else "RGB")
    if target == "png" and img.mode == "CMYK":
        return img.convert("RGB")
    return img


def image_to_pdf(img: Image.Image, pdf_path: Path) -> Path:
    """Lossless raster, then JPEG, then wrap the JPEG bytes in a one-page PDF."""
    png_path = pdf_path.with_name(f"{pdf_path.stem}_raster.png")
    jpeg_path = pdf_path.with_name(f"{pdf_path.stem}_raster.jpg")
    try:
        _encodable(img, "png").save(png_path, format="PNG")
        with Image.open(png_path) as raster:
            flatten_to_rgb(raster).save(jpeg_path, format="JPEG", quality=PDF_JPEG_QUALITY)
        with Image.open(jpeg_path) as jpeg:
            width, height = jpeg.size
            mode = jpeg.mode
        writer = SingleImagePdfWriter(jpeg_path.read_bytes(), width, height, mode)
        writer.write(pdf_path)
        logger.info("Wrapped %sx%s JPEG into %s (page %s)", width, height, pdf_path.name, writer.page_size())
        return pdf_path
    finally:
        remove_file(png_path)
        remove_file(jpeg_path)


def convert_image(
    src: Union[str, Path],
    target_format: str,
    quality: Optional[int] = None,
    output_path: Optional[Union[str, Path]] = None,
) -> Path:
    """Convert one image file. Blocking; run it off the event loop."""
    src = Path(src)
    target = normalize_format(target_format)
    if target not in IMAGE_TARGETS:
        raise UnsupportedFormatError(f"Unsupported format: {target}")
    quality = DEFAULT_QUALITY if quality is None else quality
    out_path = Path(output_path) if output_path else output_path_for(src, target)

    try:
        with Image.open(src) as img:
            logger.info("Converting image %s (%sx%s %s) -> %s", src.name, img.width, img.height, img.format, target)
            work = prepare_image(img)
            if target == "pdf":
                return image_to_pdf(work, out_path)
            options = encode_options(target, quality)
            _encodable(work, target).save(out_path, **options)
        logger.info("Converted %s -> %s", src.name, out_path.name)
        return out_path
    except ConversionError:
        remove_file(out_path)
        raise
    except (UnidentifiedImageError, OSError) as e:
        remove_file(out_path)
        raise BackendError(f"Image processing failed: {e}") from e
    except Exception:
        remove_file(out_path)
        raise
