import pytest
from PIL import Image

from tconvert.conversion.errors import BackendError, UnsupportedFormatError
from tconvert.conversion.images import convert_image, encode_options, fit_within, prepare_image

ORIENTATION = 0x0112


def test_png_to_jpg(make_image):
    src = make_image("pixel.png")
    out = convert_image(src, "jpg")
    assert out.name == "pixel_converted.jpg"
    assert out.stat().st_size > 0
    with Image.open(out) as img:
        assert img.format == "JPEG"
        assert img.size == (1, 1)


def test_png_to_pdf(make_image, read_xref):
    src = make_image("pixel.png")
    out = convert_image(src, "pdf")
    data = out.read_bytes()
    assert data.startswith(b"%PDF-1.4")
    _, entries = read_xref(data)
    for number, entry in enumerate(entries[1:], start=1):
        assert data[int(entry[:10]):].startswith(f"{number} 0 obj".encode())
    assert b"/MediaBox [0 0 1 1]" in data


def test_pdf_intermediates_removed(make_image, scratch):
    src = make_image("photo.png", size=(50, 40))
    convert_image(src, "pdf")
    assert sorted(p.name for p in scratch.iterdir()) == ["photo.png", "photo_converted.pdf"]


def test_large_image_resized_to_cap(make_image):
    src = make_image("wide.png", size=(2000, 1000))
    out = convert_image(src, "png")
    with Image.open(out) as img:
        assert img.size == (1080, 540)


def test_portrait_image_resized_on_long_edge(make_image):
    src = make_image("tall.png", size=(1000, 3000))
    out = convert_image(src, "webp")
    with Image.open(out) as img:
        assert img.format == "WEBP"
        assert max(img.size) == 1080
        assert img.size[0] == 360


def test_small_image_not_upscaled(make_image):
    src = make_image("small.jpg", size=(300, 200))
    out = convert_image(src, "png")
    with Image.open(out) as img:
        assert img.size == (300, 200)


def test_fit_within_returns_same_image_when_small():
    img = Image.new("RGB", (1080, 10))
    assert fit_within(img) is img


def test_exif_orientation_applied_and_stripped(make_image):
    exif = Image.Exif()
    exif[ORIENTATION] = 6
    src = make_image("rotated.jpg", size=(40, 20), exif=exif.tobytes())

    out = convert_image(src, "jpg")
    with Image.open(out) as img:
        assert img.size == (20, 40)
        assert "exif" not in img.info
        assert ORIENTATION not in img.getexif()


def test_metadata_stripped_for_png(make_image):
    exif = Image.Exif()
    exif[0x010E] = "secret description"
    src = make_image("meta.jpg", size=(8, 8), exif=exif.tobytes())
    with Image.open(src) as img:
        prepared = prepare_image(img)
    assert "exif" not in prepared.info

    out = convert_image(src, "png")
    with Image.open(out) as img:
        assert len(img.getexif()) == 0


def test_transparent_png_to_jpg(make_image):
    src = make_image("alpha.png", size=(10, 10), mode="RGBA", color=(0, 0, 255, 0))
    out = convert_image(src, "jpeg")
    with Image.open(out) as img:
        assert img.mode == "RGB"
        r, g, b = img.getpixel((5, 5))
        assert r > 240 and g > 240


def test_gif_output(make_image):
    out = convert_image(make_image("anim.png", size=(12, 12)), "gif")
    with Image.open(out) as img:
        assert img.format == "GIF"


def test_target_token_normalized(make_image):
    out = convert_image(make_image("pixel.png"), ".PNG")
    assert out.suffix == ".png"


def test_unknown_target_rejected(make_image, converted_files):
    with pytest.raises(UnsupportedFormatError):
        convert_image(make_image("pixel.png"), "bmp")
    assert converted_files() == []


def test_corrupt_input_leaves_no_output(make_file, converted_files):
    src = make_file("broken.png", b"this is not an image")
    with pytest.raises(BackendError):
        convert_image(src, "jpg")
    assert converted_files() == []


def test_explicit_output_path(make_image, scratch):
    out = convert_image(make_image("pixel.png"), "webp", quality=50, output_path=scratch / "custom.webp")
    assert out == scratch / "custom.webp"
    assert out.is_file()


def test_cmyk_jpeg_to_pdf(make_image, read_xref, converted_files):
    src = make_image("print.jpg", size=(20, 10), mode="CMYK", color=(0, 255, 255, 0))
    out = convert_image(src, "pdf")
    data = out.read_bytes()
    assert data.startswith(b"%PDF-1.4")
    assert b"/MediaBox [0 0 20 10]" in data
    assert b"/DeviceRGB" in data
    _, entries = read_xref(data)
    assert len(entries) == 7
    assert converted_files() == ["print_converted.pdf"]


def test_png_encoding_is_optimized():
    assert encode_options("png", 90) == {"format": "PNG", "compress_level": 9, "optimize": True}
