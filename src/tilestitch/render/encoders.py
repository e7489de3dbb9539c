from __future__ import annotations

import io

from PIL import Image

from src.datatypes import OutputFormat

__all__ = [
    "encode_image",
    "flatten_alpha",
    "map_png_compression_level",
    "normalise_compression_level",
    "normalise_output_format",
]


def normalise_compression_level(level: int) -> int:
    """Clamp arbitrary compression levels to the 0–2 range."""

    try:
        value = int(level)
    except (ValueError, TypeError):
        return 1
    return max(0, min(2, value))


def map_png_compression_level(level: int) -> int:
    """Translate the user configured level into a PNG compress level."""

    normalised = normalise_compression_level(level)
    mapping = {0: 0, 1: 6, 2: 9}
    return mapping.get(normalised, 6)


def normalise_output_format(value: OutputFormat | str) -> OutputFormat:
    """Return a canonical OutputFormat value."""

    if isinstance(value, OutputFormat):
        return value
    text = str(value).strip().lower()
    if text == "jpg":
        text = "jpeg"
    try:
        return OutputFormat(text)
    except ValueError:
        return OutputFormat.PNG


def flatten_alpha(image: Image.Image) -> Image.Image:
    """Composite *image* over black and drop the alpha band."""

    if image.mode == "RGB":
        return image
    rgba = image.convert("RGBA")
    base = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
    base.alpha_composite(rgba)
    return base.convert("RGB")


def encode_image(
    image: Image.Image,
    fmt: OutputFormat | str = OutputFormat.PNG,
    *,
    compression_level: int = 1,
    jpeg_quality: int = 90,
) -> bytes:
    """Encode *image* into PNG or JPEG bytes."""

    resolved = normalise_output_format(fmt)
    buffer = io.BytesIO()
    if resolved is OutputFormat.JPEG:
        flatten_alpha(image).save(buffer, format="JPEG", quality=int(jpeg_quality))
    else:
        image.save(
            buffer,
            format="PNG",
            compress_level=map_png_compression_level(compression_level),
        )
    return buffer.getvalue()
