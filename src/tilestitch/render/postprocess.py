"""Crop, resize and re-encode a finished capture."""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError

from src.datatypes import OutputConfig
from src.tilestitch.render import encoders as _enc
from src.tilestitch.render.geometry import format_dimensions

__all__ = ["ImageDecodeError", "crop_to_visible", "decode_image", "finish_image", "fit_resolution"]

logger = logging.getLogger(__name__)


class ImageDecodeError(ValueError):
    """Raised when capture bytes cannot be decoded as an image."""


def decode_image(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as handle:
            handle.load()
            return handle.copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageDecodeError(f"Could not decode image data: {exc}") from exc


def crop_to_visible(image: Image.Image) -> Image.Image:
    """
    Crop *image* to the bounding box of pixels that are not pure black.

    An image with no visible pixel is returned whole, as is an image whose
    visible region already spans every edge.
    """

    bbox = image.convert("RGB").getbbox()
    logger.info("Source image dimensions %s", format_dimensions(image.width, image.height))
    if bbox is None:
        logger.info("Entire image is blank, returning whole thing")
        return image
    if bbox == (0, 0, image.width, image.height):
        logger.info("Entire image is visible, not cropping")
        return image
    logger.info("Cropping to %d, %d, %d, %d", *bbox)
    return image.crop(bbox)


def fit_resolution(image: Image.Image, resolution: int) -> Image.Image:
    """Downscale so neither side exceeds *resolution*, keeping the aspect ratio."""

    limit = int(resolution)
    if limit <= 0:
        return image
    longest = max(image.width, image.height)
    if longest <= limit:
        logger.info("Image is smaller than requested resolution, not resizing")
        return image
    scale = limit / longest
    target = (max(1, round(image.width * scale)), max(1, round(image.height * scale)))
    logger.info(
        "Resizing %s -> %s",
        format_dimensions(image.width, image.height),
        format_dimensions(*target),
    )
    return image.resize(target, Image.Resampling.LANCZOS)


def finish_image(data: bytes, cfg: OutputConfig) -> bytes:
    """Decode a capture, apply the configured crop/resize and encode it again."""

    image = decode_image(data)
    if cfg.crop_visible:
        image = crop_to_visible(image)
    image = fit_resolution(image, cfg.resolution)
    return _enc.encode_image(
        image,
        cfg.format,
        compression_level=cfg.compression_level,
        jpeg_quality=cfg.jpeg_quality,
    )
