# core/image_crop.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from digital_goods_uploader.config.settings import CROP_ASPECT, CROP_JPEG_QUALITY, TEMP_DIR

logger = logging.getLogger(__name__)

# Default crop covers 90% of the image width
DEFAULT_CROP_SCALE = 0.9


@dataclass(frozen=True)
class CropRegion:
    """Pixel rectangle, top-left origin."""

    x: float
    y: float
    width: float
    height: float

    @property
    def ratio(self) -> float:
        return self.width / self.height if self.height else 0.0

    def scaled(self, scale_x: float, scale_y: float) -> "CropRegion":
        return CropRegion(
            x=self.x * scale_x,
            y=self.y * scale_y,
            width=self.width * scale_x,
            height=self.height * scale_y,
        )

    def box(self) -> Tuple[int, int, int, int]:
        """(left, upper, right, lower) as Pillow wants it."""
        left = int(round(self.x))
        upper = int(round(self.y))
        return left, upper, left + int(self.width), upper + int(self.height)


def centered_crop_region(
    width: int,
    height: int,
    aspect: float = CROP_ASPECT,
    scale: float = DEFAULT_CROP_SCALE,
) -> CropRegion:
    """
    Default crop: `scale` of the image width at the given aspect ratio,
    centered. Tall-enough images keep that width; short ones are limited
    by their height instead.
    """
    crop_w = width * scale
    crop_h = crop_w / aspect
    if crop_h > height:
        crop_h = height * scale
        crop_w = crop_h * aspect

    return CropRegion(
        x=(width - crop_w) / 2,
        y=(height - crop_h) / 2,
        width=crop_w,
        height=crop_h,
    )


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    # JPEG has no alpha; paste onto white
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        bg = Image.new("RGB", img.size, (255, 255, 255))
        bg.paste(img, mask=img.split()[-1])
        return bg
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def crop_image(
    source: Path,
    region: CropRegion,
    output_dir: Path = TEMP_DIR,
    display_size: Optional[Tuple[int, int]] = None,
    quality: int = CROP_JPEG_QUALITY,
    output_name: Optional[str] = None,
) -> Path:
    """
    Cut `region` out of `source` and save it as JPEG.

    Args:
        source: original image file
        region: crop rectangle; in displayed pixels when display_size is given,
            otherwise in natural image pixels
        output_dir: where the cropped file is written
        display_size: (width, height) the image was shown at while cropping
        quality: JPEG quality
        output_name: file name inside output_dir, "<source stem>.jpg" by default

    Returns:
        Path to the cropped file inside output_dir
    """
    source = Path(source)
    with Image.open(source) as img:
        if display_size:
            region = region.scaled(
                img.width / display_size[0],
                img.height / display_size[1],
            )

        left, upper, right, lower = region.box()
        if right - left <= 0 or lower - upper <= 0:
            raise ValueError(f"Empty crop region for {source.name}: {region}")
        if left < 0 or upper < 0 or right > img.width or lower > img.height:
            raise ValueError(f"Crop region outside {source.name} ({img.width}x{img.height}): {region}")

        cropped = _flatten_to_rgb(img.crop((left, upper, right, lower)))

    output_dir.mkdir(parents=True, exist_ok=True)
    dest = output_dir / (output_name or f"{source.stem}.jpg")
    cropped.save(dest, "JPEG", quality=quality)
    return dest


def prepare_cover_image(
    source: Path,
    region: Optional[CropRegion] = None,
    skip: bool = False,
    output_dir: Path = TEMP_DIR,
    display_size: Optional[Tuple[int, int]] = None,
    output_name: Optional[str] = None,
) -> Path:
    """
    Crop a cover image to the card frame before upload.

    Skipping returns the original path untouched. If no crop can be
    produced the original is used as well.
    """
    source = Path(source)
    if skip:
        return source

    try:
        if region is None:
            with Image.open(source) as img:
                region = centered_crop_region(img.width, img.height)
            display_size = None
        return crop_image(
            source, region, output_dir=output_dir, display_size=display_size, output_name=output_name
        )
    except (OSError, ValueError, UnidentifiedImageError) as e:
        logger.warning("Crop failed for %s, using original file: %s", source.name, e)
        return source
