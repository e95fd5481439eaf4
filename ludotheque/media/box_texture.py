"""
Box texture compositor.

Box textures from ScreenScraper are flat case scans whose spine/back area
is a chroma-key green insert. The green is made transparent, a gradient
is placed behind it and the game logo is centred inside the green area.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, ImageChops

logger = logging.getLogger(__name__)


GRADIENT_START = (45, 45, 50)
GRADIENT_END = (5, 5, 5)

# Logo may use at most this fraction of the green area width / canvas height
LOGO_MAX_WIDTH_RATIO = 0.8
LOGO_MAX_HEIGHT_RATIO = 0.8

# Boundaries narrower than this fraction of the width are rejected
MIN_BOUNDARY_RATIO = 0.05

# Scanning starts at this fraction of the width and moves left
SCAN_START_RATIO = 0.6


def is_key_green(r: int, g: int, b: int) -> bool:
    """Chroma-key test for the green insert colour."""
    return g > 150 and g > r + 60 and g > b + 60


def find_green_boundary(image: Image.Image) -> int:
    """
    Locate the right edge of the green insert.

    Three rows (25%, 50%, 75% of the height) are scanned right-to-left from
    60% of the width; the median of the three first-green x positions is
    taken so a single noisy row cannot skew the result.

    Args:
        image: RGBA image

    Returns:
        Boundary x coordinate, or 0 if no plausible green area was found
    """
    width, height = image.size
    pixels = image.load()
    start_x = min(int(width * SCAN_START_RATIO), width - 1)

    boundaries: List[int] = []
    for y in (int(height * 0.25), int(height * 0.5), int(height * 0.75)):
        found_x = 0
        for x in range(start_x, -1, -1):
            r, g, b = pixels[x, y][:3]
            if is_key_green(r, g, b):
                found_x = x
                break
        boundaries.append(found_x)

    boundaries.sort()
    median = boundaries[1]
    return 0 if median < width * MIN_BOUNDARY_RATIO else median


def build_gradient(size: Tuple[int, int]) -> Image.Image:
    """Diagonal gradient from GRADIENT_START (top-left) to GRADIENT_END (bottom-right)."""
    width, height = size
    data = []
    for y in range(height):
        for x in range(width):
            factor = (x / width + y / height) / 2
            data.append((
                int(GRADIENT_START[0] + (GRADIENT_END[0] - GRADIENT_START[0]) * factor),
                int(GRADIENT_START[1] + (GRADIENT_END[1] - GRADIENT_START[1]) * factor),
                int(GRADIENT_START[2] + (GRADIENT_END[2] - GRADIENT_START[2]) * factor),
                255,
            ))
    gradient = Image.new('RGBA', size)
    gradient.putdata(data)
    return gradient


def knock_out_green(image: Image.Image) -> Image.Image:
    """Copy of image with every key-green pixel fully transparent."""
    foreground = image.copy()
    foreground.putdata([
        (r, g, b, 0) if is_key_green(r, g, b) else (r, g, b, a)
        for r, g, b, a in image.getdata()
    ])
    return foreground


def trim_logo(logo: Image.Image) -> Image.Image:
    """
    Crop transparent or flat-colour margins around a logo.

    Logos with an alpha channel are trimmed to their opaque area; opaque
    logos are trimmed against the colour of their top-left pixel.
    """
    logo = logo.convert('RGBA')
    alpha = logo.getchannel('A')
    if alpha.getextrema()[0] < 255:
        bbox = alpha.getbbox()
    else:
        rgb = logo.convert('RGB')
        background = Image.new('RGB', rgb.size, rgb.getpixel((0, 0)))
        bbox = ImageChops.difference(rgb, background).getbbox()

    return logo.crop(bbox) if bbox else logo


def fit_logo(logo: Image.Image, max_width: int, max_height: int) -> Image.Image:
    """Scale logo to fit inside max_width x max_height, keeping aspect ratio."""
    width, height = logo.size
    scale = min(max_width / width, max_height / height)
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    return logo.resize(new_size, Image.Resampling.LANCZOS)


def compose_box_texture(
    texture: Image.Image,
    logo: Optional[Image.Image] = None
) -> Optional[Image.Image]:
    """
    Composite a box texture.

    Layer order: gradient background, logo, chroma-keyed texture on top.

    Args:
        texture: Box texture scan
        logo: Optional wheel/marquee logo

    Returns:
        Composited RGBA image, or None if the texture has no green insert
    """
    texture = texture.convert('RGBA')
    width, height = texture.size

    boundary = find_green_boundary(texture)
    if boundary == 0:
        return None

    canvas = build_gradient(texture.size)

    if logo is not None:
        trimmed = trim_logo(logo)
        max_w = max(1, round(boundary * LOGO_MAX_WIDTH_RATIO))
        max_h = max(1, round(height * LOGO_MAX_HEIGHT_RATIO))
        fitted = fit_logo(trimmed, max_w, max_h)
        left = max(0, (boundary - fitted.width) // 2)
        top = max(0, (height - fitted.height) // 2)
        canvas.alpha_composite(fitted, (left, top))

    canvas.alpha_composite(knock_out_green(texture))
    return canvas


def process_box_texture(texture_path: Path, logo_path: Optional[Path] = None) -> bool:
    """
    Composite a box texture file in place.

    The result is written to a temp file and renamed over texture_path, so
    hard links sharing the original texture keep the raw scan.

    Returns:
        True if the file was rewritten, False if skipped
    """
    if not texture_path.is_file():
        return False

    with Image.open(texture_path) as texture:
        texture.load()

        logo = None
        if logo_path is not None and logo_path.is_file():
            try:
                with Image.open(logo_path) as logo_file:
                    logo = logo_file.convert('RGBA')
            except (OSError, ValueError) as e:
                logger.warning(f"Logo could not be read ({logo_path.name}): {e}")

        result = compose_box_texture(texture, logo)

    if result is None:
        logger.debug(f"No green insert found in {texture_path.name}, left unchanged")
        return False

    temp_path = texture_path.with_suffix(texture_path.suffix + '.tmp')
    result.save(temp_path, format='PNG')
    temp_path.replace(texture_path)
    return True
