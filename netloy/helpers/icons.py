"""Icon staging for a build.

Validated icons are copied into the build's icons directory under names
derived from AppBaseName, so builders never read from the user's tree. With
AutoGenerateIcons enabled the PNG set is rendered from a 1024x1024 source.
"""

from __future__ import annotations

import pathlib
import shutil
from typing import List, Sequence

from PIL import Image
from PIL.Image import Resampling

from netloy.config.models import IconDescriptor
from netloy.core.logging_manager import get_logger
from netloy.utils.exceptions import BuildError

logger = get_logger(__name__)

STANDARD_ICON_SIZES = (16, 24, 32, 48, 64, 96, 128, 256, 512, 1024)
SOURCE_ICON_SUFFIX = ".1024x1024.png"


def resize_icon(source: pathlib.Path, target: pathlib.Path, size: int) -> pathlib.Path:
    """Write a square PNG copy of ``source`` at ``size`` pixels."""
    with Image.open(source) as image:
        resized = image.resize((size, size), Resampling.LANCZOS)
        resized.save(target, format="PNG")
    return target


def stage_icons(
        icons: Sequence[IconDescriptor],
        icons_dir: pathlib.Path,
        base_name: str,
        auto_generate: bool = False,
) -> List[IconDescriptor]:
    """Copy or render icons into ``icons_dir``.

    Args:
        icons: Icons accepted during configuration validation.
        icons_dir: Destination directory, created when missing.
        base_name: File name stem for staged icons.
        auto_generate: Render every standard PNG size from the 1024x1024 icon.

    Returns:
        Descriptors of the staged icons.

    Raises:
        BuildError: If auto generation is requested without a 1024x1024 PNG.
    """
    icons_dir.mkdir(parents=True, exist_ok=True)
    staged: List[IconDescriptor] = []

    if auto_generate:
        source = next(
            (icon for icon in icons if icon.path.name.lower().endswith(SOURCE_ICON_SUFFIX)), None
        )
        if source is None:
            raise BuildError(
                "No .1024x1024.png icon found. AutoGenerateIcons needs it as the source image."
            )
        for size in STANDARD_ICON_SIZES:
            target = icons_dir / f"{base_name}.{size}x{size}.png"
            resize_icon(source.path, target, size)
            staged.append(IconDescriptor.from_path(target))
        logger.info("Generated icons", count=len(STANDARD_ICON_SIZES), source=str(source.path))

        for icon in icons:
            if icon.extension == "png":
                continue
            target = icons_dir / f"{base_name}.{icon.extension}"
            shutil.copyfile(icon.path, target)
            staged.append(IconDescriptor.from_path(target))
        return staged

    for icon in icons:
        if icon.extension == "png":
            if icon.width not in STANDARD_ICON_SIZES:
                logger.warning("Skipping icon with non-standard size", path=str(icon.path))
                continue
            target = icons_dir / f"{base_name}.{icon.size_bucket}.png"
        else:
            target = icons_dir / f"{base_name}.{icon.extension}"
        shutil.copyfile(icon.path, target)
        staged.append(IconDescriptor.from_path(target))

    logger.debug("Staged icons", count=len(staged), directory=str(icons_dir))
    return staged
