"""Unit tests for icon staging."""

import pathlib

import pytest
from PIL import Image

from netloy.config.models import IconDescriptor
from netloy.helpers.icons import STANDARD_ICON_SIZES, resize_icon, stage_icons
from netloy.utils.exceptions import BuildError


def _png(path: pathlib.Path, size: int) -> IconDescriptor:
    Image.new("RGBA", (size, size), (0, 128, 255, 255)).save(path)
    return IconDescriptor.from_path(path)


def test_resize_icon(tmp_path):
    source = _png(tmp_path / "app.1024x1024.png", 1024)
    target = resize_icon(source.path, tmp_path / "small.png", 32)
    with Image.open(target) as image:
        assert image.size == (32, 32)


def test_stage_icons_copies_and_renames(tmp_path):
    png = _png(tmp_path / "logo.64x64.png", 64)
    svg_path = tmp_path / "logo.svg"
    svg_path.write_text("<svg/>", encoding="utf-8")
    odd = _png(tmp_path / "logo.100x100.png", 100)

    staged = stage_icons([png, IconDescriptor.from_path(svg_path), odd], tmp_path / "icons", "Hello")
    names = sorted(icon.path.name for icon in staged)
    assert names == ["Hello.64x64.png", "Hello.svg"]


def test_stage_icons_auto_generate(tmp_path):
    source = _png(tmp_path / "app.1024x1024.png", 1024)
    ico = tmp_path / "app.ico"
    ico.write_bytes(b"ico")

    staged = stage_icons([source, IconDescriptor.from_path(ico)], tmp_path / "icons", "Hello", auto_generate=True)
    pngs = [icon for icon in staged if icon.extension == "png"]
    assert sorted(icon.width for icon in pngs) == sorted(STANDARD_ICON_SIZES)
    assert (tmp_path / "icons" / "Hello.ico").is_file()
    with Image.open(tmp_path / "icons" / "Hello.48x48.png") as image:
        assert image.size == (48, 48)


def test_stage_icons_auto_generate_requires_source(tmp_path):
    png = _png(tmp_path / "app.256x256.png", 256)
    with pytest.raises(BuildError):
        stage_icons([png], tmp_path / "icons", "Hello", auto_generate=True)
