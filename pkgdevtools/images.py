"""Screenshots and icons of packages: finding them and describing them."""

from __future__ import annotations

import glob
import logging
import os
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from PIL import Image, UnidentifiedImageError

from .svg import SvgError, svg_decode_config

logger = logging.getLogger(__name__)

TUTORIALS_PATH = "src/plugins/home/server/tutorials"
KIBANA_LOGOS_PATH = "src/plugins/home/public/assets/logos"

ALIASED_MODULE_NAMES = {
    "redisenterprise": "redis",
    "php_fpm": "php",
    "postgresql": "postgres",
    "appsearch": "app_search",
    "googlecloud": "gcp",
}

_IMAGE_RE = re.compile(rb"image::[^\[]+")
_ICON_RE = re.compile(r"euiIconType: '[^']+'")
_TITLE_TABLE = str.maketrans({"_": " ", "-": " ", "/": None})


class ImageError(Exception):
    """Raised when an image or icon cannot be read or described."""


class IconNotFoundError(ImageError):
    """Raised when no icon is known for a module."""


@dataclass(frozen=True)
class ImageContent:
    """An image file to be copied into a package."""

    source: str


@dataclass(frozen=True)
class ManifestImage:
    """An image entry of a package manifest."""

    src: str
    title: str
    size: str
    type: str


def _path_join(*elements: str) -> str:
    parts = [element for element in elements if element]
    if not parts:
        return ""
    return posixpath.normpath("/".join(parts))


def _read_docs(path: str) -> bytes | None:
    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        return None
    except OSError as err:
        raise ImageError(f"reading docs file failed (path: {path}): {err}") from err


def create_images(beat_docs_path: str, module_path: str) -> list[ImageContent]:
    """Collect the images referenced by the docs of a module and its data streams."""
    images: list[ImageContent] = []
    module_docs_path = _path_join(module_path, "_meta", "docs.asciidoc")
    docs = _read_docs(module_docs_path)
    if docs is None:
        logger.info("No docs found (path: %s), skipped", module_docs_path)
    else:
        images.extend(extract_images(beat_docs_path, docs))

    try:
        entries = sorted(os.scandir(module_path), key=lambda entry: entry.name)
    except OSError as err:
        raise ImageError(f"cannot read module directory {module_path}: {err}") from err

    for entry in entries:
        if not entry.is_dir() or entry.name == "_meta":
            continue
        docs_path = _path_join(module_path, entry.name, "_meta", "docs.asciidoc")
        docs = _read_docs(docs_path)
        if docs is None:
            logger.info("%s: no docs found (path: %s), skipped", entry.name, docs_path)
            continue
        images.extend(extract_images(beat_docs_path, docs))
    return images


def extract_images(beat_docs_path: str, docs_file: bytes | str) -> list[ImageContent]:
    """Return the images that ``image::`` macros in an AsciiDoc file point at."""
    if isinstance(docs_file, str):
        docs_file = docs_file.encode("utf-8")
    return [
        ImageContent(source=_path_join(beat_docs_path, match[len(b"image::"):].decode("utf-8")))
        for match in _IMAGE_RE.findall(docs_file)
    ]


def to_manifest_images(images: Iterable[ImageContent]) -> list[ManifestImage]:
    """Describe images for the package manifest."""
    result = []
    for image in images:
        file_name = "/" + image.source.rsplit("/", 1)[-1]
        result.append(
            ManifestImage(
                src=_path_join("/img", file_name),
                title=to_image_title(file_name),
                size=read_image_size(image.source),
                type=extract_image_type(image.source),
            )
        )
    return result


def to_image_title(file_name: str) -> str:
    """Make a title from a file name without its extension."""
    dot = file_name.rfind(".")
    if dot < 0:
        raise ImageError(f"file name has no extension: {file_name}")
    return file_name[:dot].translate(_TITLE_TABLE)


def read_image_size(image_path: str) -> str:
    """Return the size of a PNG, JPEG or SVG image as ``<width>x<height>``."""
    try:
        if image_path.endswith(".svg"):
            width, height = svg_decode_config(Path(image_path).read_bytes())
        else:
            with Image.open(image_path) as img:
                if img.format not in ("PNG", "JPEG"):
                    raise ImageError(f"unknown image format (path: {image_path})")
                width, height = img.size
    except (OSError, UnidentifiedImageError, SvgError) as err:
        raise ImageError(f"opening image failed (path: {image_path}): {err}") from err
    return f"{width}x{height}"


def extract_image_type(image_path: str) -> str:
    """Return the media type of an image from its extension."""
    if image_path.endswith(".png"):
        return "image/png"
    if image_path.endswith(".jpg"):
        return "image/jpg"
    if image_path.endswith(".svg"):
        return "image/svg+xml"
    raise ImageError(f"unknown image type (path: {image_path})")


@dataclass
class IconRepository:
    """Icon file paths per module name."""

    icons: dict[str, str] = field(default_factory=dict)

    def icon_for_module(self, module_name: str) -> ImageContent:
        """Return the icon of a module, looking through module name aliases."""
        source = self.icons.get(alias_module_name(module_name))
        if source is None:
            raise IconNotFoundError(f"icon not found: {module_name}")
        return ImageContent(source=source)


def new_icon_repository(eui_dir: str, kibana_dir: str) -> IconRepository:
    """Gather icons from Kibana tutorials and the EUI icon map; EUI wins."""
    icons = retrieve_icon_path_from_tutorials(kibana_dir)
    icons.update(retrieve_icon_path_from_eui(eui_dir))
    return IconRepository(icons=icons)


def retrieve_icon_path_from_tutorials(kibana_dir: str) -> dict[str, str]:
    """Map module names to the logos their Kibana tutorials use."""
    refs: dict[str, str] = {}
    tutorials_path = os.path.join(kibana_dir, TUTORIALS_PATH)
    for tutorial_path in sorted(glob.glob(os.path.join(glob.escape(tutorials_path), "*_*", "index.ts"))):
        try:
            text = Path(tutorial_path).read_text(encoding="utf-8")
        except OSError as err:
            raise ImageError(f"reading tutorial file failed (path: {tutorial_path}): {err}") from err
        match = _ICON_RE.search(text)
        if match is None:
            logger.info("%s: icon not found", tutorial_path)
            continue
        value = match.group(0).split("'")[1]
        module_name = os.path.basename(os.path.dirname(tutorial_path))
        module_name = module_name[: module_name.rfind("_")]
        if os.path.isabs(value):
            refs[module_name] = _path_join(kibana_dir, KIBANA_LOGOS_PATH, os.path.basename(value))
    return refs


def retrieve_icon_path_from_eui(eui_dir: str) -> dict[str, str]:
    """Map module names to the logo files listed in the EUI icon map."""
    icon_map_path = os.path.join(eui_dir, "src/components/icon/icon.tsx")
    try:
        lines = Path(icon_map_path).read_text(encoding="utf-8").splitlines()
    except OSError as err:
        raise ImageError(f"opening icon map file failed (path: {icon_map_path}): {err}") from err

    refs: dict[str, str] = {}
    map_found = False
    for line in lines:
        if map_found:
            line = line.lstrip(" ")
            if line.startswith("logo"):
                parts = line.split("'")
                if len(parts) < 2:
                    raise ImageError(f"unexpected icon map line: {line!r}")
                file_name = parts[1]
                file_path = os.path.join(eui_dir, "src/components/icon/assets", file_name + ".svg")
                refs[file_name[file_name.find("_") + 1:]] = file_path
        elif line.startswith("const typeToPathMap = {"):
            map_found = True
    return refs


def alias_module_name(module_name: str) -> str:
    """Return the name under which a module's icon is known."""
    return ALIASED_MODULE_NAMES.get(module_name, module_name)


def create_icons(icon_repository: IconRepository, module_name: str) -> list[ImageContent]:
    """Return the module's icon, or nothing if none is known."""
    try:
        return [icon_repository.icon_for_module(module_name)]
    except IconNotFoundError:
        logger.info("%s: icon not found", module_name)
        return []