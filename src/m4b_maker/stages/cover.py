"""Cover stage -- produce a square cover image for embedding.

Sources, in order of precedence: a user-supplied remote URL or local file,
otherwise the configured default image. The result is always
COVER_SIZE x COVER_SIZE; anything else is resized once with ImageMagick.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import ExternalToolError, FetchError, InvalidCoverArtError
from ..fetch import download
from ..models import (
    COVER_SIZE,
    IMAGE_EXTENSIONS,
    CoverArt,
    CoverOrigin,
    base_name,
    is_remote,
)
from ..tools import run_tool

if TYPE_CHECKING:
    from ..config import PipelineConfig

log = logger.bind(stage="cover")

_GEOMETRY_RE = re.compile(r"^\s*(\d+)x(\d+)")


def _check_extension(name: str) -> str:
    ext = Path(name).suffix.lower()
    if ext not in IMAGE_EXTENSIONS:
        allowed = ", ".join(sorted(IMAGE_EXTENSIONS))
        raise InvalidCoverArtError(
            f"Cover art must be one of {allowed}: {name or '(no name)'}"
        )
    return ext


def _check_local(path: Path) -> None:
    if not path.exists():
        raise InvalidCoverArtError(f"Cover art not found: {path}")
    if not path.is_file():
        raise InvalidCoverArtError(f"Cover art is not a regular file: {path}")
    if not os.access(path, os.R_OK):
        raise InvalidCoverArtError(f"Cover art is not readable: {path}")


def identify(path: Path, config: PipelineConfig) -> tuple[int, int]:
    """Return (width, height) of the first frame of an image."""
    try:
        result = run_tool(
            [config.identify_bin, "-format", "%wx%h", f"{path}[0]"],
            timeout=config.tool_timeout,
        )
    except ExternalToolError as e:
        raise InvalidCoverArtError(f"Cannot read cover art {path.name}: {e}") from e

    match = _GEOMETRY_RE.match(result.stdout)
    if not match:
        raise InvalidCoverArtError(
            f"Unexpected image geometry for {path.name}: {result.stdout.strip()!r}"
        )
    return int(match.group(1)), int(match.group(2))


def resize(src: Path, dest: Path, size: int, config: PipelineConfig) -> Path:
    """Force src to size x size (aspect ratio ignored), writing dest."""
    try:
        run_tool(
            [config.convert_bin, str(src), "-resize", f"{size}x{size}!", str(dest)],
            timeout=config.tool_timeout,
        )
    except ExternalToolError as e:
        raise InvalidCoverArtError(f"Cannot resize cover art {src.name}: {e}") from e
    if not dest.is_file():
        raise InvalidCoverArtError(f"Resize produced no output: {dest}")
    return dest


def _fetch(url: str, dest: Path, config: PipelineConfig) -> Path:
    try:
        return download(url, dest, timeout=config.download_timeout)
    except FetchError as e:
        raise InvalidCoverArtError(f"Cannot download cover art: {e}") from e


def run(picture: str | None, workspace: Path, config: PipelineConfig) -> CoverArt:
    """Resolve the cover art for one job into the workspace."""
    if picture is None:
        origin = CoverOrigin.DEFAULT
        ext = Path(base_name(config.default_cover_url)).suffix.lower()
        if ext not in IMAGE_EXTENSIONS:
            ext = ".jpg"
        path = _fetch(config.default_cover_url, workspace / f"default_cover{ext}", config)
    elif is_remote(picture):
        origin = CoverOrigin.USER_REMOTE
        name = base_name(picture)
        ext = _check_extension(name)
        path = _fetch(picture, workspace / f"user_cover{ext}", config)
    else:
        origin = CoverOrigin.USER_LOCAL
        path = Path(picture)
        _check_local(path)
        ext = _check_extension(path.name)

    width, height = identify(path, config)
    size = COVER_SIZE
    log.debug(f"Cover {path.name}: {width}x{height} ({origin})")

    if (width, height) != (size, size):
        resized = resize(path, workspace / f"cover{ext}", size, config)
        log.info(f"Resized cover art {width}x{height} -> {size}x{size}")
        return CoverArt(path=resized, width=size, height=size, origin=origin)

    return CoverArt(path=path, width=width, height=height, origin=origin)
