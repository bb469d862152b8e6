"""Concat stage -- merge every MP3 track of a book into one stream.

mp3wrap names its output ``<stem>_MP3WRAP.mp3`` regardless of the name it
was asked for, so the produced file is moved back to the canonical name.
The merged file is only handed on once its size has stopped changing.
"""

from __future__ import annotations

import re
import shutil
import time
from pathlib import Path
from typing import TYPE_CHECKING

import click
from loguru import logger

from ..errors import ConcatenationError, ExternalToolError
from ..models import TRACK_EXTENSIONS
from ..tools import run_tool

if TYPE_CHECKING:
    from ..config import PipelineConfig

log = logger.bind(stage="concat")

MERGED_NAME = "merged.mp3"
MP3WRAP_SUFFIX = "_MP3WRAP"
MACOS_METADATA_DIR = "__MACOSX"


def _natural_key(text: str) -> list:
    """Split text into numeric/text parts for natural sorting."""
    return [int(c) if c.isdigit() else c.lower() for c in re.split(r"(\d+)", text)]


def _track_sort_key(p: Path, track_dir: Path) -> list:
    # Folder order first, so disc1/* plays before disc2/*
    return [_natural_key(part) for part in p.relative_to(track_dir).parts]


def _is_junk(p: Path, track_dir: Path) -> bool:
    """Hidden files and macOS resource forks (__MACOSX/, ._name.mp3)."""
    return any(
        part.startswith(".") or part == MACOS_METADATA_DIR
        for part in p.relative_to(track_dir).parts
    )


def find_tracks(track_dir: Path) -> list[Path]:
    """All track files under track_dir, natural-sorted by relative path."""
    tracks = [
        f
        for f in track_dir.rglob("*")
        if f.is_file()
        and f.suffix.lower() in TRACK_EXTENSIONS
        and not _is_junk(f, track_dir)
    ]
    tracks.sort(key=lambda p: _track_sort_key(p, track_dir))
    return tracks


def wait_until_stable(
    path: Path, interval: float = 0.5, timeout: float = 60.0
) -> int:
    """Block until path exists with a non-zero size that stops changing.

    Returns the final size. Raises ConcatenationError on timeout.
    """
    deadline = time.monotonic() + timeout
    last = -1
    while True:
        size = path.stat().st_size if path.exists() else -1
        if size > 0 and size == last:
            return size
        if time.monotonic() >= deadline:
            raise ConcatenationError(
                f"{path.name} did not settle within {timeout}s (size={size})"
            )
        last = size
        time.sleep(interval)


def _collect_output(expected: Path) -> Path:
    """Move a suffixed mp3wrap output back to the expected name."""
    suffixed = expected.with_name(f"{expected.stem}{MP3WRAP_SUFFIX}{expected.suffix}")
    if suffixed.exists():
        log.debug(f"Renaming {suffixed.name} -> {expected.name}")
        suffixed.replace(expected)
    if not expected.exists():
        raise ConcatenationError(
            f"Concatenation produced neither {expected.name} nor {suffixed.name}"
        )
    return expected


def run(track_dir: Path, workspace: Path, config: PipelineConfig) -> Path:
    """Merge the tracks in track_dir into workspace/merged.mp3."""
    tracks = find_tracks(track_dir)
    if not tracks:
        raise ConcatenationError(f"No MP3 tracks found in {track_dir}")
    log.debug(f"Found {len(tracks)} tracks in {track_dir}")

    merged = workspace / MERGED_NAME

    if len(tracks) == 1:
        # mp3wrap needs at least two inputs
        try:
            shutil.copyfile(tracks[0], merged)
        except OSError as e:
            raise ConcatenationError(f"Cannot copy {tracks[0].name}: {e}") from e
    else:
        try:
            run_tool(
                [config.mp3wrap_bin, str(merged), *(str(t) for t in tracks)],
                timeout=config.tool_timeout,
            )
        except ExternalToolError as e:
            raise ConcatenationError(f"mp3wrap failed: {e}") from e
        _collect_output(merged)

    size = wait_until_stable(
        merged,
        interval=config.settle_interval,
        timeout=config.settle_timeout,
    )
    click.echo(f"  CONCAT: {len(tracks)} tracks -> {merged.name} ({size:,} bytes)")
    return merged
