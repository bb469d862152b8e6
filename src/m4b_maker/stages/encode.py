"""Encode stage -- wrap faac raw-PCM-to-M4B encoding as a subprocess.

Tags written: artist and writer (both the book's writer), album, title,
year, genre "Spoken Word", track 1, and the cover image.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click
from loguru import logger

from ..errors import EncodingError, ExternalToolError, VerificationError
from ..ffprobe import get_tags, track_number
from ..models import (
    CONTAINER_EXTENSION,
    GENRE,
    TRACK_NUMBER,
    AudioFormat,
    CoverArt,
    Metadata,
    Source,
    SourceKind,
    archive_extension,
)
from ..sanitize import output_filename
from ..tools import run_tool

if TYPE_CHECKING:
    from ..config import PipelineConfig

log = logger.bind(stage="encode")


def output_name(source: Source, metadata: Metadata) -> str:
    """Destination filename for a job.

    Archives keep their base name with the archive extension swapped for
    .m4b; directories are named after the title.
    """
    if source.kind == SourceKind.ARCHIVE:
        name = source.name
        ext = archive_extension(name)
        stem = name[: -len(ext)] if ext else Path(name).stem
        return output_filename(stem, CONTAINER_EXTENSION)
    return output_filename(metadata.title, CONTAINER_EXTENSION)


def build_command(
    audio: AudioFormat,
    metadata: Metadata,
    cover: CoverArt,
    output: Path,
    config: PipelineConfig,
) -> list[str]:
    return [
        config.faac_bin,
        "-P",
        "-R", str(audio.rate),
        "-C", str(audio.channels),
        "-B", str(audio.bitdepth),
        "-q", str(config.encode_quality),
        "-w",
        "--artist", metadata.writer,
        "--writer", metadata.writer,
        "--album", metadata.album,
        "--title", metadata.title,
        "--year", metadata.year,
        "--track", str(TRACK_NUMBER),
        "--genre", GENRE,
        "--cover-art", str(cover.path),
        "-o", str(output),
        str(audio.raw_path),
    ]


def run(
    audio: AudioFormat,
    metadata: Metadata,
    cover: CoverArt,
    output: Path,
    config: PipelineConfig,
) -> Path:
    """Encode raw samples into a tagged M4B at output."""
    cmd = build_command(audio, metadata, cover, output, config)
    log.info(f"Encoding: {output.name}")
    try:
        run_tool(cmd, timeout=config.tool_timeout)
    except ExternalToolError as e:
        output.unlink(missing_ok=True)
        raise EncodingError(f"faac failed for {output.name}: {e}") from e

    if not output.exists():
        raise EncodingError(f"Output file not created: {output}")
    if output.stat().st_size == 0:
        output.unlink()
        raise EncodingError(f"Output file is empty: {output}")

    click.echo(
        f"  ENCODE: {output.name} ({audio.rate}Hz {audio.channels}ch, "
        f"q{config.encode_quality})"
    )
    return output


def verify(output: Path, metadata: Metadata, config: PipelineConfig) -> None:
    """Read the tags back from output and compare with what was written."""
    tags = get_tags(output, ffprobe_bin=config.ffprobe_bin)
    if not tags:
        raise VerificationError(f"No tags could be read from {output.name}")

    expected = {
        "artist": metadata.writer,
        "album": metadata.album,
        "title": metadata.title,
        "date": metadata.year,
        "genre": GENRE,
    }
    mismatched = [
        f"{key}={tags.get(key)!r} (expected {value!r})"
        for key, value in expected.items()
        if tags.get(key) != value
    ]
    if track_number(tags.get("track", "")) != TRACK_NUMBER:
        mismatched.append(f"track={tags.get('track')!r} (expected {TRACK_NUMBER})")

    if mismatched:
        raise VerificationError(
            f"Tag mismatch in {output.name}: {'; '.join(mismatched)}"
        )
    log.debug(f"Verified tags for {output.name}")
