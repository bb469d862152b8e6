"""Metadata stage -- pick explicit or inferred mode and resolve tag values.

Explicit mode takes writer, title, album, and year from the command line.
Infer mode derives a title from the archive name (LibriVox-style names such
as ``on_liberty_64kb_mp3_librivox.zip``) and reuses it for writer and album,
with the current year.
"""

from __future__ import annotations

import re
from datetime import date

from loguru import logger

from ..errors import ConflictingMetadataError, MissingMetadataError, UsageError
from ..models import (
    AUDIO_FORMAT_TOKENS,
    Metadata,
    MetadataMode,
    MetadataRequest,
    Source,
    SourceKind,
    archive_extension,
)

log = logger.bind(stage="metadata")

_SEP = r"[_\-\s.]"
_BITRATE_RE = re.compile(
    rf"(?:^|{_SEP})\d{{2,3}}kb(?:ps)?(?={_SEP}|$)", re.IGNORECASE
)
_FORMAT_RE = re.compile(
    rf"(?:^|{_SEP})(?:{'|'.join(AUDIO_FORMAT_TOKENS)})(?={_SEP}|$)", re.IGNORECASE
)
_TRAILING_NUMBERS_RE = re.compile(r"(?:[_\-\s]+\d+)+$")
_YEAR_RE = re.compile(r"^\d{4}$")


def select_mode(sources: list[Source], request: MetadataRequest) -> MetadataMode:
    """Decide how metadata is resolved for a whole run.

    Several sources force infer mode and reject explicit flags. A directory
    source must be alone and forbids infer mode.
    """
    explicit = request.explicit_fields()
    has_directory = any(s.kind == SourceKind.DIRECTORY for s in sources)

    if len(sources) > 1:
        if has_directory:
            raise UsageError("A directory source must be the only source.")
        if explicit:
            raise ConflictingMetadataError(
                "Metadata flags cannot be used with more than one source "
                f"(got {', '.join(sorted(explicit))}); metadata is inferred."
            )
        return MetadataMode.INFER

    if has_directory:
        if request.infer:
            raise UsageError("Metadata cannot be inferred for a directory source.")
        return MetadataMode.EXPLICIT

    if request.infer:
        if explicit:
            raise ConflictingMetadataError(
                f"-i cannot be combined with {', '.join(sorted(explicit))}."
            )
        return MetadataMode.INFER
    return MetadataMode.EXPLICIT


def infer_title(name: str, publisher_tokens: list[str] | None = None) -> str:
    """Derive a display title from an archive filename."""
    tokens = publisher_tokens if publisher_tokens is not None else ["librivox"]

    title = _BITRATE_RE.sub("", name, count=1)
    title = _FORMAT_RE.sub("", title, count=1)

    ext = archive_extension(title)
    if ext:
        title = title[: -len(ext)]

    for token in tokens:
        title = re.sub(rf"{_SEP}+{re.escape(token)}$", "", title, flags=re.IGNORECASE)

    title = _TRAILING_NUMBERS_RE.sub("", title)
    words = title.replace("_", " ").split()
    title = " ".join(w[:1].upper() + w[1:] for w in words)

    if not title:
        # Everything was stripped -- fall back to the bare stem
        ext = archive_extension(name)
        stem = name[: -len(ext)] if ext else name
        title = " ".join(stem.replace("_", " ").split())

    log.debug(f"infer_title({name!r}) -> {title!r}")
    return title


def infer(source: Source, publisher_tokens: list[str] | None = None) -> Metadata:
    """Infer metadata from the source name."""
    title = infer_title(source.name, publisher_tokens)
    return Metadata(
        writer=title,
        title=title,
        album=title,
        year=str(date.today().year),
    )


def explicit(request: MetadataRequest) -> Metadata:
    """Build metadata from caller-supplied values, all four required."""
    values = {k: v.strip() for k, v in request.explicit_fields().items()}
    missing = [
        flag
        for field, flag in (
            ("writer", "-w WRITER"),
            ("title", "-t TITLE"),
            ("album", "-a ALBUM"),
            ("year", "-y YEAR"),
        )
        if not values.get(field)
    ]
    if missing:
        raise MissingMetadataError(
            f"Missing metadata: {', '.join(missing)} (or use -i to infer)"
        )
    if not _YEAR_RE.match(values["year"]):
        raise MissingMetadataError(f"Year must be four digits, got {values['year']!r}")
    return Metadata(
        writer=values["writer"],
        title=values["title"],
        album=values["album"],
        year=values["year"],
    )


def run(
    source: Source,
    mode: MetadataMode,
    request: MetadataRequest,
    publisher_tokens: list[str] | None = None,
) -> Metadata:
    """Resolve metadata for one job."""
    if mode == MetadataMode.INFER:
        if request.explicit_fields():
            raise ConflictingMetadataError(
                "Explicit metadata cannot be combined with inferred metadata."
            )
        metadata = infer(source, publisher_tokens)
    else:
        metadata = explicit(request)

    log.info(
        f"Metadata ({mode}): writer={metadata.writer!r} title={metadata.title!r} "
        f"album={metadata.album!r} year={metadata.year}"
    )
    return metadata
