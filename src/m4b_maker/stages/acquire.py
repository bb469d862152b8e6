"""Acquire and extract stages -- materialize a source's tracks locally."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import ExternalToolError, ExtractionError
from ..fetch import download
from ..models import Source
from ..tools import extractor_for, run_tool

if TYPE_CHECKING:
    from ..config import PipelineConfig

log = logger.bind(stage="acquire")

EXTRACT_DIRNAME = "mp3s"


def fetch(source: Source, workspace: Path, config: PipelineConfig) -> Path:
    """Return a local path for the source, downloading remote archives.

    Local archives and directories are used in place, never copied.
    """
    if source.remote:
        dest = workspace / (source.name or "source.zip")
        log.info(f"Fetching {source.location}")
        return download(source.location, dest, timeout=config.download_timeout)
    return Path(source.location)


def extract(archive: Path, workspace: Path, config: PipelineConfig) -> Path:
    """Unpack an archive into workspace/mp3s. Returns that directory."""
    out_dir = workspace / EXTRACT_DIRNAME
    out_dir.mkdir(parents=True, exist_ok=True)

    tool = extractor_for(archive.name, config)
    if tool == config.unzip_bin:
        args = [tool, "-o", "-q", str(archive), "-d", str(out_dir)]
    else:
        args = [tool, "-xf", str(archive), "-C", str(out_dir)]

    try:
        run_tool(args, timeout=config.tool_timeout)
    except ExternalToolError as e:
        raise ExtractionError(f"Failed to extract {archive.name}: {e}") from e

    log.info(f"Extracted {archive.name} into {out_dir}")
    return out_dir

