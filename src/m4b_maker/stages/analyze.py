"""Analyze stage -- decode the merged MP3 to raw PCM and read its format.

mplayer reports the PCM output format on a single diagnostic line:

    AO: [pcm] 22050Hz 1ch s16le (2 bytes per sample)

That line is the only thing parsed; anything else in the output is ignored.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from ..errors import ExternalToolError, FormatDetectionError
from ..models import AudioFormat
from ..tools import run_tool

if TYPE_CHECKING:
    from ..config import PipelineConfig

log = logger.bind(stage="analyze")

RAW_NAME = "merged.pcm"
LOG_NAME = "decode.log"
MARKER = "AO: [pcm]"

_FORMAT_RE = re.compile(
    r"^AO: \[pcm\] (?P<rate>\d+)Hz (?P<channels>\d+)ch [su](?P<bits>\d+)(?:le|be)\b"
)


def parse_format_line(output: str) -> tuple[int, int, int]:
    """Find the marker line in decoder output and return (rate, channels, bits)."""
    lines = [line for line in output.splitlines() if line.startswith(MARKER)]
    if not lines:
        raise FormatDetectionError(f"Decoder output has no '{MARKER}' line")

    match = _FORMAT_RE.match(lines[0])
    if not match:
        raise FormatDetectionError(f"Unrecognized format line: {lines[0]!r}")
    return int(match["rate"]), int(match["channels"]), int(match["bits"])


def run(merged: Path, workspace: Path, config: PipelineConfig) -> AudioFormat:
    """Decode merged into workspace/merged.pcm and detect its format."""
    raw = workspace / RAW_NAME
    log_file = workspace / LOG_NAME

    cmd = [
        config.mplayer_bin,
        "-noconsolecontrols",
        "-vo", "null",
        "-vc", "null",
        "-ao", f"pcm:fast:nowaveheader:file={raw}",
        str(merged),
    ]
    try:
        result = run_tool(cmd, check=False, timeout=config.tool_timeout)
    except ExternalToolError as e:
        raise FormatDetectionError(f"Decoder did not finish: {e}") from e

    diagnostics = result.stdout + result.stderr
    log_file.write_text(diagnostics)

    if result.returncode != 0:
        raise FormatDetectionError(
            f"Decoder exited with code {result.returncode}: {result.stderr[-500:]}"
        )

    rate, channels, bits = parse_format_line(diagnostics)

    if not raw.is_file() or raw.stat().st_size == 0:
        raise FormatDetectionError(f"Decoder produced no samples in {raw.name}")

    log.info(f"Decoded {merged.name}: {rate}Hz {channels}ch {bits}-bit")
    return AudioFormat(rate=rate, channels=channels, bitdepth=bits, raw_path=raw)
