"""External tool invocation and dependency discovery."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .errors import DependencyError, ExternalToolError
from .models import SourceKind, archive_extension

if TYPE_CHECKING:
    from .config import PipelineConfig
    from .models import Source

log = logger.bind(stage="tools")


def run_tool(
    args: list[str],
    check: bool = True,
    timeout: float = 0,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess:
    """Run an external tool and wait for it to exit.

    Captures stdout/stderr as text. Raises ExternalToolError on a nonzero
    exit (when check is set) or when timeout (seconds, 0 = none) expires.
    """
    args_str = " ".join(args)
    if len(args_str) > 100:
        args_str = args_str[:97] + "..."
    log.debug(f"run_tool args={args_str}")

    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout or None,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        raise ExternalToolError(
            tool=args[0],
            exit_code=-1,
            stderr=f"timed out after {timeout}s",
        ) from None
    except FileNotFoundError:
        raise ExternalToolError(tool=args[0], exit_code=127, stderr="not found") from None

    if check and result.returncode != 0:
        raise ExternalToolError(
            tool=args[0],
            exit_code=result.returncode,
            stderr=result.stderr[-500:],
        )
    return result


def extractor_for(archive: str, config: PipelineConfig) -> str:
    """Executable that unpacks the given archive name."""
    if archive_extension(archive) == ".zip":
        return config.unzip_bin
    return config.tar_bin


def required_tools(sources: list[Source], config: PipelineConfig) -> list[str]:
    """Executables a run over these sources will invoke, in call order."""
    tools: list[str] = []
    for source in sources:
        if source.kind == SourceKind.ARCHIVE:
            tools.append(extractor_for(source.name, config))
    tools.extend(
        [
            config.identify_bin,
            config.convert_bin,
            config.mp3wrap_bin,
            config.mplayer_bin,
            config.faac_bin,
        ]
    )
    if config.verify_tags:
        tools.append(config.ffprobe_bin)
    # De-duplicate, keep order
    return list(dict.fromkeys(tools))


def check_dependencies(sources: list[Source], config: PipelineConfig) -> None:
    """Raise DependencyError naming every required tool not found on PATH."""
    missing = [t for t in required_tools(sources, config) if shutil.which(t) is None]
    if missing:
        log.error(f"Missing tools: {missing}")
        raise DependencyError(missing)
    log.debug("All external tools found")
