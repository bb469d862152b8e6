"""Per-job temporary workspace."""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from .config import PipelineConfig

log = logger.bind(stage="workspace")


def create_workspace(config: PipelineConfig) -> Path:
    """Create an owner-only temp dir unique to this process and job."""
    if config.work_dir is not None:
        config.work_dir.mkdir(parents=True, exist_ok=True)
    path = Path(
        tempfile.mkdtemp(
            prefix=f"m4b-maker-{os.getpid()}-",
            dir=config.work_dir,
        )
    )
    path.chmod(0o700)
    log.debug(f"Created workspace {path}")
    return path


def remove_workspace(path: Path) -> None:
    """Remove a workspace tree. Failures are logged, not raised."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as e:
        log.warning(f"Failed to remove workspace {path}: {e}")
        return
    log.debug(f"Removed workspace {path}")


@contextmanager
def workspace(config: PipelineConfig) -> Iterator[Path]:
    """Yield a fresh workspace, removed on exit unless cleanup is disabled."""
    path = create_workspace(config)
    try:
        yield path
    finally:
        if config.cleanup_work_dir:
            remove_workspace(path)
        else:
            log.info(f"Keeping workspace {path}")
