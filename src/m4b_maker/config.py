"""Pipeline configuration via pydantic-settings (.env + env vars)."""

import sys
from pathlib import Path

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineConfig(BaseSettings):
    """All pipeline configuration with layered resolution:
    .env file < environment variables < constructor kwargs.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -- Directories --
    work_dir: Path | None = None  # None = system temp dir
    log_dir: Path = Path.home() / ".local" / "state" / "m4b-maker"

    # -- Behavior --
    verbose: bool = False
    log_level: str = "INFO"
    cleanup_work_dir: bool = True
    keep_going: bool = False
    verify_tags: bool = False

    # -- Metadata --
    publisher_tokens: list[str] = ["librivox"]

    # -- Cover art --
    default_cover_url: str = "https://archive.org/services/img/librivoxaudio"

    # -- Encoding --
    encode_quality: int = 80

    # -- Timing (seconds) --
    settle_interval: float = 0.5
    settle_timeout: float = 60.0
    tool_timeout: float = 0  # 0 = wait forever
    download_timeout: float = 60.0

    # -- External tools --
    unzip_bin: str = "unzip"
    tar_bin: str = "tar"
    identify_bin: str = "identify"
    convert_bin: str = "convert"
    mp3wrap_bin: str = "mp3wrap"
    mplayer_bin: str = "mplayer"
    faac_bin: str = "faac"
    ffprobe_bin: str = "ffprobe"

    def setup_logging(self) -> None:
        """Configure loguru for the pipeline."""
        logger.remove()  # Remove default stderr handler

        log_format = (
            "{time:YYYY-MM-DDTHH:mm:ssZ} | {level:<8} | "
            "{extra[stage]:<10} | {message}"
        )

        def _default_extra(record):
            record["extra"].setdefault("stage", "")
            return True

        logger.add(
            sys.stderr,
            format=log_format,
            level=self.log_level.upper(),
            filter=_default_extra,
        )

        self.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(self.log_dir / "pipeline.log"),
            format=log_format,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            filter=_default_extra,
        )
