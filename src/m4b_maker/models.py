"""Core enums, constants, and value types for the M4B builder.

Enums:
    SourceKind     -- How a source is materialized (archive or directory).
    MetadataMode   -- Explicit (caller-supplied) or inferred from the source name.
    CoverOrigin    -- Where the cover image came from (default, user-local, user-remote).
    Stage          -- Individual job stage (validate through verify).
    JobStatus      -- Job execution state (pending, running, done, failed).

Value types are frozen dataclasses: once a stage produces one, later stages
only read it.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from urllib.parse import unquote, urlparse


class SourceKind(StrEnum):
    ARCHIVE = "archive"
    DIRECTORY = "directory"


class MetadataMode(StrEnum):
    EXPLICIT = "explicit"
    INFER = "infer"


class CoverOrigin(StrEnum):
    DEFAULT = "default"
    USER_LOCAL = "user-local"
    USER_REMOTE = "user-remote"


class JobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class Stage(StrEnum):
    VALIDATE = "validate"
    METADATA = "metadata"
    COVER = "cover"
    ACQUIRE = "acquire"
    EXTRACT = "extract"
    CONCAT = "concat"
    ANALYZE = "analyze"
    ENCODE = "encode"
    VERIFY = "verify"


# Execution order for a job. EXTRACT only runs for archives, VERIFY only
# when tag verification is enabled.
STAGE_ORDER: list[Stage] = [
    Stage.VALIDATE,
    Stage.METADATA,
    Stage.COVER,
    Stage.ACQUIRE,
    Stage.EXTRACT,
    Stage.CONCAT,
    Stage.ANALYZE,
    Stage.ENCODE,
    Stage.VERIFY,
]

# Longest first so ".tar.gz" wins over ".gz"-style partial matches
ARCHIVE_EXTENSIONS: tuple[str, ...] = (
    ".tar.bz2",
    ".tar.gz",
    ".tar.xz",
    ".tbz2",
    ".tgz",
    ".tar",
    ".zip",
)

REMOTE_SCHEMES: frozenset[str] = frozenset({"http", "https", "ftp"})

IMAGE_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png"})

TRACK_EXTENSIONS: frozenset[str] = frozenset({".mp3"})

AUDIO_FORMAT_TOKENS: tuple[str, ...] = ("mp3", "ogg", "m4a", "flac")

CONTAINER_EXTENSION = ".m4b"
GENRE = "Spoken Word"
TRACK_NUMBER = 1
COVER_SIZE = 300


def is_remote(location: str) -> bool:
    """True if location uses a remote scheme (http, https, ftp)."""
    return urlparse(location).scheme.lower() in REMOTE_SCHEMES


def archive_extension(name: str) -> str:
    """Return the recognized archive extension of name (lowercased), or ''."""
    lowered = name.lower()
    for ext in ARCHIVE_EXTENSIONS:
        if lowered.endswith(ext):
            return ext
    return ""


def base_name(location: str) -> str:
    """Base filename of a local path or a URL path."""
    if is_remote(location):
        return unquote(Path(urlparse(location).path).name)
    return Path(location).name


@dataclass(frozen=True)
class Source:
    location: str
    kind: SourceKind
    remote: bool = False

    @property
    def name(self) -> str:
        return base_name(self.location)


@dataclass(frozen=True)
class Metadata:
    writer: str
    title: str
    album: str
    year: str


@dataclass(frozen=True)
class MetadataRequest:
    """Raw metadata flags from the command line.

    Any field left as None was not supplied by the caller.
    """

    writer: str | None = None
    title: str | None = None
    album: str | None = None
    year: str | None = None
    infer: bool = False

    def explicit_fields(self) -> dict[str, str]:
        """Fields the caller actually supplied."""
        return {
            name: value
            for name, value in (
                ("writer", self.writer),
                ("title", self.title),
                ("album", self.album),
                ("year", self.year),
            )
            if value is not None
        }


@dataclass(frozen=True)
class CoverArt:
    path: Path
    width: int
    height: int
    origin: CoverOrigin


@dataclass(frozen=True)
class AudioFormat:
    rate: int
    channels: int
    bitdepth: int
    raw_path: Path


@dataclass
class Job:
    """One source flowing through the pipeline."""

    index: int
    source: Source
    destination: Path
    workspace: Path | None = None
    metadata: Metadata | None = None
    cover: CoverArt | None = None
    status: JobStatus = JobStatus.PENDING
    output: Path | None = None


@dataclass
class RunResult:
    """Summary of a run across all jobs."""

    completed: int = 0
    failed: int = 0
    total: int = 0
    outputs: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
