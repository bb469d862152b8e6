"""Exception hierarchy for the M4B builder.

UsageError and its subclasses are input problems reported with the usage
text. StageError subclasses are failures inside a running job and abort the
run. Every failure maps to exit status 1 at the CLI.
"""


class PipelineError(Exception):
    """Base exception for all pipeline errors."""


class UsageError(PipelineError):
    """Bad arguments or option combinations."""


class InvalidSourceError(UsageError):
    """Source is neither a recognized archive nor an existing directory."""


class MissingMetadataError(UsageError):
    """Explicit mode without all of writer, title, album, and year."""


class ConflictingMetadataError(UsageError):
    """Explicit metadata supplied where it must be inferred."""


class InvalidCoverArtError(UsageError):
    """Cover art missing, unreadable, of an unsupported type, or unresizable."""


class DependencyError(PipelineError):
    """One or more external tools are not installed."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required tools: {', '.join(missing)}")
        self.missing = missing


class ExternalToolError(PipelineError):
    """An external subprocess (mp3wrap, mplayer, faac, etc.) failed."""

    def __init__(self, tool: str, exit_code: int, stderr: str) -> None:
        super().__init__(f"{tool} exited with code {exit_code}: {stderr}")
        self.tool = tool
        self.exit_code = exit_code
        self.stderr = stderr


class StageError(PipelineError):
    """A pipeline stage failed."""

    stage = ""

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class FetchError(StageError):
    stage = "acquire"


class ExtractionError(StageError):
    stage = "extract"


class ConcatenationError(StageError):
    stage = "concat"


class FormatDetectionError(StageError):
    stage = "analyze"


class EncodingError(StageError):
    stage = "encode"


class VerificationError(StageError):
    stage = "verify"
