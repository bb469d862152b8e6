"""Validate stage -- classify each source location as archive or directory."""

from pathlib import Path

from loguru import logger

from ..errors import InvalidSourceError
from ..models import Source, SourceKind, archive_extension, base_name, is_remote

log = logger.bind(stage="validate")


def classify(location: str) -> Source:
    """Classify a source location.

    Remote locations (http, https, ftp) are always archives and must carry
    a recognized archive extension. Local locations are archives when the
    name ends in a recognized extension and the file exists, directories
    when the name has no extension and the path is a directory.
    Raises InvalidSourceError otherwise.
    """
    name = base_name(location)

    if is_remote(location):
        if not archive_extension(name):
            raise InvalidSourceError(
                f"Remote source must be an archive ({name or location})"
            )
        log.debug(f"{location}: remote archive")
        return Source(location=location, kind=SourceKind.ARCHIVE, remote=True)

    path = Path(location)
    if archive_extension(name):
        if not path.is_file():
            raise InvalidSourceError(f"Archive not found: {location}")
        log.debug(f"{location}: local archive")
        return Source(location=location, kind=SourceKind.ARCHIVE)

    if not path.suffix and path.is_dir():
        log.debug(f"{location}: directory")
        return Source(location=location, kind=SourceKind.DIRECTORY)

    raise InvalidSourceError(
        f"Not a recognized archive or an existing directory: {location}"
    )
