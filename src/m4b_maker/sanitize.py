"""Output filenames derived from book titles."""

import re

from loguru import logger

log = logger.bind(stage="sanitize")

FALLBACK_STEM = "audiobook"
MAX_NAME_BYTES = 255

_UNSAFE_RE = re.compile(r'[/\\:"*?<>|;]+')


def output_filename(title: str, extension: str) -> str:
    """Turn a title into a filename with the given extension.

    Path separators and shell-hostile characters become underscores, and
    leading/trailing dots and underscores are dropped so the result is
    never hidden. The stem is cut on a character boundary so that the
    whole name fits in MAX_NAME_BYTES.
    """
    stem = _UNSAFE_RE.sub("_", title)
    stem = re.sub(r"__+", "_", stem).strip("._ ")
    if not stem:
        log.debug(f"Title {title!r} has no usable characters, using {FALLBACK_STEM}")
        stem = FALLBACK_STEM

    budget = MAX_NAME_BYTES - len(extension.encode("utf-8"))
    encoded = stem.encode("utf-8")
    if len(encoded) > budget:
        stem = encoded[:budget].decode("utf-8", errors="ignore").rstrip("._ ")
        log.debug(f"Truncated title to {len(stem.encode('utf-8'))} bytes")
    return stem + extension
