"""FFprobe subprocess wrappers for reading tags back from an encoded file."""

import json
import subprocess
from pathlib import Path


def get_tags(file: Path, ffprobe_bin: str = "ffprobe") -> dict:
    """Get format-level metadata tags from an audio file.

    Returns dict with lowercase keys. Common keys for an M4B: artist,
    composer, title, album, genre, date, track.
    """
    result = subprocess.run(
        [ffprobe_bin, "-v", "error", "-show_entries", "format_tags",
         "-of", "json", str(file)],
        capture_output=True, text=True,
    )
    if result.returncode != 0:
        return {}
    try:
        data = json.loads(result.stdout)
        raw = data.get("format", {}).get("tags", {})
        # Normalize keys to lowercase
        return {k.lower(): v for k, v in raw.items()}
    except (json.JSONDecodeError, KeyError):
        return {}


def track_number(value: str) -> int | None:
    """Parse a track tag like '1' or '1/12'."""
    head = value.split("/", 1)[0].strip()
    if not head.isdigit():
        return None
    return int(head)
