"""Remote file download over HTTP(S)."""

from pathlib import Path
from urllib.parse import urlparse

import httpx
from loguru import logger

from .errors import FetchError

log = logger.bind(stage="fetch")


def download(url: str, dest: Path, timeout: float = 60.0) -> Path:
    """Stream url into dest. Returns dest.

    Raises FetchError on an unsupported scheme, transport error, or
    non-2xx status. A partially written dest is removed on failure.
    """
    scheme = urlparse(url).scheme.lower()
    if scheme not in ("http", "https"):
        raise FetchError(f"Unsupported download scheme '{scheme}': {url}")

    log.debug(f"Downloading {url} -> {dest}")
    size = 0
    try:
        with httpx.stream(
            "GET", url, timeout=timeout, follow_redirects=True
        ) as resp:
            resp.raise_for_status()
            with open(dest, "wb") as fh:
                for chunk in resp.iter_bytes():
                    fh.write(chunk)
                    size += len(chunk)
    except httpx.HTTPError as e:
        dest.unlink(missing_ok=True)
        raise FetchError(f"Download failed for {url}: {e}") from e
    except OSError as e:
        dest.unlink(missing_ok=True)
        raise FetchError(f"Cannot write {dest}: {e}") from e

    log.info(f"Downloaded {dest.name}: {size:,} bytes")
    return dest
