"""
Streaming file downloads with resume support.

Partial transfers live next to the target as ``<name>.part`` and are
continued with an HTTP Range request on the next attempt.
"""

import logging
import time
from pathlib import Path
from typing import Dict, Optional

import requests

from .errors import AuthRequired, NotFound, ProvisionError, TransportError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 32768
DEFAULT_TIMEOUT = 300
USER_AGENT = "comfy-bootstrap/0.1 (+https://github.com/comfyanonymous/ComfyUI)"


def part_path(filepath: Path) -> Path:
    return filepath.with_name(filepath.name + ".part")


def raise_for_status(response: requests.Response, url: str):
    """Map an HTTP error status onto the provisioning error taxonomy."""
    status = response.status_code
    if status < 400:
        return
    if status in (401, 403):
        raise AuthRequired(f"{url} returned HTTP {status} - credential missing or rejected")
    if status == 404:
        raise NotFound(f"{url} returned HTTP 404")
    raise TransportError(f"{url} returned HTTP {status}")


def download_file(
    url: str,
    filepath: Path,
    headers: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> Path:
    """
    Download ``url`` to ``filepath``, resuming a previous partial transfer.

    An existing ``filepath`` is treated as complete and returned as-is.
    Raises NotFound, AuthRequired or TransportError.
    """
    filepath = Path(filepath)
    if filepath.exists():
        logger.info(f"[SKIP] File already exists: {filepath}")
        return filepath

    filepath.parent.mkdir(parents=True, exist_ok=True)
    partial = part_path(filepath)
    offset = partial.stat().st_size if partial.exists() else 0

    request_headers = {"User-Agent": USER_AGENT}
    request_headers.update(headers or {})
    if offset:
        request_headers["Range"] = f"bytes={offset}-"

    http = session or requests
    try:
        response = http.get(url, headers=request_headers, stream=True, timeout=timeout, allow_redirects=True)
    except requests.exceptions.Timeout:
        raise TransportError(f"Request timeout for {url}")
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Download error for {url}: {e}")

    try:
        if response.status_code == 416 and offset:
            # Server has nothing past our offset: the partial file is whole
            partial.replace(filepath)
            logger.info(f"[OK] {filepath.name} was already fully downloaded")
            return filepath

        raise_for_status(response, url)

        content_type = response.headers.get("content-type", "")
        if "text/html" in content_type:
            raise AuthRequired(
                f"Received HTML instead of a file from {url} - check the API key"
            )

        if response.status_code == 206 and offset:
            mode = "ab"
            logger.info(f"Resuming {filepath.name} at {offset / (1024 * 1024):.1f}MB")
        else:
            mode = "wb"
            offset = 0

        length = int(response.headers.get("content-length", 0) or 0)
        expected = offset + length if length else 0
        downloaded = offset
        start_time = time.time()

        with open(partial, mode) as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    downloaded += len(chunk)
    except ProvisionError:
        raise
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Download interrupted for {url}: {e}")
    except OSError as e:
        raise TransportError(f"Could not write {partial}: {e}")
    finally:
        response.close()

    if expected and downloaded != expected:
        # Keep the .part so the next run can resume
        raise TransportError(
            f"Incomplete download of {filepath.name}: expected {expected} bytes, got {downloaded}"
        )

    partial.replace(filepath)

    size_mb = downloaded / (1024 * 1024)
    elapsed = time.time() - start_time
    speed_mb = size_mb / elapsed if elapsed > 0 else 0
    logger.info(f"[OK] {filepath.name} ({size_mb:.1f}MB @ {speed_mb:.1f}MB/s)")
    return filepath
