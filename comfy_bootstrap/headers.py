"""Content-Disposition parsing and synthetic filename fallback."""

import re
import time
from pathlib import PurePosixPath, PureWindowsPath
from typing import Optional
from urllib.parse import unquote

# filename*=UTF-8''name%20here.safetensors  (RFC 5987)
_EXT_FILENAME_RE = re.compile(r"filename\*\s*=\s*([^;]+)", re.IGNORECASE)
# filename="name.safetensors" or filename=name.safetensors
_FILENAME_RE = re.compile(r'(?<![\w*])filename\s*=\s*("(?:[^"\\]|\\.)*"|[^;]*)', re.IGNORECASE)


def _sanitize(name: str) -> Optional[str]:
    # Never let a server pick a directory for us
    name = PurePosixPath(name).name
    name = PureWindowsPath(name).name
    name = name.strip().strip("\x00")
    if not name or name in (".", ".."):
        return None
    return name


def parse_content_disposition(header: Optional[str]) -> Optional[str]:
    """Return the filename carried by a Content-Disposition header, or None.

    The extended ``filename*`` parameter wins over plain ``filename``.
    Any directory components are stripped.
    """
    if not header:
        return None

    match = _EXT_FILENAME_RE.search(header)
    if match:
        value = match.group(1).strip().strip('"')
        if "''" in value:
            charset, _, encoded = value.partition("''")
            try:
                decoded = unquote(encoded, encoding=charset or "utf-8", errors="strict")
            except (LookupError, UnicodeDecodeError):
                decoded = None
            if decoded:
                name = _sanitize(decoded)
                if name:
                    return name

    match = _FILENAME_RE.search(header)
    if not match:
        return None
    value = match.group(1).strip()
    if value.startswith('"'):
        if len(value) < 2 or not value.endswith('"'):
            return None
        value = value[1:-1].replace('\\"', '"')
    return _sanitize(value)


def synthetic_filename(prefix: str = "model", suffix: str = ".safetensors", now: Optional[float] = None) -> str:
    """Timestamp-based name for downloads whose server sent no usable filename."""
    stamp = int(now if now is not None else time.time())
    return f"{prefix}-{stamp}{suffix}"
