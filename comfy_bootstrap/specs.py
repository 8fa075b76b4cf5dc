"""
Declarative input files: plugin lists and Civitai model spec lists.

Both are newline-delimited; blank lines and ``#`` comments are ignored.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

CIVITAI_DOWNLOAD_TEMPLATE = "https://civitai.com/api/download/models/{id}"

_BARE_ID_RE = re.compile(r"^[0-9]+$")
_ID_ASSIGN_RE = re.compile(r"^id=([0-9]+)$")
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_URL_MODELS_ID_RE = re.compile(r"/models/([0-9]+)")


def read_list_file(path: Union[str, Path]) -> List[str]:
    """Read a newline-delimited list, dropping blanks and comments.

    A missing file is an empty list.
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"List file not found, nothing to read: {path}")
        return []

    entries = []
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            entries.append(line)
    return entries


def extract_version_id(spec: str) -> Optional[int]:
    """Normalize a Civitai model spec to its version id.

    Accepts ``12345``, ``id=12345`` and URLs such as
    ``https://civitai.com/api/download/models/806265?type=Model``.
    Returns None for anything else.
    """
    spec = spec.strip()
    if _BARE_ID_RE.match(spec):
        return int(spec)
    match = _ID_ASSIGN_RE.match(spec)
    if match:
        return int(match.group(1))
    if _URL_RE.match(spec):
        match = _URL_MODELS_ID_RE.search(spec)
        if match:
            return int(match.group(1))
    return None


def resolve_download_url(spec: str) -> Optional[str]:
    """Turn a Civitai spec line into a download URL.

    URLs are used verbatim; bare ids and ``id=<digits>`` expand to the
    standard download endpoint. Unrecognized specs give None.
    """
    spec = spec.strip()
    if _URL_RE.match(spec):
        return spec
    if _BARE_ID_RE.match(spec) or _ID_ASSIGN_RE.match(spec):
        return CIVITAI_DOWNLOAD_TEMPLATE.format(id=extract_version_id(spec))
    return None
