"""
Civitai community registry client.

Civitai has no general listing API: downloads go through the
``/api/download/models/{versionId}`` endpoint and metadata through
``/api/v1/model-versions/{versionId}``.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import httpx  # type: ignore

from . import specs
from .downloader import USER_AGENT, download_file
from .errors import AuthRequired, NotFound, ParseError, TransportError
from .headers import parse_content_disposition, synthetic_filename

logger = logging.getLogger(__name__)

CIVITAI_BASE_URL = "https://civitai.com"
MODEL_VERSION_ENDPOINT = "/api/v1/model-versions/{id}"


@dataclass(frozen=True)
class ModelVersionMetadata:
    """One model version as described by the registry."""
    version_id: int
    model_id: Optional[int]
    model_name: str
    version_name: str
    trained_words: Tuple[str, ...]
    download_url: str
    image_urls: Tuple[str, ...] = ()
    resolved_file_name: str = ""

    @property
    def version_page(self) -> str:
        return f"{CIVITAI_BASE_URL}/model-versions/{self.version_id}"

    @property
    def model_page(self) -> str:
        return f"{CIVITAI_BASE_URL}/models/{self.model_id}"

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ModelVersionMetadata":
        model = data.get("model")
        if not isinstance(model, dict):
            model = {}
        images = data.get("images")
        if not isinstance(images, list):
            images = []
        words = data.get("trainedWords")
        if not isinstance(words, list):
            words = []
        download_url = data.get("downloadUrl")
        if not isinstance(download_url, str) or not download_url:
            download_url = specs.CIVITAI_DOWNLOAD_TEMPLATE.format(id=data["id"])
        return cls(
            version_id=int(data["id"]),
            model_id=data.get("modelId"),
            model_name=str(model.get("name") or ""),
            version_name=str(data.get("name") or ""),
            trained_words=tuple(str(w) for w in words if w),
            download_url=download_url,
            image_urls=tuple(img["url"] for img in images if isinstance(img, dict) and img.get("url")),
        )


class CivitaiClient:
    def __init__(self, api_key: Optional[str] = None, base_url: str = CIVITAI_BASE_URL, timeout: int = 60):
        self.api_key = api_key or None
        self.base_url = base_url
        self.headers = {"User-Agent": USER_AGENT}
        if self.api_key:
            self.headers["Authorization"] = f"Bearer {self.api_key}"
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers=self.headers,
            follow_redirects=True,
        )

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def resolve_download_url(self, spec: str) -> Optional[str]:
        url = specs.resolve_download_url(spec)
        if url is None:
            logger.warning(f"Skipping unknown Civitai spec: {spec}")
        return url

    def get_model_version(self, version_id: int) -> ModelVersionMetadata:
        """
        Fetch version metadata and check that it describes ``version_id``.

        Raises ParseError on an empty, non-JSON or mismatched body.
        """
        path = MODEL_VERSION_ENDPOINT.format(id=version_id)
        try:
            resp = self.client.get(path)
        except httpx.HTTPError as e:
            raise TransportError(f"Version {version_id}: {e}")

        if resp.status_code in (401, 403):
            raise AuthRequired(f"Version {version_id}: HTTP {resp.status_code} - set CIVITAI_API_KEY")
        if resp.status_code == 404:
            raise NotFound(f"Version {version_id} does not exist")
        if resp.status_code >= 400:
            raise TransportError(f"Version {version_id}: HTTP {resp.status_code}")

        if not resp.content:
            raise ParseError(f"Version {version_id}: empty response")
        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError):
            raise ParseError(f"Version {version_id}: response is not JSON")

        if not isinstance(data, dict) or str(data.get("id", "")) != str(version_id):
            echoed = data.get("id") if isinstance(data, dict) else None
            raise ParseError(f"Version {version_id}: response describes id {echoed!r}")

        try:
            return ModelVersionMetadata.from_api(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Version {version_id}: unexpected payload ({e})")

    def probe_filename(self, url: str, version_id: Optional[int] = None) -> str:
        """
        Resolve the server-side filename with a HEAD request (redirects followed).

        Never raises: falls back to a synthetic name when the header is
        missing, malformed or the probe fails.
        """
        name = None
        try:
            resp = self.client.head(url)
            # Intermediate redirect hops may carry the header instead of the final one
            for hop in list(resp.history) + [resp]:
                name = parse_content_disposition(hop.headers.get("content-disposition")) or name
        except httpx.HTTPError as e:
            logger.warning(f"Filename probe failed for {url}: {e}")

        if name:
            return name
        if version_id is not None:
            return f"model-{version_id}.safetensors"
        return synthetic_filename()

    def download(self, url: str, destination_dir: Path) -> Path:
        """Stream ``url`` into ``destination_dir`` under its server-provided name."""
        destination_dir = Path(destination_dir)
        destination_dir.mkdir(parents=True, exist_ok=True)
        filename = self.probe_filename(url, version_id=specs.extract_version_id(url))
        if self.api_key:
            logger.info(f"Downloading from Civitai with API key: {url}")
        else:
            logger.info(f"Downloading from Civitai (no API key): {url}")
        return download_file(url, destination_dir / filename, headers=self.headers)
