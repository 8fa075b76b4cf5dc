"""
Hugging Face hub client.

Files land in ``<cache_root>/<repo_id>/<filename>`` so a given
(repo, file) pair always maps to the same path, and interrupted
transfers are resumed by huggingface_hub on the next call.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import httpx
from huggingface_hub import hf_hub_download
from huggingface_hub.errors import (
    EntryNotFoundError,
    GatedRepoError,
    HfHubHTTPError,
    LocalEntryNotFoundError,
    RepositoryNotFoundError,
)

from .errors import AuthRequired, NotFound, TransportError

logger = logging.getLogger(__name__)


class HubClient:
    def __init__(self, cache_root: Union[str, Path], token: Optional[str] = None):
        self.cache_root = Path(cache_root)
        # Empty string means anonymous, same as no token
        self.token = token or None

    def local_dir_for(self, repo_id: str) -> Path:
        return self.cache_root / repo_id

    def fetch(self, repo_id: str, filename: str, local_dir: Optional[Path] = None) -> Path:
        """
        Download ``filename`` from ``repo_id`` and return the local path.

        Raises NotFound, AuthRequired or TransportError.
        """
        target_dir = Path(local_dir) if local_dir else self.local_dir_for(repo_id)
        target_dir.mkdir(parents=True, exist_ok=True)

        if not self.token:
            logger.debug(f"No hub token set, fetching {repo_id}/{filename} anonymously")

        try:
            path = hf_hub_download(
                repo_id=repo_id,
                filename=filename,
                local_dir=str(target_dir),
                token=self.token,
            )
        except LocalEntryNotFoundError as e:
            raise TransportError(f"{repo_id}/{filename}: hub unreachable and no local copy ({e})")
        except GatedRepoError:
            raise AuthRequired(f"{repo_id} is gated - set HF_TOKEN with access to it")
        except RepositoryNotFoundError:
            if not self.token:
                # The hub answers 401 for private and gated repos when anonymous
                raise AuthRequired(f"{repo_id} not accessible anonymously - set HF_TOKEN")
            raise NotFound(f"Repository {repo_id} not found")
        except EntryNotFoundError:
            raise NotFound(f"{filename} not found in {repo_id}")
        except HfHubHTTPError as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            if status in (401, 403):
                raise AuthRequired(f"{repo_id}/{filename}: HTTP {status}")
            raise TransportError(f"{repo_id}/{filename}: {e}")
        except (OSError, httpx.HTTPError) as e:
            raise TransportError(f"{repo_id}/{filename}: {e}")

        logger.debug(f"Hub file ready: {path}")
        return Path(path)
