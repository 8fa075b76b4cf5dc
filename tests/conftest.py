"""Pytest configuration and fixtures for comfy-bootstrap tests."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from comfy_bootstrap.config import Settings
from comfy_bootstrap.errors import NotFound


@pytest.fixture
def settings(tmp_path):
    """Settings rooted entirely inside tmp_path."""
    return Settings(
        hf_token="hf-test-token",
        civitai_api_key="civitai-test-key",
        code_server_password="s3cret",
        code_server_config=tmp_path / "config" / "code-server" / "config.yaml",
        code_server_log=tmp_path / "logs" / "code-server.log",
        comfy_home=tmp_path / "ComfyUI",
        comfy_python="/venv/bin/python",
        workspace=tmp_path / "workspace",
        runtime_dir=tmp_path / "runtime",
    )


class FakeHub:
    """Stands in for HubClient: serves a fixed set of files, records every call."""

    def __init__(self, cache_root: Path, available=()):
        self.cache_root = Path(cache_root)
        self.available = set(available)
        self.calls = []

    def fetch(self, repo_id, filename, local_dir=None):
        self.calls.append((repo_id, filename))
        if filename not in self.available:
            raise NotFound(f"{filename} not found in {repo_id}")
        path = self.cache_root / repo_id / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(f"weights:{filename}".encode())
        return path


@pytest.fixture
def fake_hub(tmp_path):
    def _make(*available):
        return FakeHub(tmp_path / "hf-cache", available)
    return _make


@pytest.fixture
def version_payload():
    """A trimmed /api/v1/model-versions response."""
    return {
        "id": 806265,
        "modelId": 720587,
        "name": "v1.0",
        "model": {"name": "Detail Tweaker FLUX"},
        "trainedWords": ["detailed", "sharp focus"],
        "downloadUrl": "https://civitai.com/api/download/models/806265",
        "images": [
            {"url": "https://image.civitai.com/a.jpeg"},
            {"url": "https://image.civitai.com/b.jpeg"},
            {"url": "https://image.civitai.com/c.jpeg"},
        ],
    }


def make_response(status_code=200, json_data=None, content=b"", headers=None, history=()):
    """Build a MagicMock shaped like an httpx.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = dict(headers or {})
    response.history = list(history)
    if json_data is not None:
        response.json.return_value = json_data
        response.content = b"{...}"
    else:
        response.content = content
        response.json.side_effect = ValueError("not json")
    return response


@pytest.fixture
def response_factory():
    return make_response
