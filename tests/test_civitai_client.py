"""Tests for the Civitai registry client."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from comfy_bootstrap.civitai_client import CivitaiClient, ModelVersionMetadata
from comfy_bootstrap.errors import AuthRequired, NotFound, ParseError, TransportError


class TestCivitaiClient:
    """Test the CivitaiClient class."""

    @pytest.fixture
    def client(self):
        client = CivitaiClient(api_key="civ-key")
        client.client = MagicMock()
        yield client

    def test_init_with_key(self):
        with CivitaiClient(api_key="civ-key") as client:
            assert client.headers["Authorization"] == "Bearer civ-key"

    def test_init_without_key(self):
        with CivitaiClient(api_key="") as client:
            assert "Authorization" not in client.headers
            assert client.api_key is None

    def test_resolve_download_url_unknown_spec(self, client, caplog):
        assert client.resolve_download_url("whatever") is None
        assert "Skipping unknown Civitai spec: whatever" in caplog.text

    def test_resolve_download_url_id(self, client):
        assert client.resolve_download_url("id=42") == "https://civitai.com/api/download/models/42"

    def test_get_model_version_success(self, client, version_payload, response_factory):
        client.client.get.return_value = response_factory(json_data=version_payload)

        meta = client.get_model_version(806265)

        client.client.get.assert_called_once_with("/api/v1/model-versions/806265")
        assert meta.version_id == 806265
        assert meta.model_id == 720587
        assert meta.model_name == "Detail Tweaker FLUX"
        assert meta.version_name == "v1.0"
        assert meta.trained_words == ("detailed", "sharp focus")
        assert meta.download_url == "https://civitai.com/api/download/models/806265"
        assert len(meta.image_urls) == 3
        assert meta.version_page == "https://civitai.com/model-versions/806265"
        assert meta.model_page == "https://civitai.com/models/720587"

    def test_get_model_version_id_mismatch(self, client, version_payload, response_factory):
        version_payload["id"] = 1
        client.client.get.return_value = response_factory(json_data=version_payload)

        with pytest.raises(ParseError, match="describes id 1"):
            client.get_model_version(806265)

    def test_get_model_version_empty_body(self, client, response_factory):
        client.client.get.return_value = response_factory(content=b"")

        with pytest.raises(ParseError, match="empty"):
            client.get_model_version(806265)

    def test_get_model_version_not_json(self, client, response_factory):
        client.client.get.return_value = response_factory(content=b"<html>")

        with pytest.raises(ParseError, match="not JSON"):
            client.get_model_version(806265)

    def test_get_model_version_error_body(self, client, response_factory):
        client.client.get.return_value = response_factory(json_data={"error": "No model with id 5"})

        with pytest.raises(ParseError):
            client.get_model_version(5)

    @pytest.mark.parametrize(
        "status,error",
        [(401, AuthRequired), (403, AuthRequired), (404, NotFound), (502, TransportError)],
    )
    def test_get_model_version_http_errors(self, client, response_factory, status, error):
        client.client.get.return_value = response_factory(status_code=status)

        with pytest.raises(error):
            client.get_model_version(806265)

    def test_get_model_version_network_error(self, client):
        client.client.get.side_effect = httpx.ConnectError("boom")

        with pytest.raises(TransportError, match="boom"):
            client.get_model_version(806265)

    def test_probe_filename_from_final_response(self, client, response_factory):
        client.client.head.return_value = response_factory(
            headers={"content-disposition": 'attachment; filename="detail.safetensors"'}
        )

        assert client.probe_filename("https://civitai.com/api/download/models/1") == "detail.safetensors"
        client.client.head.assert_called_once_with("https://civitai.com/api/download/models/1")

    def test_probe_filename_from_redirect_hop(self, client, response_factory):
        hop = response_factory(
            status_code=307,
            headers={"content-disposition": 'attachment; filename="hop.safetensors"'},
        )
        client.client.head.return_value = response_factory(history=[hop])

        assert client.probe_filename("https://civitai.com/api/download/models/1") == "hop.safetensors"

    def test_probe_filename_falls_back_to_version_name(self, client, response_factory):
        client.client.head.return_value = response_factory(headers={})

        assert client.probe_filename("https://x", version_id=77) == "model-77.safetensors"

    def test_probe_filename_falls_back_to_timestamp(self, client):
        client.client.head.side_effect = httpx.ConnectError("boom")

        with patch("comfy_bootstrap.civitai_client.synthetic_filename", return_value="model-1.safetensors"):
            assert client.probe_filename("https://x") == "model-1.safetensors"

    def test_download_uses_probed_name(self, client, tmp_path):
        with patch.object(client, "probe_filename", return_value="lora.safetensors"), \
             patch("comfy_bootstrap.civitai_client.download_file") as mock_download:
            mock_download.return_value = tmp_path / "loras" / "lora.safetensors"

            result = client.download("https://civitai.com/api/download/models/1", tmp_path / "loras")

        assert result == tmp_path / "loras" / "lora.safetensors"
        mock_download.assert_called_once_with(
            "https://civitai.com/api/download/models/1",
            tmp_path / "loras" / "lora.safetensors",
            headers=client.headers,
        )
        assert (tmp_path / "loras").is_dir()

    def test_download_without_header_is_stable_across_runs(self, client, tmp_path, response_factory):
        client.client.head.return_value = response_factory(headers={})
        body = MagicMock(status_code=200, headers={"content-length": "4"})
        body.iter_content.return_value = [b"lora"]

        timestamps = ["model-1000.safetensors", "model-2000.safetensors"]
        with patch("comfy_bootstrap.civitai_client.synthetic_filename", side_effect=timestamps), \
             patch("comfy_bootstrap.downloader.requests.get", return_value=body) as mock_get:
            first = client.download("https://civitai.com/api/download/models/42", tmp_path)
            second = client.download("https://civitai.com/api/download/models/42", tmp_path)

        assert first == second == tmp_path / "model-42.safetensors"
        assert [p.name for p in tmp_path.iterdir()] == ["model-42.safetensors"]
        assert mock_get.call_count == 1

    def test_get_model_version_odd_field_types(self, client, response_factory):
        client.client.get.return_value = response_factory(
            json_data={"id": 5, "model": "oops", "trainedWords": "word", "images": {"url": "x"}}
        )

        meta = client.get_model_version(5)

        assert meta.model_name == ""
        assert meta.trained_words == ()
        assert meta.image_urls == ()

    def test_get_model_version_unexpected_payload_is_parse_error(self, client, response_factory):
        client.client.get.return_value = response_factory(json_data={"id": 5})

        error = AttributeError("'str' object has no attribute 'get'")
        with patch.object(ModelVersionMetadata, "from_api", side_effect=error):
            with pytest.raises(ParseError, match="unexpected payload"):
                client.get_model_version(5)


class TestModelVersionMetadata:
    def test_from_api_tolerates_missing_optional_fields(self):
        meta = ModelVersionMetadata.from_api({"id": 9})

        assert meta.version_id == 9
        assert meta.model_name == ""
        assert meta.trained_words == ()
        assert meta.image_urls == ()
        assert meta.download_url == "https://civitai.com/api/download/models/9"
