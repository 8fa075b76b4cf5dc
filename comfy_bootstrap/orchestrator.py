"""
Workspace bootstrap, start to finish.

Order matters and is fixed here:
plugins -> legacy migration -> hub models -> Civitai models -> docs
-> code-server -> workspace links -> ComfyUI.
Only MissingCriticalArtifact and ServiceLaunchError escape; everything
else is logged.
"""

import logging
from pathlib import Path
from typing import List

from . import launcher
from .catalog import flux_artifacts
from .civitai_client import CivitaiClient
from .config import Settings
from .errors import ProvisionError
from .hub_client import HubClient
from .layout import ensure_layout
from .migrate import migrate_legacy_layout
from .mirror import build_index
from .plugins import PluginState, install_dependencies, read_plugin_list, reconcile
from .resolver import ResolvedArtifact, provision_artifacts
from .specs import read_list_file

logger = logging.getLogger(__name__)


def sync_plugins(settings: Settings) -> List[PluginState]:
    specs = read_plugin_list(settings.plugin_list_file)
    if specs:
        logger.info(f"Syncing {len(specs)} custom node(s) from {settings.plugin_list_file}")
    states = reconcile(specs, settings.custom_nodes_dir)
    # Also covers nodes the user installed by hand
    install_dependencies(settings.custom_nodes_dir, settings.comfy_python)
    return states


def provision_hub_models(settings: Settings) -> List[ResolvedArtifact]:
    client = HubClient(settings.hf_cache_dir, token=settings.hf_token)
    artifacts = flux_artifacts(settings.flux_repo, settings.flux_encoder_repo)
    return provision_artifacts(client, artifacts, settings.models_root)


def download_civitai_models(settings: Settings, client: CivitaiClient) -> List[Path]:
    lines = read_list_file(settings.civitai_list_file)
    if not lines:
        return []

    logger.info(f"Fetching Civitai models listed in {settings.civitai_list_file} ...")
    lora_dir = settings.models_root / "loras"
    downloaded = []
    for line in lines:
        url = client.resolve_download_url(line)
        if url is None:
            continue
        try:
            downloaded.append(client.download(url, lora_dir))
        except ProvisionError as e:
            logger.warning(f"Civitai download failed for {line}: {type(e).__name__}: {e}")
    return downloaded


def build_model_docs(settings: Settings, client: CivitaiClient):
    lines = read_list_file(settings.civitai_list_file)
    if not lines:
        logger.info("No Civitai specs listed, skipping model docs")
        return None
    return build_index(lines, settings.model_docs_dir, client)


def prepare_workspace(settings: Settings) -> None:
    """Everything up to (but not including) starting the services."""
    ensure_layout(settings.models_root, settings.custom_nodes_dir, settings.hf_cache_dir)

    sync_plugins(settings)
    migrate_legacy_layout(settings.legacy_models_root, settings.models_root)
    provision_hub_models(settings)

    with CivitaiClient(api_key=settings.civitai_api_key) as civitai:
        download_civitai_models(settings, civitai)
        if settings.build_model_docs:
            build_model_docs(settings, civitai)


def launch_services(settings: Settings):
    launcher.ensure_editor_config(
        settings.code_server_config, launcher.ServiceConfig.from_settings(settings)
    )
    logger.info(f"Starting code-server on port {settings.code_server_port}")
    launcher.start_background(launcher.code_server_command(settings), settings.code_server_log)

    launcher.link_workspace(settings.comfy_home, settings.models_root, settings.custom_nodes_dir)

    logger.info(f"Starting ComfyUI on port {settings.comfy_port}")
    launcher.start_foreground(launcher.comfyui_command(settings), settings.comfy_home)


def run(settings: Settings) -> None:
    """Prepare the workspace, then hand the process over to ComfyUI."""
    prepare_workspace(settings)
    if not settings.start_services:
        logger.info("START_SERVICES is off, workspace is ready")
        return
    launch_services(settings)
