__version__ = "0.1.0"

from .config import Settings
from .civitai_client import CivitaiClient, ModelVersionMetadata
from .hub_client import HubClient
from .resolver import ArtifactSpec, ResolvedArtifact, provision_artifacts, resolve_first
from .plugins import PluginSpec, PluginState, reconcile
from .mirror import IndexDocument, build_index
from .migrate import migrate_legacy_layout
from .launcher import ServiceConfig, ensure_editor_config
from .orchestrator import run

__all__ = [
    "Settings",
    "CivitaiClient",
    "ModelVersionMetadata",
    "HubClient",
    "ArtifactSpec",
    "ResolvedArtifact",
    "provision_artifacts",
    "resolve_first",
    "PluginSpec",
    "PluginState",
    "reconcile",
    "IndexDocument",
    "build_index",
    "migrate_legacy_layout",
    "ServiceConfig",
    "ensure_editor_config",
    "run",
]
