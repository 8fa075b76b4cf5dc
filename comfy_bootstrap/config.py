"""
comfy-bootstrap Configuration

Settings are read once at startup and passed to every component.
Nothing below the entry point reads the environment directly.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv  # type: ignore


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _port(value: Optional[str], default: int) -> int:
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass
class Settings:
    hf_token: str = ""
    civitai_api_key: str = ""
    comfy_port: int = 8188
    code_server_port: int = 13337
    code_server_password: str = ""
    code_server_config: Path = Path.home() / ".config" / "code-server" / "config.yaml"
    code_server_log: Path = Path("/var/log/code-server.log")
    code_server_bin: str = "code-server"
    comfy_home: Path = Path("/opt/ComfyUI")
    comfy_python: str = sys.executable
    workspace: Path = Path("/workspace")
    runtime_dir: Path = Path("/runtime")
    legacy_models_root: Optional[Path] = None
    flux_repo: str = "black-forest-labs/FLUX.1-dev"
    flux_encoder_repo: str = "comfyanonymous/flux_text_encoders"
    build_model_docs: bool = False
    model_docs_dir: Optional[Path] = None
    start_services: bool = True
    debug: bool = False

    def __post_init__(self):
        self.workspace = Path(self.workspace)
        self.comfy_home = Path(self.comfy_home)
        self.runtime_dir = Path(self.runtime_dir)
        if self.legacy_models_root is None:
            self.legacy_models_root = self.workspace / "ComfyUI" / "models"
        if self.model_docs_dir is None:
            self.model_docs_dir = self.workspace / "docs" / "loras"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the process environment (after loading .env)
        or from an explicit mapping."""
        if env is None:
            load_dotenv()
            env = os.environ

        workspace = Path(env.get("WORKSPACE") or "/workspace")
        legacy = env.get("LEGACY_MODELS_ROOT")
        docs_dir = env.get("MODEL_DOCS_DIR")
        config_path = env.get("CODE_SERVER_CONFIG")

        return cls(
            hf_token=env.get("HF_TOKEN") or env.get("HUGGING_FACE_API_KEY") or "",
            civitai_api_key=env.get("CIVITAI_API_KEY") or env.get("CIVITAI_API_TOKEN") or "",
            comfy_port=_port(env.get("COMFY_PORT"), 8188),
            code_server_port=_port(env.get("CODE_SERVER_PORT"), 13337),
            code_server_password=env.get("CODE_SERVER_PASSWORD", ""),
            code_server_config=(
                Path(config_path) if config_path
                else Path.home() / ".config" / "code-server" / "config.yaml"
            ),
            code_server_log=Path(env.get("CODE_SERVER_LOG") or "/var/log/code-server.log"),
            code_server_bin=env.get("CODE_SERVER_BIN") or "code-server",
            comfy_home=Path(env.get("COMFY_HOME") or "/opt/ComfyUI"),
            comfy_python=env.get("COMFY_PYTHON") or sys.executable,
            workspace=workspace,
            runtime_dir=Path(env.get("RUNTIME_DIR") or "/runtime"),
            legacy_models_root=Path(legacy) if legacy else None,
            flux_repo=env.get("FLUX_REPO") or "black-forest-labs/FLUX.1-dev",
            flux_encoder_repo=env.get("FLUX_ENCODER_REPO") or "comfyanonymous/flux_text_encoders",
            build_model_docs=_flag(env.get("BUILD_MODEL_DOCS")),
            model_docs_dir=Path(docs_dir) if docs_dir else None,
            start_services=_flag(env.get("START_SERVICES"), default=True),
            debug=_flag(env.get("DEBUG")),
        )

    def validate(self):
        for name in ("comfy_port", "code_server_port"):
            port = getattr(self, name)
            if not 0 < port < 65536:
                raise RuntimeError(f"{name.upper()} must be a TCP port, got {port}.")
        if self.comfy_port == self.code_server_port:
            raise RuntimeError("COMFY_PORT and CODE_SERVER_PORT must differ.")

    @property
    def models_root(self) -> Path:
        return self.workspace / "models"

    @property
    def custom_nodes_dir(self) -> Path:
        return self.workspace / "custom_nodes"

    @property
    def hf_cache_dir(self) -> Path:
        return self.workspace / "hf-cache"

    @property
    def plugin_list_file(self) -> Path:
        return self.runtime_dir / "custom_nodes.txt"

    @property
    def civitai_list_file(self) -> Path:
        return self.runtime_dir / "civitai_models.txt"
