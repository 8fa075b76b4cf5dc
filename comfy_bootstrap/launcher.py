"""
Service startup: code-server in the background, ComfyUI in the foreground.

ComfyUI replaces the bootstrap process (exec), so signals from the
container's init reach it directly.
"""

import json
import logging
import os
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import Settings
from .errors import ServiceLaunchError

logger = logging.getLogger(__name__)

EDITOR_CONFIG_KEYS = ("bind-addr", "auth", "password", "cert")


@dataclass
class ServiceConfig:
    bind_address: str = "0.0.0.0"
    port: int = 13337
    auth_mode: str = "password"
    password: Optional[str] = None
    cert_enabled: bool = False

    def __post_init__(self):
        # A password only means something with password auth
        if self.password:
            self.auth_mode = "password"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceConfig":
        return cls(
            port=settings.code_server_port,
            password=settings.code_server_password or None,
        )

    def entries(self) -> Dict[str, str]:
        return {
            "bind-addr": f"{self.bind_address}:{self.port}",
            "auth": self.auth_mode,
            # Double-quoted scalar so "#" and ": " survive the YAML parser
            "password": json.dumps(self.password or ""),
            "cert": "true" if self.cert_enabled else "false",
        }


def ensure_editor_config(config_path: Path, config: ServiceConfig) -> bool:
    """
    Create or patch the code-server config so each managed key appears once.

    Existing key lines are replaced in place, repeats are dropped and
    absent keys are appended. Nothing happens without a password.
    Returns True when the file was written.
    """
    if not config.password:
        logger.debug("No editor password set, leaving code-server config alone")
        return False

    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    wanted = config.entries()

    if config_path.exists():
        lines = config_path.read_text(encoding="utf-8").splitlines()
    else:
        lines = []

    patched: List[str] = []
    written = set()
    for line in lines:
        match = re.match(r"^([A-Za-z0-9_-]+)\s*:", line)
        key = match.group(1) if match else None
        if key in wanted:
            if key in written:
                continue
            patched.append(f"{key}: {wanted[key]}")
            written.add(key)
        else:
            patched.append(line)

    for key in EDITOR_CONFIG_KEYS:
        if key not in written:
            patched.append(f"{key}: {wanted[key]}")

    config_path.write_text("\n".join(patched) + "\n", encoding="utf-8")
    try:
        config_path.chmod(0o600)
    except OSError as e:
        logger.debug(f"Could not restrict permissions on {config_path}: {e}")
    logger.info(f"code-server config ready at {config_path}")
    return True


def code_server_command(settings: Settings) -> List[str]:
    return [
        settings.code_server_bin,
        "--bind-addr",
        f"0.0.0.0:{settings.code_server_port}",
        str(settings.workspace),
    ]


def comfyui_command(settings: Settings) -> List[str]:
    return [
        settings.comfy_python,
        "main.py",
        "--listen",
        "0.0.0.0",
        "--port",
        str(settings.comfy_port),
    ]


def _ensure_symlink(source: Path, destination: Path) -> bool:
    """Ensure destination is a symlink pointing to the source."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    if destination.is_symlink():
        if os.path.realpath(destination) == os.path.realpath(source):
            logger.debug(f"Symlink already correct: {destination} -> {source}")
            return True
        destination.unlink()
        logger.debug(f"Removed stale symlink: {destination}")
    elif destination.exists():
        logger.warning(
            f"{destination} exists and is not a symlink, leaving it in place "
            f"(ComfyUI will not see {source})"
        )
        return False

    destination.symlink_to(source, target_is_directory=True)
    logger.info(f"Linked {destination} -> {source}")
    return True


def link_workspace(comfy_home: Path, models_root: Path, custom_nodes_dir: Path) -> Dict[str, bool]:
    """Point ComfyUI's models and custom_nodes folders at the workspace."""
    comfy_home = Path(comfy_home)
    results = {}
    for name, source in (("models", Path(models_root)), ("custom_nodes", Path(custom_nodes_dir))):
        try:
            results[name] = _ensure_symlink(source, comfy_home / name)
        except OSError as e:
            logger.warning(f"Failed to link {comfy_home / name} -> {source}: {e}")
            results[name] = False
    return results


def start_background(command: Sequence[str], log_path: Path, cwd: Optional[Path] = None) -> Optional[subprocess.Popen]:
    """
    Launch ``command`` detached with output appended to ``log_path``.

    Returns None if it could not be started; callers carry on regardless.
    """
    log_path = Path(log_path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "ab") as log:
            proc = subprocess.Popen(
                list(command),
                cwd=str(cwd) if cwd else None,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
                start_new_session=True,
            )
    except OSError as e:
        logger.error(f"Failed to start {command[0]}: {e}")
        return None
    logger.info(f"Started {command[0]} (pid {proc.pid}), logging to {log_path}")
    return proc


def start_foreground(command: Sequence[str], cwd: Path):
    """
    Replace the current process with ``command``. Does not return.

    Raises ServiceLaunchError when ``cwd`` or the executable is unusable.
    """
    logger.info(f"Starting {' '.join(command)} in {cwd}")
    for handler in logging.getLogger().handlers:
        handler.flush()
    try:
        os.chdir(cwd)
        os.execvp(command[0], list(command))
    except OSError as e:
        raise ServiceLaunchError(command[0], e)
