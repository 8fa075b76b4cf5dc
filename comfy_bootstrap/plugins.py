"""
Custom node (plugin) synchronization.

Declared plugin repositories are cloned when absent and fast-forwarded
when present. Local modifications that block a fast-forward are kept;
nothing here ever deletes or force-resets a plugin.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .errors import ConflictIgnored
from .specs import read_list_file

logger = logging.getLogger(__name__)

GIT_TIMEOUT = 600
PIP_TIMEOUT = 1800
MANIFEST_NAME = "requirements.txt"


@dataclass(frozen=True)
class PluginSpec:
    source_url: str

    @property
    def name(self) -> str:
        base = self.source_url.strip().rstrip("/").rsplit("/", 1)[-1]
        # scp-style git@host:repo.git
        base = base.rsplit(":", 1)[-1]
        if base.endswith(".git"):
            base = base[: -len(".git")]
        return base


@dataclass
class PluginState:
    name: str
    source_url: str
    local_path: Path
    present: bool
    has_dependency_manifest: bool = False
    # None when freshly cloned or missing; False when a fast-forward was refused
    updated: Optional[bool] = None


def read_plugin_list(path: Union[str, Path]) -> List[PluginSpec]:
    return [PluginSpec(url) for url in read_list_file(path)]


def _git_env() -> Dict[str, str]:
    env = dict(os.environ)
    # Private or mistyped repos must fail instead of waiting on a prompt
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def _run_git(args: Sequence[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
        timeout=GIT_TIMEOUT,
        env=_git_env(),
    )


def _clone(spec: PluginSpec, target: Path) -> bool:
    logger.info(f"Installing custom node: {spec.source_url}")
    try:
        result = _run_git(["clone", "--depth=1", spec.source_url, str(target)])
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Failed to clone {spec.source_url}: {e}")
        return False
    if result.returncode != 0:
        logger.warning(f"Failed to clone {spec.source_url}: {result.stderr.strip()}")
        return False
    return True


def _fast_forward(spec: PluginSpec, target: Path) -> None:
    """Raises ConflictIgnored when the checkout cannot be fast-forwarded."""
    logger.info(f"Updating custom node: {spec.name}")
    try:
        result = _run_git(["pull", "--ff-only"], cwd=target)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise ConflictIgnored(f"{spec.name}: git pull failed ({e})")
    if result.returncode != 0:
        raise ConflictIgnored(f"{spec.name}: {result.stderr.strip() or 'fast-forward refused'}")


def reconcile(plugin_specs: Sequence[PluginSpec], plugin_root: Path) -> List[PluginState]:
    """Bring every declared plugin onto disk and return its state."""
    plugin_root = Path(plugin_root)
    plugin_root.mkdir(parents=True, exist_ok=True)

    states = []
    seen: Dict[str, str] = {}
    for spec in plugin_specs:
        name = spec.name
        if not name:
            logger.warning(f"Skipping plugin with no usable name: {spec.source_url!r}")
            continue
        if name in seen:
            if seen[name] != spec.source_url:
                logger.warning(
                    f"Skipping {spec.source_url}: name '{name}' already used by {seen[name]}"
                )
            continue
        seen[name] = spec.source_url

        target = plugin_root / name
        updated = None
        if not (target / ".git").exists():
            present = _clone(spec, target)
        else:
            present = True
            try:
                _fast_forward(spec, target)
                updated = True
            except ConflictIgnored as e:
                logger.warning(f"Keeping local state of custom node: {e}")
                updated = False

        states.append(
            PluginState(
                name=name,
                source_url=spec.source_url,
                local_path=target,
                present=present,
                has_dependency_manifest=present and (target / MANIFEST_NAME).is_file(),
                updated=updated,
            )
        )
    return states


def find_dependency_manifests(plugin_root: Path) -> List[Path]:
    """requirements.txt files at most two levels below ``plugin_root``."""
    plugin_root = Path(plugin_root)
    if not plugin_root.is_dir():
        return []
    manifests = list(plugin_root.glob(MANIFEST_NAME)) + list(plugin_root.glob(f"*/{MANIFEST_NAME}"))
    return sorted(p for p in manifests if p.is_file())


def install_dependencies(plugin_root: Path, python: str) -> Dict[Path, bool]:
    """
    pip-install every plugin manifest found under ``plugin_root``.

    One broken plugin must not block the rest: failures are logged and
    reported in the returned mapping.
    """
    results = {}
    for manifest in find_dependency_manifests(plugin_root):
        logger.info(f"Installing node requirements: {manifest}")
        try:
            proc = subprocess.run(
                [python, "-m", "pip", "install", "-r", str(manifest)],
                capture_output=True,
                text=True,
                timeout=PIP_TIMEOUT,
            )
            ok = proc.returncode == 0
            if not ok:
                tail = (proc.stderr or proc.stdout)[-500:]
                logger.warning(f"Requirements install failed for {manifest}: {tail.strip()}")
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Requirements install failed for {manifest}: {e}")
            ok = False
        results[manifest] = ok
    return results
