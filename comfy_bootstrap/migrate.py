"""Move models out of the legacy in-app layout into the workspace layout."""

import logging
import shutil
from pathlib import Path
from typing import List

from .layout import LEGACY_SUBDIR_ALIASES, MODEL_SUBDIRS, normalize_model_folder

logger = logging.getLogger(__name__)


def migrate_legacy_layout(old_root: Path, new_root: Path) -> List[Path]:
    """
    Move every model file found under ``old_root`` into ``new_root``.

    Safe on every run: a missing or empty legacy tree does nothing.
    Legacy folders are emptied but never removed, and an entry whose name
    already exists at the destination stays where it is.
    Returns the destination paths that were moved.
    """
    old_root = Path(old_root)
    new_root = Path(new_root)

    if not old_root.is_dir():
        logger.debug(f"No legacy model directory at {old_root}")
        return []
    if old_root.resolve() == new_root.resolve():
        logger.debug(f"Legacy and current model roots are the same ({old_root}), nothing to migrate")
        return []

    moved = []
    folder_map = {
        name: normalize_model_folder(name)
        for name in MODEL_SUBDIRS + tuple(LEGACY_SUBDIR_ALIASES)
    }

    for legacy_name, current_name in folder_map.items():
        source_dir = old_root / legacy_name
        if not source_dir.is_dir() or source_dir.is_symlink():
            continue
        entries = sorted(source_dir.iterdir())
        if not entries:
            continue

        target_dir = new_root / current_name
        target_dir.mkdir(parents=True, exist_ok=True)
        for entry in entries:
            destination = target_dir / entry.name
            if destination.exists() or destination.is_symlink():
                logger.warning(
                    f"[WARN] Not migrating {entry}: {destination} already exists"
                )
                continue
            shutil.move(str(entry), str(destination))
            moved.append(destination)
            logger.info(f"[FIX] Moved legacy model {legacy_name}/{entry.name} -> {current_name}/")

    if moved:
        logger.info(f"Migrated {len(moved)} legacy model file(s) from {old_root} to {new_root}")
    return moved
