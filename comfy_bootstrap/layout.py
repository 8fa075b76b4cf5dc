"""Workspace model layout: which folders exist and what legacy names map to."""

import logging
from pathlib import Path
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

# Folders ComfyUI reads from, all owned by the bootstrap
MODEL_SUBDIRS: Tuple[str, ...] = (
    "unet",
    "vae",
    "clip",
    "loras",
    "controlnet",
    "upscale_models",
)

# Older layouts used these names for the same content
LEGACY_SUBDIR_ALIASES: Dict[str, str] = {
    "diffusion_models": "unet",
    "text_encoders": "clip",
    "lora": "loras",
    "vaes": "vae",
    "upscalers": "upscale_models",
}


def normalize_model_folder(name: str) -> str:
    """Normalize folder aliases to the canonical layout names."""
    n = name.strip().lower()
    if n in MODEL_SUBDIRS:
        return n
    return LEGACY_SUBDIR_ALIASES.get(n, n)


def ensure_layout(models_root: Path, *extra_dirs: Path) -> None:
    """Create every model folder (and any extra directories) if missing."""
    for sub in MODEL_SUBDIRS:
        (models_root / sub).mkdir(parents=True, exist_ok=True)
    for extra in extra_dirs:
        Path(extra).mkdir(parents=True, exist_ok=True)
    logger.debug(f"Workspace layout ready under {models_root}")
