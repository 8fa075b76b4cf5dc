"""
Hub artifacts provisioned on every run.

Filenames upstream are subject to change, so each artifact lists the
common names plus fallbacks, most preferred first.
"""

from typing import List

from .resolver import ArtifactSpec

UNET_FILES = (
    "flux1-dev.safetensors",
    "flux1-dev-fp8.safetensors",
    "flux1-dev-fp8_e4m3fn_scaled.safetensors",
)
VAE_FILES = ("ae.safetensors",)
CLIP_FILES = ("clip_l.safetensors",)
T5_FILES = (
    "t5xxl_fp16.safetensors",
    "t5xxl_fp8_e4m3fn_scaled.safetensors",
    "t5xxl_fp8_e4m3fn.safetensors",
)


def flux_artifacts(flux_repo: str, encoder_repo: str) -> List[ArtifactSpec]:
    """FLUX.1-dev weights, VAE and text encoders.

    The model weights and both text encoders are required; the VAE is not.
    """
    return [
        ArtifactSpec("FLUX UNET", flux_repo, UNET_FILES, "unet", critical=True),
        ArtifactSpec("FLUX VAE", flux_repo, VAE_FILES, "vae", critical=False),
        ArtifactSpec("CLIP-L text encoder", encoder_repo, CLIP_FILES, "clip", critical=True),
        ArtifactSpec("T5-XXL text encoder", encoder_repo, T5_FILES, "clip", critical=True),
    ]
