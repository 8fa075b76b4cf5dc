"""Tests for legacy model layout migration."""

from comfy_bootstrap.layout import ensure_layout, normalize_model_folder
from comfy_bootstrap.migrate import migrate_legacy_layout


def _touch(path, content=b"x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


class TestMigrateLegacyLayout:
    """Test migrate_legacy_layout."""

    def test_missing_legacy_root_is_noop(self, tmp_path):
        assert migrate_legacy_layout(tmp_path / "absent", tmp_path / "models") == []
        assert not (tmp_path / "models").exists()

    def test_moves_exactly_what_is_present(self, tmp_path):
        old = tmp_path / "ComfyUI" / "models"
        new = tmp_path / "workspace" / "models"
        _touch(old / "unet" / "flux1-dev.safetensors", b"unet")
        _touch(old / "loras" / "detail.safetensors", b"lora")
        (old / "vae").mkdir(parents=True)

        moved = migrate_legacy_layout(old, new)

        assert sorted(moved) == sorted([
            new / "unet" / "flux1-dev.safetensors",
            new / "loras" / "detail.safetensors",
        ])
        assert (new / "unet" / "flux1-dev.safetensors").read_bytes() == b"unet"
        # Legacy folders stay, empty
        assert (old / "unet").is_dir()
        assert list((old / "unet").iterdir()) == []
        # Empty legacy folders do not create new ones
        assert not (new / "vae").exists()

    def test_aliases_map_to_current_names(self, tmp_path):
        old = tmp_path / "old"
        new = tmp_path / "new"
        _touch(old / "diffusion_models" / "a.safetensors")
        _touch(old / "text_encoders" / "t5.safetensors")
        _touch(old / "upscalers" / "4x.pth")

        migrate_legacy_layout(old, new)

        assert (new / "unet" / "a.safetensors").exists()
        assert (new / "clip" / "t5.safetensors").exists()
        assert (new / "upscale_models" / "4x.pth").exists()

    def test_every_alias_is_migrated(self, tmp_path):
        old = tmp_path / "old"
        new = tmp_path / "new"
        for alias in ("diffusion_models", "text_encoders", "lora", "vaes", "upscalers"):
            _touch(old / alias / f"{alias}.bin")

        moved = migrate_legacy_layout(old, new)

        assert sorted(str(p.relative_to(new)) for p in moved) == [
            "clip/text_encoders.bin",
            "loras/lora.bin",
            "unet/diffusion_models.bin",
            "upscale_models/upscalers.bin",
            "vae/vaes.bin",
        ]

    def test_existing_destination_is_not_overwritten(self, tmp_path, caplog):
        old = tmp_path / "old"
        new = tmp_path / "new"
        _touch(old / "vae" / "ae.safetensors", b"legacy")
        _touch(new / "vae" / "ae.safetensors", b"current")

        moved = migrate_legacy_layout(old, new)

        assert moved == []
        assert (new / "vae" / "ae.safetensors").read_bytes() == b"current"
        assert (old / "vae" / "ae.safetensors").read_bytes() == b"legacy"
        assert "Not migrating" in caplog.text

    def test_second_run_does_nothing(self, tmp_path):
        old = tmp_path / "old"
        new = tmp_path / "new"
        _touch(old / "clip" / "clip_l.safetensors")

        assert len(migrate_legacy_layout(old, new)) == 1
        assert migrate_legacy_layout(old, new) == []

    def test_same_root_is_noop(self, tmp_path):
        root = tmp_path / "models"
        _touch(root / "unet" / "a.safetensors")

        assert migrate_legacy_layout(root, root) == []
        assert (root / "unet" / "a.safetensors").exists()

    def test_symlinked_legacy_folder_is_skipped(self, tmp_path):
        old = tmp_path / "old"
        new = tmp_path / "new"
        _touch(new / "loras" / "x.safetensors")
        old.mkdir()
        (old / "loras").symlink_to(new / "loras", target_is_directory=True)

        assert migrate_legacy_layout(old, new) == []
        assert (new / "loras" / "x.safetensors").exists()


class TestLayout:
    def test_ensure_layout_creates_standard_folders(self, tmp_path):
        ensure_layout(tmp_path / "models", tmp_path / "custom_nodes")

        for sub in ("unet", "vae", "clip", "loras", "controlnet", "upscale_models"):
            assert (tmp_path / "models" / sub).is_dir()
        assert (tmp_path / "custom_nodes").is_dir()

    def test_normalize_model_folder(self):
        assert normalize_model_folder("diffusion_models") == "unet"
        assert normalize_model_folder("lora") == "loras"
        assert normalize_model_folder("vae") == "vae"
