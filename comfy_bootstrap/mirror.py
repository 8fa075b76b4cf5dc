"""
Civitai metadata mirror.

Turns a list of Civitai model specs into local Markdown docs:

    <out>/INDEX.md                 one row per resolved version, input order
    <out>/readmes/<versionId>.md   one page per version
    <out>/images/<versionId>-N.jpg up to MAX_PREVIEWS previews per version

Re-running overwrites the same files; nothing accumulates.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from .civitai_client import CivitaiClient, ModelVersionMetadata
from .downloader import download_file, part_path
from .errors import ProvisionError
from .specs import extract_version_id

logger = logging.getLogger(__name__)

MAX_PREVIEWS = 2
INDEX_NAME = "INDEX.md"
READMES_DIR = "readmes"
IMAGES_DIR = "images"

INDEX_HEADER = """# FLUX LoRAs Index

| Preview | Name | Version | CivitAI | File | Trigger Words |
|---|---|---|---|---|---|
"""

README_TEMPLATE = """# {model_name} - {version_name}

**CivitAI Version:** {version_page}
**Model Page:** {model_page}

## Trigger / Trained Words
`{trained_words}`

## File
`{file_name}`
Download: `{download_url}`

## Example Images
{previews}

## Notes
- Base: FLUX LoRA
- Add best prompts, weights, sampler notes here.
"""


@dataclass
class IndexDocument:
    path: Path
    rows: List[ModelVersionMetadata] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    generated_at: Optional[datetime] = None


def _cell(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ").strip()


def preview_name(version_id: int, sequence: int) -> str:
    return f"{version_id}-{sequence}.jpg"


def download_previews(meta: ModelVersionMetadata, images_dir: Path) -> List[str]:
    """Fetch up to MAX_PREVIEWS images; returns the saved file names."""
    saved = []
    for sequence, url in enumerate(meta.image_urls[:MAX_PREVIEWS], start=1):
        target = images_dir / preview_name(meta.version_id, sequence)
        # Overwrite on re-run
        target.unlink(missing_ok=True)
        part_path(target).unlink(missing_ok=True)
        try:
            # Image hosts are third parties: never forward the API key
            download_file(url, target, timeout=60)
        except ProvisionError as e:
            logger.warning(f"Preview {sequence} for version {meta.version_id} failed: {e}")
            continue
        saved.append(target.name)
    return saved


def render_readme(meta: ModelVersionMetadata, previews: List[str]) -> str:
    if previews:
        embeds = "\n".join(
            f"![preview {i}](../{IMAGES_DIR}/{name})" for i, name in enumerate(previews, start=1)
        )
    else:
        embeds = "(no preview)"
    return README_TEMPLATE.format(
        model_name=meta.model_name,
        version_name=meta.version_name,
        version_page=meta.version_page,
        model_page=meta.model_page,
        trained_words=", ".join(meta.trained_words) or "none",
        file_name=meta.resolved_file_name,
        download_url=meta.download_url,
        previews=embeds,
    )


def render_row(meta: ModelVersionMetadata, previews: List[str]) -> str:
    preview = f"![]({IMAGES_DIR}/{previews[0]})" if previews else "-"
    words = _cell(", ".join(meta.trained_words)) or "-"
    return (
        f"| {preview} | {_cell(meta.model_name)} | {_cell(meta.version_name)} | "
        f"[version]({meta.version_page}) | `{_cell(meta.resolved_file_name)}` | {words} |"
    )


def build_index(model_specs: Iterable[str], output_dir: Path, client: CivitaiClient) -> IndexDocument:
    """
    Resolve each spec and write its README plus one INDEX.md row.

    Unrecognized specs and unresolvable versions are logged and skipped;
    they never stop the batch.
    """
    output_dir = Path(output_dir)
    readmes_dir = output_dir / READMES_DIR
    images_dir = output_dir / IMAGES_DIR
    readmes_dir.mkdir(parents=True, exist_ok=True)
    images_dir.mkdir(parents=True, exist_ok=True)

    index = IndexDocument(path=output_dir / INDEX_NAME)
    lines = [INDEX_HEADER]

    for spec in model_specs:
        version_id = extract_version_id(spec)
        if version_id is None:
            logger.warning(f"Skipping unrecognized line: {spec}")
            index.skipped.append(spec)
            continue

        try:
            meta = client.get_model_version(version_id)
        except ProvisionError as e:
            logger.warning(f"Could not fetch metadata for version {version_id} ({spec}): {e}")
            index.skipped.append(spec)
            continue

        file_name = client.probe_filename(meta.download_url, version_id=version_id)
        meta = dataclasses.replace(meta, resolved_file_name=file_name)

        previews = download_previews(meta, images_dir)

        readme = readmes_dir / f"{version_id}.md"
        readme.write_text(render_readme(meta, previews), encoding="utf-8")

        lines.append(render_row(meta, previews) + "\n")
        index.rows.append(meta)
        logger.info(f"Indexed {meta.model_name} - {meta.version_name} ({version_id})")

    index.generated_at = datetime.now(timezone.utc)
    lines.append(f"\n---\nGenerated on {index.generated_at.strftime('%Y-%m-%d %H:%M UTC')}.\n")
    index.path.write_text("".join(lines), encoding="utf-8")

    logger.info(
        f"Done. See {index.path} ({len(index.rows)} indexed, {len(index.skipped)} skipped)"
    )
    return index
