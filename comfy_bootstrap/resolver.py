"""
Candidate resolution for hub artifacts.

Each logical artifact lists acceptable filenames in order of
preference. The first one that resolves wins; later candidates are
never contacted.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple

from .errors import CandidatesExhausted, MissingCriticalArtifact, ProvisionError

logger = logging.getLogger(__name__)


class ArtifactFetcher(Protocol):
    def fetch(self, repo_id: str, filename: str, local_dir: Optional[Path] = None) -> Path:
        ...


@dataclass(frozen=True)
class ArtifactSpec:
    name: str
    repo_id: str
    candidates: Tuple[str, ...]
    subdir: str
    critical: bool = False

    def __post_init__(self):
        if not self.candidates:
            raise ValueError(f"Artifact {self.name} needs at least one candidate filename")
        object.__setattr__(self, "candidates", tuple(self.candidates))


@dataclass(frozen=True)
class ResolvedArtifact:
    spec: ArtifactSpec
    chosen_name: str
    local_path: Path


def resolve_first(client: ArtifactFetcher, spec: ArtifactSpec, models_root: Path) -> ResolvedArtifact:
    """
    Resolve ``spec`` to the first candidate that exists.

    A candidate already present in the destination counts as resolved.
    Raises CandidatesExhausted when nothing resolves.
    """
    destination_dir = Path(models_root) / spec.subdir
    attempts: List[Tuple[str, ProvisionError]] = []

    for candidate in spec.candidates:
        target = destination_dir / Path(candidate).name
        if target.is_file():
            logger.info(f"[SKIP] {spec.name}: {target.name} already in {destination_dir}")
            return ResolvedArtifact(spec, candidate, target)

        try:
            fetched = client.fetch(spec.repo_id, candidate)
        except ProvisionError as e:
            logger.info(f"{spec.name}: candidate {candidate} unavailable ({type(e).__name__}: {e})")
            attempts.append((candidate, e))
            continue

        destination_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(fetched, target)
        logger.info(f"[OK] {spec.name}: {candidate} -> {destination_dir}")
        return ResolvedArtifact(spec, candidate, target)

    raise CandidatesExhausted(spec.name, attempts)


def provision_artifacts(
    client: ArtifactFetcher, artifact_specs: Sequence[ArtifactSpec], models_root: Path
) -> List[ResolvedArtifact]:
    """
    Resolve every artifact, applying each spec's own severity.

    Critical artifacts that cannot be resolved raise MissingCriticalArtifact;
    optional ones are logged and skipped.
    """
    resolved = []
    for spec in artifact_specs:
        logger.info(f"Downloading {spec.name} from {spec.repo_id}...")
        try:
            resolved.append(resolve_first(client, spec, models_root))
        except CandidatesExhausted as e:
            if spec.critical:
                logger.error(f"Could not fetch any known file for {spec.name}: {e}")
                raise MissingCriticalArtifact(spec.name, e)
            logger.warning(f"Optional artifact {spec.name} unavailable, continuing: {e}")
    return resolved
