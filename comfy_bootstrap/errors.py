"""Error taxonomy shared by the registry clients, the resolver and the mirror."""

from typing import List, Sequence, Tuple


class ProvisionError(Exception):
    """Base class for every recoverable provisioning failure."""


class NotFound(ProvisionError):
    """The remote artifact does not exist under the requested name."""


class AuthRequired(ProvisionError):
    """A credential is needed but is missing or was rejected."""


class TransportError(ProvisionError):
    """Network or local IO failure while talking to a registry."""


class ParseError(ProvisionError):
    """Malformed registry response or unrecognized spec line."""


class ConflictIgnored(ProvisionError):
    """Local plugin changes prevented a fast-forward update."""


class CandidatesExhausted(ProvisionError):
    """No candidate of an artifact could be resolved."""

    def __init__(self, artifact: str, attempts: Sequence[Tuple[str, ProvisionError]]):
        self.artifact = artifact
        self.attempts: List[Tuple[str, ProvisionError]] = list(attempts)
        tried = ", ".join(f"{name} ({type(err).__name__}: {err})" for name, err in self.attempts)
        super().__init__(f"No candidate resolved for {artifact}. Tried: {tried or 'nothing'}")


class ServiceLaunchError(Exception):
    """Fatal: the foreground service could not be started."""

    def __init__(self, command: str, cause: OSError):
        self.command = command
        self.cause = cause
        super().__init__(f"Could not start {command}: {cause}")


class MissingCriticalArtifact(Exception):
    """Fatal: a mission-critical artifact is unavailable, the run must abort."""

    def __init__(self, artifact: str, cause: CandidatesExhausted):
        self.artifact = artifact
        self.cause = cause
        super().__init__(str(cause))
