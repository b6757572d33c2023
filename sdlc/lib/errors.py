"""
Error taxonomy for the sdlc engine.

All engine errors derive from SdlcError. I/O and YAML errors are not
wrapped: they propagate as OSError / yaml.YAMLError.
"""


class SdlcError(Exception):
    """Base class for engine errors."""
    status_code = 500


class NotInitialized(SdlcError):
    status_code = 400

    def __init__(self, root):
        self.root = root
        super().__init__(f"sdlc not initialized in {root} (run: sdlc init)")


class NotFound(SdlcError):
    """An entity does not exist."""
    status_code = 404
    kind = "entity"

    def __init__(self, ident: str):
        self.ident = ident
        super().__init__(f"{self.kind} '{ident}' not found")


class FeatureNotFound(NotFound):
    kind = "feature"


class MilestoneNotFound(NotFound):
    kind = "milestone"


class TaskNotFound(NotFound):
    kind = "task"


class ArtifactNotFound(NotFound):
    kind = "artifact"


class CommentNotFound(NotFound):
    kind = "comment"


class AlreadyExists(SdlcError):
    status_code = 409
    kind = "entity"

    def __init__(self, ident: str):
        self.ident = ident
        super().__init__(f"{self.kind} '{ident}' already exists")


class FeatureExists(AlreadyExists):
    kind = "feature"


class MilestoneExists(AlreadyExists):
    kind = "milestone"


class InvalidSlug(SdlcError):
    status_code = 400

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(
            f"invalid slug '{slug}': use 1-64 lowercase letters, digits or hyphens, "
            "not starting or ending with a hyphen"
        )


class InvalidPhase(SdlcError):
    status_code = 400

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"invalid phase '{value}'")


class InvalidTransition(SdlcError):
    """Phase exit criteria are not met."""
    status_code = 422

    def __init__(self, from_phase, to_phase, reason: str):
        self.from_phase = from_phase
        self.to_phase = to_phase
        self.reason = reason
        super().__init__(f"invalid transition {from_phase} -> {to_phase}: {reason}")


class InvalidFeatureOrder(SdlcError):
    status_code = 400

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"invalid feature order: {reason}")


class Blocked(SdlcError):
    status_code = 409

    def __init__(self, slug: str, reason: str):
        self.slug = slug
        self.reason = reason
        super().__init__(f"feature '{slug}' is blocked: {reason}")


class GateFailed(SdlcError):
    """An automated gate exhausted its retries."""

    def __init__(self, gate_name: str, attempts: int):
        self.gate_name = gate_name
        self.attempts = attempts
        super().__init__(f"gate '{gate_name}' failed after {attempts} attempt(s)")


class HumanGateRequired(SdlcError):
    """The pipeline is halted on a human or step-back gate."""

    def __init__(self, gate_name: str):
        self.gate_name = gate_name
        super().__init__(f"human gate '{gate_name}' requires approval")


class ConfigError(SdlcError):
    status_code = 400


def http_status(exc: Exception) -> int:
    """Map an exception to the HTTP status a web layer should answer with."""
    if isinstance(exc, SdlcError):
        return exc.status_code
    return 500
