"""Orchestration error taxonomy."""


class OrchestrationError(Exception):
    """Base class for orchestration errors."""


class ConversationNotFoundError(OrchestrationError):
    """No conversation with the given id."""


class ArtifactNotFoundError(OrchestrationError):
    """No artifact with the given id."""


class WorkerNotFoundError(OrchestrationError):
    """No worker with the given id."""


class InvalidTransitionError(OrchestrationError):
    """Phase edge not allowed by the conversation state machine."""


class ArtifactStateError(OrchestrationError):
    """Review action not allowed in the artifact's current status."""


class AssignmentConflictError(OrchestrationError):
    """Worker already busy, or conversation already bound to another worker."""


class CapabilityError(OrchestrationError):
    """Capability call failed or returned malformed output."""
