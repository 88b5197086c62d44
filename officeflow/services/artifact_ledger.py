"""Artifact ledger - generated artifacts and their review status."""

from typing import Dict, List, Optional

from ..models.artifact import Artifact, ArtifactStatus
from ..utils.logger import get_app_logger
from .errors import ArtifactNotFoundError, ArtifactStateError


class ArtifactLedger:
    """In-memory store backing the review surface (store / fetch / approve / reject)."""

    def __init__(self):
        self.artifacts: Dict[str, Artifact] = {}
        self.logger = get_app_logger("artifacts")

    def store(self, artifact: Artifact) -> Artifact:
        """
        Store an artifact so it can be fetched by id.

        Only a draft may be replaced, and only by a draft or pending artifact
        of the same conversation. Anything already handed to review keeps its
        content and status.

        Raises:
            ArtifactStateError: If the id exists and may not be overwritten
        """
        existing = self.artifacts.get(artifact.id)
        if existing is not None:
            if existing.status != ArtifactStatus.DRAFT:
                raise ArtifactStateError(f"Artifact {artifact.id} is already {existing.status.value}")
            if existing.conversation_id != artifact.conversation_id:
                raise ArtifactStateError(
                    f"Artifact {artifact.id} belongs to conversation {existing.conversation_id}"
                )
            if artifact.status in (ArtifactStatus.APPROVED, ArtifactStatus.REJECTED):
                raise ArtifactStateError(f"Draft {artifact.id} cannot be stored as {artifact.status.value}")

        self.artifacts[artifact.id] = artifact
        self.logger.info(f"Artifact stored: {artifact.id} (conversation: {artifact.conversation_id})")
        return artifact

    def fetch(self, artifact_id: str) -> Artifact:
        artifact = self.artifacts.get(artifact_id)
        if artifact is None:
            raise ArtifactNotFoundError(f"Artifact not found: {artifact_id}")
        return artifact

    def list(self, conversation_id: Optional[str] = None) -> List[Artifact]:
        artifacts = [
            a for a in self.artifacts.values()
            if conversation_id is None or a.conversation_id == conversation_id
        ]
        artifacts.sort(key=lambda a: a.created_at, reverse=True)
        return artifacts

    def approve(self, artifact_id: str) -> bool:
        """
        Mark an artifact approved.

        Returns:
            True if the status changed, False if it was already approved

        Raises:
            ArtifactNotFoundError: Unknown id
            ArtifactStateError: Artifact was rejected
        """
        artifact = self.fetch(artifact_id)
        if artifact.status == ArtifactStatus.APPROVED:
            return False
        if artifact.status == ArtifactStatus.REJECTED:
            raise ArtifactStateError(f"Artifact {artifact_id} was rejected and cannot be approved")

        artifact.status = ArtifactStatus.APPROVED
        self.logger.info(f"Artifact approved: {artifact_id}")
        return True

    def reject(self, artifact_id: str, feedback: str) -> None:
        """
        Mark an artifact rejected, keeping the feedback permanently.

        Raises:
            ValueError: Empty feedback
            ArtifactNotFoundError: Unknown id
            ArtifactStateError: Artifact already reviewed
        """
        if not feedback or not feedback.strip():
            raise ValueError("Feedback must not be empty")

        artifact = self.fetch(artifact_id)
        if artifact.status in (ArtifactStatus.APPROVED, ArtifactStatus.REJECTED):
            raise ArtifactStateError(f"Artifact {artifact_id} is already {artifact.status.value}")

        artifact.status = ArtifactStatus.REJECTED
        artifact.feedback = feedback.strip()
        self.logger.info(f"Artifact rejected: {artifact_id}")
