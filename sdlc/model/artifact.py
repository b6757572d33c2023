"""
Artifacts: the deliverables (spec, design, ...) that gate phase exit.

Mutation methods never fail; every status is representable.
"""

from dataclasses import dataclass

from sdlc.lib.timeutil import now_iso
from sdlc.lib.types import ArtifactStatus, ArtifactType


@dataclass
class Artifact:
    artifact_type: ArtifactType
    path: str
    status: ArtifactStatus = ArtifactStatus.MISSING
    created_at: str | None = None
    approved_at: str | None = None
    approved_by: str | None = None
    rejected_at: str | None = None
    rejection_reason: str | None = None
    waived_at: str | None = None
    waive_reason: str | None = None

    def _clear_approval(self):
        self.approved_at = None
        self.approved_by = None

    def _clear_rejection(self):
        self.rejected_at = None
        self.rejection_reason = None

    def _clear_waiver(self):
        self.waived_at = None
        self.waive_reason = None

    def mark_draft(self):
        self.status = ArtifactStatus.DRAFT
        self.created_at = now_iso()
        self._clear_waiver()

    def approve(self, by: str | None = None):
        self.status = ArtifactStatus.APPROVED
        self.approved_at = now_iso()
        self.approved_by = by
        self._clear_rejection()
        self._clear_waiver()

    def reject(self, reason: str | None = None):
        self.status = ArtifactStatus.REJECTED
        self.rejected_at = now_iso()
        self.rejection_reason = reason
        self._clear_approval()
        self._clear_waiver()

    def mark_needs_fix(self):
        self.status = ArtifactStatus.NEEDS_FIX
        self._clear_approval()
        self._clear_waiver()

    def mark_passed(self):
        self.status = ArtifactStatus.PASSED
        self._clear_rejection()
        self._clear_waiver()

    def mark_failed(self):
        self.status = ArtifactStatus.FAILED
        self._clear_approval()
        self._clear_waiver()

    def waive(self, reason: str | None = None):
        self.status = ArtifactStatus.WAIVED
        self.waived_at = now_iso()
        self.waive_reason = reason
        self._clear_approval()
        self._clear_rejection()

    def is_approved(self) -> bool:
        return self.status in (ArtifactStatus.APPROVED, ArtifactStatus.PASSED)

    def is_satisfied(self) -> bool:
        """Approved, passed, or explicitly waived."""
        return self.is_approved() or self.status == ArtifactStatus.WAIVED

    def to_dict(self) -> dict:
        return {
            "artifact_type": self.artifact_type.value,
            "status": self.status.value,
            "path": self.path,
            "created_at": self.created_at,
            "approved_at": self.approved_at,
            "approved_by": self.approved_by,
            "rejected_at": self.rejected_at,
            "rejection_reason": self.rejection_reason,
            "waived_at": self.waived_at,
            "waive_reason": self.waive_reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Artifact":
        return cls(
            artifact_type=ArtifactType(data["artifact_type"]),
            path=data.get("path", ""),
            status=ArtifactStatus(data.get("status", "missing")),
            created_at=data.get("created_at"),
            approved_at=data.get("approved_at"),
            approved_by=data.get("approved_by"),
            rejected_at=data.get("rejected_at"),
            rejection_reason=data.get("rejection_reason"),
            waived_at=data.get("waived_at"),
            waive_reason=data.get("waive_reason"),
        )
