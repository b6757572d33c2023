"""
Closed value types for the lifecycle engine.

Every enum value matches the string stored in YAML documents, so
`Phase("draft")` round-trips with the on-disk form.
"""

import logging
from enum import Enum

from sdlc.lib.errors import ArtifactNotFound, InvalidPhase

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Lifecycle phases, in pipeline order."""
    DRAFT = "draft"
    SPECIFIED = "specified"
    PLANNED = "planned"
    READY = "ready"
    IMPLEMENTATION = "implementation"
    REVIEW = "review"
    AUDIT = "audit"
    QA = "qa"
    MERGE = "merge"
    RELEASED = "released"

    @classmethod
    def all(cls) -> list["Phase"]:
        return list(cls)

    @property
    def index(self) -> int:
        return PHASE_ORDER.index(self)

    def next(self) -> "Phase | None":
        """Next phase in the pipeline, or None from released."""
        i = self.index
        if i + 1 < len(PHASE_ORDER):
            return PHASE_ORDER[i + 1]
        return None

    def __str__(self):
        return self.value


PHASE_ORDER = list(Phase)


class ArtifactType(Enum):
    SPEC = "spec"
    DESIGN = "design"
    TASKS = "tasks"
    QA_PLAN = "qa_plan"
    REVIEW = "review"
    AUDIT = "audit"
    QA_RESULTS = "qa_results"

    @property
    def filename(self) -> str:
        return ARTIFACT_FILENAMES[self]

    def __str__(self):
        return self.value


ARTIFACT_FILENAMES = {
    ArtifactType.SPEC: "spec.md",
    ArtifactType.DESIGN: "design.md",
    ArtifactType.TASKS: "tasks.md",
    ArtifactType.QA_PLAN: "qa-plan.md",
    ArtifactType.REVIEW: "review.md",
    ArtifactType.AUDIT: "audit.md",
    ArtifactType.QA_RESULTS: "qa-results.md",
}


class ArtifactStatus(Enum):
    MISSING = "missing"
    DRAFT = "draft"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_FIX = "needs_fix"
    PASSED = "passed"
    FAILED = "failed"
    WAIVED = "waived"

    def __str__(self):
        return self.value


class ActionType(Enum):
    CREATE_SPEC = "create_spec"
    APPROVE_SPEC = "approve_spec"
    CREATE_DESIGN = "create_design"
    APPROVE_DESIGN = "approve_design"
    CREATE_TASKS = "create_tasks"
    APPROVE_TASKS = "approve_tasks"
    CREATE_QA_PLAN = "create_qa_plan"
    APPROVE_QA_PLAN = "approve_qa_plan"
    IMPLEMENT_TASK = "implement_task"
    FIX_REVIEW_ISSUES = "fix_review_issues"
    CREATE_REVIEW = "create_review"
    APPROVE_REVIEW = "approve_review"
    CREATE_AUDIT = "create_audit"
    APPROVE_AUDIT = "approve_audit"
    RUN_QA = "run_qa"
    APPROVE_MERGE = "approve_merge"
    MERGE = "merge"
    ARCHIVE = "archive"
    UNBLOCK_DEPENDENCY = "unblock_dependency"
    WAIT_FOR_APPROVAL = "wait_for_approval"
    DONE = "done"

    @property
    def is_heavy(self) -> bool:
        """Agent-driven actions that usually take a long time."""
        return self in HEAVY_ACTIONS

    @property
    def timeout_minutes(self) -> int:
        return 45 if self.is_heavy else 10

    def __str__(self):
        return self.value


HEAVY_ACTIONS = frozenset({
    ActionType.IMPLEMENT_TASK,
    ActionType.FIX_REVIEW_ISSUES,
    ActionType.RUN_QA,
})


class TaskStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKED = "blocked"

    def __str__(self):
        return self.value


# Hand-edited manifests use these spellings
TASK_STATUS_SYNONYMS = {
    "done": TaskStatus.COMPLETED,
    "finished": TaskStatus.COMPLETED,
    "complete": TaskStatus.COMPLETED,
    "todo": TaskStatus.PENDING,
    "not_started": TaskStatus.PENDING,
    "active": TaskStatus.IN_PROGRESS,
    "started": TaskStatus.IN_PROGRESS,
    "wip": TaskStatus.IN_PROGRESS,
}


def parse_phase(value: str) -> Phase:
    """Parse a phase name.

    Raises:
        InvalidPhase: If the name is not a known phase.
    """
    try:
        return Phase(value.strip().lower())
    except ValueError:
        raise InvalidPhase(value) from None


def parse_artifact_type(value: str) -> ArtifactType:
    """Parse an artifact type, accepting the hyphenated filename forms."""
    normalized = value.strip().lower().replace("-", "_")
    try:
        return ArtifactType(normalized)
    except ValueError:
        raise ArtifactNotFound(value) from None


def parse_task_status(value: str) -> TaskStatus:
    """Parse a task status, mapping common synonyms with a warning.

    Unknown values raise ValueError.
    """
    normalized = value.strip().lower()
    try:
        return TaskStatus(normalized)
    except ValueError:
        pass
    if normalized in TASK_STATUS_SYNONYMS:
        mapped = TASK_STATUS_SYNONYMS[normalized]
        logger.warning(f"Task status '{value}' is not canonical, treating as '{mapped.value}'")
        return mapped
    raise ValueError(f"Unknown task status: {value}")
