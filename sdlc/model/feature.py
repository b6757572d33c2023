"""
Feature: the unit of work driven through the lifecycle.

Stored at .sdlc/features/<slug>/manifest.yaml with artifacts, tasks and
comments inline.

Usage:
    from sdlc.model.feature import Feature

    feature = Feature.create(root, "auth-login", "Login with email")
    feature.artifact(ArtifactType.SPEC).mark_draft()
    feature.save(root)
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path

from transitions import MachineError

from sdlc.lib import paths
from sdlc.lib.config import Config
from sdlc.lib.errors import (
    CommentNotFound, FeatureExists, FeatureNotFound, InvalidTransition,
)
from sdlc.lib.io import read_yaml, write_yaml
from sdlc.lib.timeutil import now_iso
from sdlc.lib.types import ArtifactStatus, ArtifactType, Phase
from sdlc.model.artifact import Artifact
from sdlc.model.comment import Comment, CommentFlag, CommentTarget
from sdlc.model.task import Task
from sdlc.workflow.fsm import PhaseFSM, TRIGGER_FOR, exit_blockers

logger = logging.getLogger(__name__)


@dataclass
class PhaseEntry:
    phase: Phase
    entered: str
    exited: str | None = None

    def to_dict(self) -> dict:
        return {"phase": self.phase.value, "entered": self.entered, "exited": self.exited}

    @classmethod
    def from_dict(cls, data: dict) -> "PhaseEntry":
        return cls(Phase(data["phase"]), data["entered"], data.get("exited"))


def _default_artifacts(slug: str) -> list[Artifact]:
    return [
        Artifact(artifact_type=t, path=paths.artifact_rel_path(slug, t.filename))
        for t in ArtifactType
    ]


@dataclass
class Feature:
    slug: str
    title: str
    description: str | None = None
    phase: Phase = Phase.DRAFT
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    artifacts: list[Artifact] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    next_comment_seq: int = 0
    blockers: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    phase_history: list[PhaseEntry] = field(default_factory=list)
    archived: bool = False

    def __post_init__(self):
        if not self.artifacts:
            self.artifacts = _default_artifacts(self.slug)
        if not self.phase_history:
            self.open_phase(self.phase, self.created_at)

    # --- persistence ---

    @classmethod
    def create(cls, root: Path, slug: str, title: str, description: str | None = None) -> "Feature":
        """Create and persist a new feature in draft.

        Raises:
            InvalidSlug: If slug is malformed
            FeatureExists: If the feature directory already exists
        """
        paths.validate_slug(slug)
        if paths.feature_dir(root, slug).exists():
            raise FeatureExists(slug)
        feature = cls(slug=slug, title=title, description=description)
        feature.save(root)
        logger.info(f"Created feature {slug}")
        return feature

    @classmethod
    def load(cls, root: Path, slug: str) -> "Feature":
        """Load a feature manifest.

        Raises:
            InvalidSlug: If slug is malformed
            FeatureNotFound: If the manifest doesn't exist
        """
        paths.validate_slug(slug)
        path = paths.feature_manifest(root, slug)
        if not path.exists():
            raise FeatureNotFound(slug)
        return cls.from_dict(read_yaml(path))

    @classmethod
    def list_all(cls, root: Path) -> list["Feature"]:
        """All features, oldest first."""
        features_dir = paths.features_dir(root)
        if not features_dir.exists():
            return []
        features = [
            cls.from_dict(read_yaml(d / "manifest.yaml"))
            for d in features_dir.iterdir()
            if d.is_dir() and (d / "manifest.yaml").exists()
        ]
        return sorted(features, key=lambda f: f.created_at)

    def save(self, root: Path) -> None:
        write_yaml(paths.feature_manifest(root, self.slug), self.to_dict())

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "phase": self.phase.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "archived": self.archived,
            "dependencies": list(self.dependencies),
            "blockers": list(self.blockers),
            "next_comment_seq": self.next_comment_seq,
            "artifacts": [a.to_dict() for a in self.artifacts],
            "tasks": [t.to_dict() for t in self.tasks],
            "comments": [c.to_dict() for c in self.comments],
            "phase_history": [e.to_dict() for e in self.phase_history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Feature":
        slug = data["slug"]
        artifacts = {a.artifact_type: a for a in _default_artifacts(slug)}
        for raw in data.get("artifacts") or []:
            artifact = Artifact.from_dict(raw)
            artifacts[artifact.artifact_type] = artifact
        return cls(
            slug=slug,
            title=data.get("title", slug),
            description=data.get("description"),
            phase=Phase(data.get("phase", "draft")),
            created_at=data.get("created_at") or now_iso(),
            updated_at=data.get("updated_at") or now_iso(),
            artifacts=[artifacts[t] for t in ArtifactType],
            tasks=[Task.from_dict(t) for t in data.get("tasks") or []],
            comments=[Comment.from_dict(c) for c in data.get("comments") or []],
            next_comment_seq=data.get("next_comment_seq", 0),
            blockers=list(data.get("blockers") or []),
            dependencies=list(data.get("dependencies") or []),
            phase_history=[PhaseEntry.from_dict(e) for e in data.get("phase_history") or []],
            archived=data.get("archived", False),
        )

    # --- phase ---

    def open_phase(self, phase: Phase, when: str) -> None:
        self.phase_history.append(PhaseEntry(phase=phase, entered=when))

    def transition(self, target: Phase, config: Config) -> None:
        """Move to target phase if the exit criteria are met.

        All-or-nothing: on failure nothing about the feature changes.

        Raises:
            InvalidTransition: If target is disabled, not forward, or
                exit requirements are unmet
        """
        current = self.phase
        if target == current:
            raise InvalidTransition(current, target, f"already in {current.value}")
        if not config.phases.is_enabled(target):
            raise InvalidTransition(current, target, f"phase '{target.value}' is not enabled")

        trigger = TRIGGER_FOR.get((current.value, target.value))
        if trigger is None:
            raise InvalidTransition(current, target, "phases only move forward")

        reasons = exit_blockers(self, config, target)
        if reasons:
            raise InvalidTransition(current, target, "; ".join(reasons))

        snapshot = copy.deepcopy(self.__dict__)
        fsm = PhaseFSM(self)
        try:
            getattr(fsm, trigger)()
        except MachineError as e:
            self.__dict__.update(snapshot)
            raise InvalidTransition(current, target, str(e)) from e

    # --- artifacts ---

    def artifact(self, artifact_type: ArtifactType) -> Artifact:
        for artifact in self.artifacts:
            if artifact.artifact_type == artifact_type:
                return artifact
        # from_dict fills every type, so this only happens for hand-built features
        artifact = Artifact(artifact_type, paths.artifact_rel_path(self.slug, artifact_type.filename))
        self.artifacts.append(artifact)
        return artifact

    def unapproved_artifacts(self) -> list[Artifact]:
        """Artifacts that exist but are not yet satisfied."""
        return [
            a for a in self.artifacts
            if a.status != ArtifactStatus.MISSING and not a.is_satisfied()
        ]

    # --- comments ---

    def add_comment(
        self,
        body: str,
        flag: CommentFlag | None = None,
        target: CommentTarget | None = None,
        author: str | None = None,
    ) -> str:
        self.next_comment_seq += 1
        comment_id = f"C{self.next_comment_seq}"
        self.comments.append(Comment(
            id=comment_id,
            body=body,
            flag=flag,
            target=target or CommentTarget.feature(),
            author=author,
        ))
        self.updated_at = now_iso()
        return comment_id

    def resolve_comment(self, comment_id: str) -> bool:
        """Remove a comment. Returns True if one was removed."""
        before = len(self.comments)
        self.comments = [c for c in self.comments if c.id != comment_id]
        removed = len(self.comments) != before
        if removed:
            self.updated_at = now_iso()
        return removed

    def get_comment(self, comment_id: str) -> Comment:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        raise CommentNotFound(comment_id)

    def blocking_comments(self) -> list[Comment]:
        return [c for c in self.comments if c.is_blocking()]

    # --- misc ---

    def is_blocked(self) -> bool:
        return bool(self.blockers)

    def add_blocker(self, reason: str) -> None:
        if reason not in self.blockers:
            self.blockers.append(reason)
            self.updated_at = now_iso()

    def remove_blocker(self, reason: str) -> bool:
        if reason not in self.blockers:
            return False
        self.blockers.remove(reason)
        self.updated_at = now_iso()
        return True

    def add_dependency(self, slug: str) -> None:
        paths.validate_slug(slug)
        if slug not in self.dependencies:
            self.dependencies.append(slug)
            self.updated_at = now_iso()

    def update_title(self, title: str) -> None:
        self.title = title
        self.updated_at = now_iso()

    def set_description(self, description: str | None) -> None:
        self.description = description
        self.updated_at = now_iso()

    def archive(self) -> None:
        self.archived = True
        self.updated_at = now_iso()

    def touch(self) -> None:
        self.updated_at = now_iso()
