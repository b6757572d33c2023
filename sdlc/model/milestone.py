"""
Milestones: ordered groups of features released together.

Stored at .sdlc/milestones/<slug>/manifest.yaml.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from sdlc.lib import paths
from sdlc.lib.errors import InvalidFeatureOrder, MilestoneExists, MilestoneNotFound
from sdlc.lib.io import read_yaml, write_yaml
from sdlc.lib.timeutil import now_iso

logger = logging.getLogger(__name__)


class MilestoneStatus(Enum):
    ACTIVE = "active"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


@dataclass
class Milestone:
    slug: str
    title: str
    description: str | None = None
    vision: str | None = None
    features: list[str] = field(default_factory=list)
    status: MilestoneStatus = MilestoneStatus.ACTIVE
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    completed_at: str | None = None
    cancelled_at: str | None = None

    @classmethod
    def create(cls, root: Path, slug: str, title: str, description: str | None = None) -> "Milestone":
        paths.validate_slug(slug)
        if paths.milestone_dir(root, slug).exists():
            raise MilestoneExists(slug)
        milestone = cls(slug=slug, title=title, description=description)
        milestone.save(root)
        logger.info(f"Created milestone {slug}")
        return milestone

    @classmethod
    def load(cls, root: Path, slug: str) -> "Milestone":
        paths.validate_slug(slug)
        path = paths.milestone_manifest(root, slug)
        if not path.exists():
            raise MilestoneNotFound(slug)
        return cls.from_dict(read_yaml(path))

    @classmethod
    def list_all(cls, root: Path) -> list["Milestone"]:
        milestones_dir = paths.milestones_dir(root)
        if not milestones_dir.exists():
            return []
        milestones = [
            cls.from_dict(read_yaml(d / "manifest.yaml"))
            for d in milestones_dir.iterdir()
            if d.is_dir() and (d / "manifest.yaml").exists()
        ]
        return sorted(milestones, key=lambda m: m.created_at)

    def save(self, root: Path) -> None:
        write_yaml(paths.milestone_manifest(root, self.slug), self.to_dict())

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "vision": self.vision,
            "status": self.status.value,
            "features": list(self.features),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "completed_at": self.completed_at,
            "cancelled_at": self.cancelled_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Milestone":
        return cls(
            slug=data["slug"],
            title=data.get("title", data["slug"]),
            description=data.get("description"),
            vision=data.get("vision"),
            features=list(data.get("features") or []),
            status=MilestoneStatus(data.get("status", "active")),
            created_at=data.get("created_at") or now_iso(),
            updated_at=data.get("updated_at") or now_iso(),
            completed_at=data.get("completed_at"),
            cancelled_at=data.get("cancelled_at"),
        )

    def is_active(self) -> bool:
        return self.status == MilestoneStatus.ACTIVE

    def add_feature(self, slug: str) -> bool:
        """Append a feature. Returns False if it was already a member."""
        if slug in self.features:
            return False
        self.features.append(slug)
        self.updated_at = now_iso()
        return True

    def add_feature_at(self, slug: str, position: int) -> bool:
        """Insert a feature at a 0-based position (clamped to the list end)."""
        if slug in self.features:
            return False
        self.features.insert(min(position, len(self.features)), slug)
        self.updated_at = now_iso()
        return True

    def remove_feature(self, slug: str) -> bool:
        if slug not in self.features:
            return False
        self.features.remove(slug)
        self.updated_at = now_iso()
        return True

    def reorder_features(self, order: list[str]) -> None:
        """Replace the feature order. order must be a permutation of the members.

        Raises:
            InvalidFeatureOrder: On duplicates, missing members or unknown slugs
        """
        if len(set(order)) != len(order):
            raise InvalidFeatureOrder("duplicate slugs")
        current = set(self.features)
        missing = [s for s in self.features if s not in order]
        if missing:
            raise InvalidFeatureOrder(f"missing features: {', '.join(missing)}")
        unknown = [s for s in order if s not in current]
        if unknown:
            raise InvalidFeatureOrder(f"unknown features: {', '.join(unknown)}")
        self.features = list(order)
        self.updated_at = now_iso()

    def move_feature(self, slug: str, position: int) -> None:
        if slug not in self.features:
            raise InvalidFeatureOrder(f"unknown features: {slug}")
        self.features.remove(slug)
        self.features.insert(min(position, len(self.features)), slug)
        self.updated_at = now_iso()

    def complete(self) -> None:
        self.status = MilestoneStatus.COMPLETE
        self.completed_at = now_iso()
        self.updated_at = self.completed_at

    def cancel(self) -> None:
        self.status = MilestoneStatus.CANCELLED
        self.cancelled_at = now_iso()
        self.updated_at = self.cancelled_at
