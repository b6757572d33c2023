"""
Project-wide state document (.sdlc/state.yaml).

Tracks active features, in-flight work, a capped action history,
blocked features and the ordered milestone list.
"""

from dataclasses import dataclass, field
from pathlib import Path

from sdlc.lib import paths
from sdlc.lib.constants import HISTORY_LIMIT
from sdlc.lib.errors import NotInitialized
from sdlc.lib.io import read_yaml, write_yaml
from sdlc.lib.timeutil import now_iso

STATE_VERSION = 1


@dataclass
class ActiveWork:
    feature: str
    action: str
    started_at: str
    timeout_minutes: int


@dataclass
class HistoryEntry:
    feature: str
    action: str
    phase: str
    timestamp: str
    outcome: str


@dataclass
class BlockedFeature:
    feature: str
    reason: str
    since: str


@dataclass
class State:
    project: str
    version: int = STATE_VERSION
    active_features: list[str] = field(default_factory=list)
    active_work: list[ActiveWork] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    blocked: list[BlockedFeature] = field(default_factory=list)
    milestones: list[str] = field(default_factory=list)
    last_updated: str = field(default_factory=now_iso)

    @classmethod
    def load(cls, root: Path) -> "State":
        path = paths.state_path(root)
        if not path.exists():
            raise NotInitialized(root)
        return cls.from_dict(read_yaml(path))

    def save(self, root: Path) -> None:
        self.last_updated = now_iso()
        self.history = self.history[-HISTORY_LIMIT:]
        write_yaml(paths.state_path(root), self.to_dict())

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "project": self.project,
            "active_features": list(self.active_features),
            "active_work": [vars(w).copy() for w in self.active_work],
            "history": [vars(h).copy() for h in self.history[-HISTORY_LIMIT:]],
            "blocked": [vars(b).copy() for b in self.blocked],
            "milestones": list(self.milestones),
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "State":
        return cls(
            project=data.get("project", ""),
            version=data.get("version", STATE_VERSION),
            active_features=list(data.get("active_features") or []),
            active_work=[ActiveWork(**w) for w in data.get("active_work") or []],
            history=[HistoryEntry(**h) for h in data.get("history") or []],
            blocked=[BlockedFeature(**b) for b in data.get("blocked") or []],
            milestones=list(data.get("milestones") or []),
            last_updated=data.get("last_updated") or now_iso(),
        )

    def add_active_feature(self, slug: str) -> None:
        if slug not in self.active_features:
            self.active_features.append(slug)

    def remove_active_feature(self, slug: str) -> None:
        if slug in self.active_features:
            self.active_features.remove(slug)

    def record_action(self, feature: str, action: str, phase: str, outcome: str) -> None:
        self.history.append(HistoryEntry(feature, action, phase, now_iso(), outcome))
        if len(self.history) > HISTORY_LIMIT:
            self.history = self.history[-HISTORY_LIMIT:]

    def start_work(self, feature: str, action: str, timeout_minutes: int) -> None:
        """Record in-flight work, replacing any existing record for the feature."""
        self.active_work = [w for w in self.active_work if w.feature != feature]
        self.active_work.append(ActiveWork(feature, action, now_iso(), timeout_minutes))

    def finish_work(self, feature: str) -> None:
        self.active_work = [w for w in self.active_work if w.feature != feature]

    def set_blocked(self, feature: str, reason: str) -> None:
        self.unblock(feature)
        self.blocked.append(BlockedFeature(feature, reason, now_iso()))

    def unblock(self, feature: str) -> bool:
        before = len(self.blocked)
        self.blocked = [b for b in self.blocked if b.feature != feature]
        return len(self.blocked) != before

    def blocked_reason(self, feature: str) -> str | None:
        for entry in self.blocked:
            if entry.feature == feature:
                return entry.reason
        return None

    def add_milestone(self, slug: str) -> None:
        if slug not in self.milestones:
            self.milestones.append(slug)
