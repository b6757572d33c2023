"""
Feature comments.

Ids come from the feature's own next_comment_seq counter, which is
bumped before the id is formatted, so removed comments never cause
id reuse.
"""

from dataclasses import dataclass, field
from enum import Enum

from sdlc.lib.timeutil import now_iso
from sdlc.lib.types import ArtifactType, parse_artifact_type


class CommentFlag(Enum):
    BLOCKER = "blocker"
    QUESTION = "question"
    DECISION = "decision"
    FYI = "fyi"


# Flags that halt progress until the comment is resolved
BLOCKING_FLAGS = frozenset({CommentFlag.BLOCKER, CommentFlag.QUESTION})


@dataclass(frozen=True)
class CommentTarget:
    """What a comment is about: the feature, one task, or one artifact."""
    kind: str = "feature"  # feature, task, artifact
    task_id: str | None = None
    artifact_type: ArtifactType | None = None

    @classmethod
    def feature(cls) -> "CommentTarget":
        return cls()

    @classmethod
    def task(cls, task_id: str) -> "CommentTarget":
        return cls(kind="task", task_id=task_id)

    @classmethod
    def artifact(cls, artifact_type: ArtifactType) -> "CommentTarget":
        return cls(kind="artifact", artifact_type=artifact_type)

    @classmethod
    def parse(cls, value: str) -> "CommentTarget":
        """Parse 'feature', 'task:T2' or 'artifact:spec'."""
        kind, _, ident = value.partition(":")
        if kind == "feature" and not ident:
            return cls.feature()
        if kind == "task" and ident:
            return cls.task(ident)
        if kind == "artifact" and ident:
            return cls.artifact(parse_artifact_type(ident))
        raise ValueError(f"Invalid comment target: {value}")

    def __str__(self):
        if self.kind == "task":
            return f"task:{self.task_id}"
        if self.kind == "artifact":
            return f"artifact:{self.artifact_type.value}"
        return "feature"

    def to_dict(self) -> dict:
        if self.kind == "task":
            return {"kind": "task", "task_id": self.task_id}
        if self.kind == "artifact":
            return {"kind": "artifact", "artifact_type": self.artifact_type.value}
        return {"kind": "feature"}

    @classmethod
    def from_dict(cls, data: dict | None) -> "CommentTarget":
        if not data or data.get("kind", "feature") == "feature":
            return cls.feature()
        if data["kind"] == "task":
            return cls.task(data["task_id"])
        return cls.artifact(ArtifactType(data["artifact_type"]))


@dataclass
class Comment:
    id: str
    body: str
    flag: CommentFlag | None = None
    target: CommentTarget = field(default_factory=CommentTarget)
    author: str | None = None
    created_at: str = field(default_factory=now_iso)

    def is_blocking(self) -> bool:
        return self.flag in BLOCKING_FLAGS

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "body": self.body,
            "flag": self.flag.value if self.flag else None,
            "target": self.target.to_dict(),
            "author": self.author,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Comment":
        flag = data.get("flag")
        return cls(
            id=data["id"],
            body=data.get("body", ""),
            flag=CommentFlag(flag) if flag else None,
            target=CommentTarget.from_dict(data.get("target")),
            author=data.get("author"),
            created_at=data.get("created_at") or now_iso(),
        )
