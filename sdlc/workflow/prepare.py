"""Milestone wave planner.

Surveys a milestone, classifies every member feature, reports gaps and
partitions the ready features into waves: a feature lands in the
earliest wave W such that each of its dependencies is released (wave 0)
or placed in a wave before W.

Read-only apart from write_wave_plan(). Feature manifests are loaded one
at a time with no snapshot guarantee, so a plan is advisory.

Usage:
    from sdlc.workflow.prepare import prepare, write_wave_plan

    result = prepare(root, "v1")
    if result.waves:
        write_wave_plan(root, result)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from sdlc.lib import paths
from sdlc.lib.config import Config, load_config
from sdlc.lib.errors import FeatureNotFound, MilestoneNotFound
from sdlc.lib.io import write_yaml
from sdlc.lib.timeutil import now_iso
from sdlc.lib.types import ActionType, ArtifactStatus, Phase
from sdlc.model.feature import Feature
from sdlc.model.milestone import Milestone
from sdlc.model.state import State
from sdlc.workflow.classifier import classify

logger = logging.getLogger(__name__)


class ProjectPhaseKind(Enum):
    IDLE = "idle"
    PONDERING = "pondering"
    PLANNING = "planning"
    EXECUTING = "executing"
    VERIFYING = "verifying"


@dataclass
class ProjectPhase:
    kind: ProjectPhaseKind
    milestone: str | None = None

    def __str__(self):
        if self.milestone:
            return f"{self.kind.value} ({self.milestone})"
        return self.kind.value


class GapSeverity(Enum):
    BLOCKER = "blocker"
    WARNING = "warning"
    INFO = "info"


SEVERITY_ORDER = {GapSeverity.BLOCKER: 0, GapSeverity.WARNING: 1, GapSeverity.INFO: 2}


@dataclass
class Gap:
    feature: str
    severity: GapSeverity
    message: str


@dataclass
class WaveItem:
    slug: str
    title: str
    phase: Phase
    action: ActionType
    needs_worktree: bool = False
    blocked_by: list[str] = field(default_factory=list)


@dataclass
class Wave:
    number: int
    label: str
    items: list[WaveItem]

    @property
    def needs_worktrees(self) -> bool:
        return any(item.needs_worktree for item in self.items)


@dataclass
class BlockedItem:
    slug: str
    title: str
    reason: str


@dataclass
class MilestoneProgress:
    total: int = 0
    released: int = 0
    in_progress: int = 0
    blocked: int = 0
    pending: int = 0


@dataclass
class PrepareResult:
    project_phase: ProjectPhase
    milestone: str | None = None
    milestone_title: str | None = None
    progress: MilestoneProgress | None = None
    gaps: list[Gap] = field(default_factory=list)
    waves: list[Wave] = field(default_factory=list)
    blocked: list[BlockedItem] = field(default_factory=list)
    next_commands: list[str] = field(default_factory=list)

    def wave_of(self, slug: str) -> int | None:
        for wave in self.waves:
            if any(item.slug == slug for item in wave.items):
                return wave.number
        return None

    def to_dict(self) -> dict:
        return {
            "project_phase": self.project_phase.kind.value,
            "project_phase_milestone": self.project_phase.milestone,
            "milestone": self.milestone,
            "milestone_title": self.milestone_title,
            "progress": vars(self.progress).copy() if self.progress else None,
            "gaps": [
                {"feature": g.feature, "severity": g.severity.value, "message": g.message}
                for g in self.gaps
            ],
            "waves": [
                {
                    "number": w.number,
                    "label": w.label,
                    "needs_worktrees": w.needs_worktrees,
                    "items": [
                        {
                            "slug": i.slug,
                            "title": i.title,
                            "phase": i.phase.value,
                            "action": i.action.value,
                            "needs_worktree": i.needs_worktree,
                            "blocked_by": list(i.blocked_by),
                        }
                        for i in w.items
                    ],
                }
                for w in self.waves
            ],
            "blocked": [vars(b).copy() for b in self.blocked],
            "next_commands": list(self.next_commands),
        }


PLANNING_PHASES = (Phase.DRAFT, Phase.SPECIFIED, Phase.PLANNED, Phase.READY)
REVIEW_PHASES = (Phase.REVIEW, Phase.AUDIT, Phase.QA, Phase.MERGE)
HUMAN_ACTIONS = (ActionType.WAIT_FOR_APPROVAL, ActionType.UNBLOCK_DEPENDENCY)


def _load_members(root: Path, milestone: Milestone) -> list[Feature]:
    features = []
    for slug in milestone.features:
        try:
            features.append(Feature.load(root, slug))
        except FeatureNotFound:
            continue
    return features


def project_phase(root: Path, state: State) -> ProjectPhase:
    """Lifecycle phase of the project, from its first active milestone."""
    for slug in state.milestones:
        try:
            milestone = Milestone.load(root, slug)
        except MilestoneNotFound:
            continue
        if not milestone.is_active():
            continue

        live = [f for f in _load_members(root, milestone) if not f.archived]
        if live and all(f.phase == Phase.RELEASED for f in live):
            return ProjectPhase(ProjectPhaseKind.VERIFYING, milestone.slug)
        if any(f.phase.index > Phase.PLANNED.index for f in live):
            return ProjectPhase(ProjectPhaseKind.EXECUTING, milestone.slug)
        return ProjectPhase(ProjectPhaseKind.PLANNING, milestone.slug)

    return ProjectPhase(ProjectPhaseKind.IDLE)


def wave_label(items: list[WaveItem]) -> str:
    """Planning, Implementation or Review when one kind of phase dominates, else Mixed."""
    if not items:
        return "Empty"
    planning = sum(1 for i in items if i.phase in PLANNING_PHASES)
    implementation = sum(1 for i in items if i.phase == Phase.IMPLEMENTATION)
    review = sum(1 for i in items if i.phase in REVIEW_PHASES)

    top = max(planning, implementation, review)
    if top == 0:
        return "Mixed"
    leaders = [name for name, count in (
        ("Planning", planning), ("Implementation", implementation), ("Review", review),
    ) if count == top]
    return leaders[0] if len(leaders) == 1 else "Mixed"


def _blocked_reason(feature: Feature, action: ActionType, state: State) -> str:
    if feature.blockers:
        return f"Blocked: {', '.join(feature.blockers)}"
    comments = feature.blocking_comments()
    if comments:
        return f"Waiting on {len(comments)} unresolved blocker comment(s)"
    state_reason = state.blocked_reason(feature.slug)
    if state_reason:
        return state_reason
    if action == ActionType.WAIT_FOR_APPROVAL:
        return "Waiting for human approval"
    return "Blocked by unresolved dependency"


def prepare(
    root: Path,
    milestone_slug: str | None = None,
    state: State | None = None,
    config: Config | None = None,
) -> PrepareResult:
    """Survey a milestone and plan its waves.

    With no milestone_slug, the milestone comes from project_phase(); an
    idle project yields an empty result.

    Raises:
        MilestoneNotFound: If milestone_slug names a missing milestone
    """
    state = state or State.load(root)
    config = config or load_config(root)
    phase = project_phase(root, state)

    target = milestone_slug or phase.milestone
    if target is None:
        return PrepareResult(project_phase=phase)

    milestone = Milestone.load(root, target)
    all_features = {f.slug: f for f in Feature.list_all(root)}
    gaps: list[Gap] = []

    # slug -> (feature, action)
    members: dict[str, tuple[Feature, ActionType]] = {}
    for slug in milestone.features:
        feature = all_features.get(slug)
        if feature is None:
            gaps.append(Gap(slug, GapSeverity.BLOCKER,
                            f"Feature '{slug}' listed in milestone but not found"))
            continue
        if feature.archived:
            continue

        if not feature.description:
            gaps.append(Gap(slug, GapSeverity.WARNING, f"Feature '{slug}' has no description"))
        rejected = [
            a.artifact_type.value for a in feature.artifacts
            if a.status in (ArtifactStatus.REJECTED, ArtifactStatus.FAILED, ArtifactStatus.NEEDS_FIX)
        ]
        if rejected:
            gaps.append(Gap(slug, GapSeverity.WARNING,
                            f"Feature '{slug}' has artifacts needing rework: {', '.join(rejected)}"))

        members[slug] = (feature, classify(feature, state, config).action)

    completed = {
        slug for slug, (f, action) in members.items()
        if f.phase == Phase.RELEASED or action == ActionType.DONE
    }

    # Dependencies outside the milestone must exist and be released
    blocked: dict[str, str] = {}
    for slug, (feature, action) in members.items():
        if slug in completed:
            continue
        if action in HUMAN_ACTIONS:
            blocked[slug] = _blocked_reason(feature, action, state)
            continue
        for dep in feature.dependencies:
            if dep in members:
                continue
            dep_feature = all_features.get(dep)
            if dep_feature is None:
                gaps.append(Gap(slug, GapSeverity.BLOCKER,
                                f"Feature '{slug}' depends on '{dep}' which does not exist"))
                blocked[slug] = f"Missing prerequisite '{dep}'"
                break
            if dep_feature.phase != Phase.RELEASED and not dep_feature.archived:
                gaps.append(Gap(slug, GapSeverity.BLOCKER,
                                f"Feature '{slug}' depends on '{dep}' which is outside "
                                f"the milestone and not released"))
                blocked[slug] = f"Depends on unreleased feature '{dep}' outside the milestone"
                break

    human_gated = {s for s, (_, a) in members.items() if a in HUMAN_ACTIONS and s not in completed}

    # Transitive: anything depending on a blocked member is blocked too
    changed = True
    while changed:
        changed = False
        for slug, (feature, _) in members.items():
            if slug in completed or slug in blocked:
                continue
            dep = next((d for d in feature.dependencies if d in blocked), None)
            if dep is not None:
                blocked[slug] = f"Depends on blocked feature '{dep}'"
                changed = True

    for slug in sorted(human_gated):
        dependents = [
            s for s, (f, _) in members.items()
            if slug in f.dependencies and s not in completed
        ]
        if dependents:
            gaps.append(Gap(slug, GapSeverity.INFO,
                            f"Feature '{slug}' is at a human gate and blocking "
                            f"{len(dependents)} dependent feature(s)"))

    waves, cycled = _plan_waves(members, completed, blocked)
    if cycled:
        gaps.append(Gap(cycled[0], GapSeverity.BLOCKER,
                        f"Dependency cycle detected among features: {', '.join(cycled)}"))

    progress = MilestoneProgress(total=len(members))
    for slug, (feature, action) in members.items():
        if slug in completed:
            progress.released += 1
        elif slug in blocked:
            progress.blocked += 1
        elif feature.phase != Phase.DRAFT:
            progress.in_progress += 1
        else:
            progress.pending += 1

    next_commands = [f"sdlc run {item.slug}" for item in waves[0].items] if waves else []

    gaps.sort(key=lambda g: SEVERITY_ORDER[g.severity])
    logger.info(
        f"[PREPARE] {milestone.slug}: {len(waves)} wave(s), {len(blocked)} blocked, "
        f"{len(gaps)} gap(s)"
    )

    return PrepareResult(
        project_phase=phase,
        milestone=milestone.slug,
        milestone_title=milestone.title,
        progress=progress,
        gaps=gaps,
        waves=waves,
        blocked=[
            BlockedItem(slug, members[slug][0].title, reason)
            for slug, reason in sorted(blocked.items())
        ],
        next_commands=next_commands,
    )


def _plan_waves(
    members: dict[str, tuple[Feature, ActionType]],
    completed: set[str],
    blocked: dict[str, str],
) -> tuple[list[Wave], list[str]]:
    """Level candidates with Kahn's algorithm.

    Returns:
        Tuple of (waves, slugs left over because of a cycle)
    """
    candidates = {s for s in members if s not in completed and s not in blocked}

    dependents: dict[str, list[str]] = {s: [] for s in candidates}
    in_degree: dict[str, int] = {s: 0 for s in candidates}
    for slug in candidates:
        for dep in members[slug][0].dependencies:
            if dep in candidates:
                dependents[dep].append(slug)
                in_degree[slug] += 1

    levels: list[list[str]] = []
    current = sorted(s for s, d in in_degree.items() if d == 0)
    while current:
        levels.append(current)
        nxt = []
        for slug in current:
            for dependent in dependents[slug]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    nxt.append(dependent)
        current = sorted(nxt)

    placed = {s for level in levels for s in level}
    cycled = sorted(candidates - placed)

    waves = []
    earlier: set[str] = set()
    for number, level in enumerate(levels, 1):
        parallel = len(level) >= 2
        items = []
        for slug in level:
            feature, action = members[slug]
            items.append(WaveItem(
                slug=slug,
                title=feature.title,
                phase=feature.phase,
                action=action,
                needs_worktree=parallel,
                blocked_by=[d for d in feature.dependencies if d in earlier],
            ))
        earlier.update(level)
        waves.append(Wave(number=number, label=wave_label(items), items=items))
    return waves, cycled


def write_wave_plan(root: Path, result: PrepareResult) -> Path | None:
    """Persist the plan next to the milestone manifest. Skipped when there are no waves."""
    if not result.waves or not result.milestone:
        return None
    path = paths.wave_plan_path(root, result.milestone)
    data = result.to_dict()
    data["generated_at"] = now_iso()
    write_yaml(path, data)
    return path
