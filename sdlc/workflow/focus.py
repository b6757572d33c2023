"""Focus: the single highest-priority actionable directive in the project.

Walks state.milestones in order (features in milestone order), then
falls back to state.active_features for anything not yet visited.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from sdlc.lib.config import Config
from sdlc.lib.errors import FeatureNotFound, MilestoneNotFound
from sdlc.lib.types import ActionType
from sdlc.model.feature import Feature
from sdlc.model.milestone import Milestone
from sdlc.model.state import State
from sdlc.workflow.classifier import Classification, classify

logger = logging.getLogger(__name__)

# Actions a caller cannot act on right now
NON_ACTIONABLE = frozenset({
    ActionType.DONE,
    ActionType.WAIT_FOR_APPROVAL,
    ActionType.UNBLOCK_DEPENDENCY,
})


def is_actionable(action: ActionType) -> bool:
    return action not in NON_ACTIONABLE


@dataclass
class MilestoneSummary:
    slug: str
    title: str
    position: int  # 1-based position of the feature in the milestone
    total: int


@dataclass
class FocusResult:
    classification: Classification
    milestone: MilestoneSummary | None = None

    def to_dict(self) -> dict:
        data = self.classification.to_dict()
        if self.milestone:
            data["milestone"] = vars(self.milestone).copy()
        return data


def _classify_if_actionable(root: Path, slug: str, state: State, config: Config) -> Classification | None:
    try:
        feature = Feature.load(root, slug)
    except FeatureNotFound:
        logger.warning(f"Focus: feature '{slug}' listed but not found")
        return None
    if feature.archived:
        return None
    classification = classify(feature, state, config)
    if is_actionable(classification.action):
        return classification
    return None


def focus(root: Path, state: State, config: Config) -> FocusResult | None:
    """Return the first actionable directive, or None if nothing is actionable."""
    visited: set[str] = set()

    for milestone_slug in state.milestones:
        try:
            milestone = Milestone.load(root, milestone_slug)
        except MilestoneNotFound:
            logger.warning(f"Focus: milestone '{milestone_slug}' listed but not found")
            continue
        total = len(milestone.features)
        for position, slug in enumerate(milestone.features, 1):
            if slug in visited:
                continue
            visited.add(slug)
            classification = _classify_if_actionable(root, slug, state, config)
            if classification:
                return FocusResult(
                    classification,
                    MilestoneSummary(milestone.slug, milestone.title, position, total),
                )

    for slug in state.active_features:
        if slug in visited:
            continue
        visited.add(slug)
        classification = _classify_if_actionable(root, slug, state, config)
        if classification:
            return FocusResult(classification)

    return None
