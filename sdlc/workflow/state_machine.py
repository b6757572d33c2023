"""Phase transition wrappers around Feature.transition().

Provides the single auto-transition check run after every artifact or
task mutation, and locked load -> mutate -> save helpers for callers.

Usage:
    from sdlc.workflow.state_machine import mutate_feature

    feature, new_phase = mutate_feature(
        root, "auth-login", lambda f: f.artifact(ArtifactType.SPEC).approve("alice"),
    )
"""

import logging
from pathlib import Path
from typing import Callable

from sdlc.lib.config import Config, load_config
from sdlc.lib.errors import Blocked, InvalidTransition
from sdlc.lib.locking import feature_lock
from sdlc.lib.types import Phase, PHASE_ORDER
from sdlc.model.feature import Feature
from sdlc.model.state import State
from sdlc.workflow.fsm import exit_blockers

logger = logging.getLogger(__name__)


def next_enabled_phase(phase: Phase, config: Config) -> Phase | None:
    for candidate in PHASE_ORDER[phase.index + 1:]:
        if config.phases.is_enabled(candidate):
            return candidate
    return None


def blocked_reason(feature: Feature, state: State | None = None) -> str | None:
    """Why the feature may not change phase, or None if it is free to move."""
    if feature.is_blocked():
        return "; ".join(feature.blockers)
    comments = feature.blocking_comments()
    if comments:
        return f"unresolved comments: {', '.join(c.id for c in comments)}"
    if state is not None:
        return state.blocked_reason(feature.slug)
    return None


def try_auto_transition(feature: Feature, config: Config, state: State | None = None) -> Phase | None:
    """Advance the feature one phase if its current phase's artifacts are all satisfied.

    Only phases that declare artifact exit requirements auto-advance;
    the others move through explicit transitions or classifier directives.
    A blocked feature never advances.

    Returns:
        The new phase, or None if nothing changed
    """
    if feature.archived:
        return None
    if not config.phases.exit_requirements(feature.phase):
        return None

    reason = blocked_reason(feature, state)
    if reason:
        logger.debug(f"[STATE] {feature.slug}: auto-transition held: {reason}")
        return None

    target = next_enabled_phase(feature.phase, config)
    if target is None:
        return None

    if exit_blockers(feature, config, target):
        logger.debug(f"[STATE] {feature.slug}: exit criteria for {feature.phase} not met")
        return None

    try:
        feature.transition(target, config)
    except InvalidTransition as e:
        logger.debug(f"[STATE] {feature.slug}: auto-transition skipped: {e}")
        return None
    logger.info(f"[STATE] {feature.slug}: auto-transitioned to {target}")
    return target


def mutate_feature(
    root: Path,
    slug: str,
    mutate: Callable[[Feature], None],
    config: Config | None = None,
) -> tuple[Feature, Phase | None]:
    """Load a feature under its lock, apply mutate, auto-transition, save.

    If mutate raises, nothing is saved.

    Returns:
        Tuple of (feature, new phase or None)
    """
    config = config or load_config(root)
    with feature_lock(root, slug):
        feature = Feature.load(root, slug)
        state = State.load(root)
        mutate(feature)
        feature.touch()
        new_phase = try_auto_transition(feature, config, state)
        feature.save(root)
    return feature, new_phase


def transition_feature(root: Path, slug: str, target: Phase, config: Config | None = None) -> Feature:
    """Explicitly transition a feature and persist it.

    Raises:
        FeatureNotFound: If the feature doesn't exist
        Blocked: If the feature has blockers, unresolved blocker comments
            or an entry in state.blocked
        InvalidTransition: If the transition is not allowed
    """
    config = config or load_config(root)
    with feature_lock(root, slug):
        feature = Feature.load(root, slug)
        reason = blocked_reason(feature, State.load(root))
        if reason:
            raise Blocked(slug, reason)
        feature.transition(target, config)
        feature.save(root)
    return feature
