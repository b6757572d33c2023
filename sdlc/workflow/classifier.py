"""Rule-based classifier: (feature, state, config) -> one directive.

classify() never mutates its inputs and never fails: when no rule
matches it returns a Done directive.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from sdlc.lib.config import Config
from sdlc.lib.types import ActionType, Phase
from sdlc.model.feature import Feature
from sdlc.model.state import State
from sdlc.workflow.rules import EvalContext, Rule, default_rules

logger = logging.getLogger(__name__)


@dataclass
class Classification:
    """The directive for a feature: what should happen next."""
    feature: str
    title: str
    description: str | None
    current_phase: Phase
    action: ActionType
    message: str
    next_command: str
    output_path: str | None = None
    transition_to: Phase | None = None
    task_id: str | None = None
    is_heavy: bool = False  # advisory
    timeout_minutes: int = 0  # advisory

    def to_dict(self) -> dict:
        data = {
            "feature": self.feature,
            "title": self.title,
            "current_phase": self.current_phase.value,
            "action": self.action.value,
            "message": self.message,
            "next_command": self.next_command,
            "output_path": self.output_path,
            "transition_to": self.transition_to.value if self.transition_to else None,
            "task_id": self.task_id,
            "is_heavy": self.is_heavy,
            "timeout_minutes": self.timeout_minutes,
        }
        if self.description is not None:
            data["description"] = self.description
        return data

    def render(self) -> str:
        """Plain-text directive, used as the agent prompt."""
        parts = [f"Feature: {self.feature}", f"Title: {self.title}"]
        if self.description:
            parts.append(f"Description: {self.description}")
        parts.append(f"Phase: {self.current_phase}")
        parts.append(f"Action: {self.action}")
        if self.task_id:
            parts.append(f"Task: {self.task_id}")
        parts.append(self.message)
        if self.next_command:
            parts.append(f"Next command: {self.next_command}")
        if self.output_path:
            parts.append(f"Output path: {self.output_path}")
        return "\n".join(parts)


def _resolve_target(target: Phase | None, config: Config) -> Phase | None:
    """Skip forward over disabled phases."""
    while target is not None and not config.phases.is_enabled(target):
        target = target.next()
    return target


class Classifier:
    def __init__(self, rules: list[Rule] | None = None):
        self.rules = rules if rules is not None else default_rules()

    def classify(self, ctx: EvalContext) -> Classification:
        feature = ctx.feature
        for rule in self.rules:
            if not rule.condition(ctx):
                continue
            logger.debug(f"[CLASSIFY] {feature.slug}: matched rule '{rule.id}'")
            return Classification(
                feature=feature.slug,
                title=feature.title,
                description=feature.description,
                current_phase=feature.phase,
                action=rule.action,
                message=rule.message(ctx),
                next_command=rule.next_command(ctx),
                output_path=rule.output_path(ctx) if rule.output_path else None,
                transition_to=_resolve_target(rule.transition_to, ctx.config),
                task_id=rule.task_id(ctx) if rule.task_id else None,
                is_heavy=rule.action.is_heavy,
                timeout_minutes=rule.action.timeout_minutes,
            )

        return Classification(
            feature=feature.slug,
            title=feature.title,
            description=feature.description,
            current_phase=feature.phase,
            action=ActionType.DONE,
            message=f"Feature '{feature.slug}' has no pending actions",
            next_command="",
        )


def classify(feature: Feature, state: State, config: Config) -> Classification:
    """Classify one feature with the default rules."""
    return Classifier().classify(EvalContext(feature=feature, state=state, config=config))


def classify_slug(root: Path, slug: str, state: State, config: Config) -> Classification:
    """Load a feature and classify it.

    Raises:
        FeatureNotFound: If the feature doesn't exist
    """
    return classify(Feature.load(root, slug), state, config)
