"""
sdlc artifact - Record artifact status changes.

Every change runs the auto-transition check, so approving the last
required artifact of a phase advances the feature.
"""

from pathlib import Path

from sdlc.lib.config import Config
from sdlc.lib.types import parse_artifact_type
from sdlc.model.artifact import Artifact
from sdlc.workflow.state_machine import mutate_feature

# action name -> args -> change applied to the artifact
ARTIFACT_ACTIONS = {
    "draft": lambda args: Artifact.mark_draft,
    "approve": lambda args: lambda a: a.approve(args.by),
    "reject": lambda args: lambda a: a.reject(args.reason),
    "needs-fix": lambda args: Artifact.mark_needs_fix,
    "pass": lambda args: Artifact.mark_passed,
    "fail": lambda args: Artifact.mark_failed,
    "waive": lambda args: lambda a: a.waive(args.reason),
}


def cmd_artifact(args, root: Path, config: Config) -> int:
    """Apply args.artifact_action to one artifact of one feature."""
    artifact_type = parse_artifact_type(args.artifact)
    change = ARTIFACT_ACTIONS[args.artifact_action](args)

    feature, new_phase = mutate_feature(
        root, args.slug, lambda f: change(f.artifact(artifact_type)), config,
    )

    artifact = feature.artifact(artifact_type)
    print(f"{feature.slug}/{artifact_type.value}: {artifact.status.value}")
    if new_phase:
        print(f"Phase advanced: {feature.slug} -> {new_phase}")
    return 0
