"""
sdlc merge - Mark a feature in the merge phase as released.
"""

from pathlib import Path

from sdlc.lib.config import Config
from sdlc.lib.errors import InvalidTransition
from sdlc.lib.locking import state_lock
from sdlc.lib.types import ActionType, Phase
from sdlc.model.feature import Feature
from sdlc.model.state import State
from sdlc.workflow.state_machine import transition_feature


def cmd_merge(args, root: Path, config: Config) -> int:
    feature = Feature.load(root, args.slug)
    if feature.phase != Phase.MERGE:
        raise InvalidTransition(feature.phase, Phase.RELEASED, "feature is not in merge")

    feature = transition_feature(root, args.slug, Phase.RELEASED, config)
    with state_lock(root):
        state = State.load(root)
        state.record_action(feature.slug, ActionType.MERGE.value, Phase.MERGE.value, "released")
        state.remove_active_feature(feature.slug)
        state.finish_work(feature.slug)
        state.save(root)
    print(f"Released '{feature.slug}'")
    return 0
