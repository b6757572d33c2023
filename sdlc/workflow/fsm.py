"""Feature phase state machine using transitions library.

Phases only move forward. A transition from phase A to a later phase B
is allowed when every exit requirement between them is satisfied:
- the artifacts configured as exit requirements of A and of each enabled
  phase strictly between A and B are approved, passed or waived
- leaving implementation requires every task to be completed

Usage:
    from sdlc.workflow.fsm import PhaseFSM, exit_blockers

    reasons = exit_blockers(feature, config, Phase.SPECIFIED)
    fsm = PhaseFSM(feature)
    fsm.to_specified()
"""

import logging
from typing import Callable

from transitions import Machine

from sdlc.lib.config import Config
from sdlc.lib.timeutil import now_iso
from sdlc.lib.types import Phase, PHASE_ORDER, TaskStatus

logger = logging.getLogger(__name__)


STATES = [p.value for p in PHASE_ORDER]

# One trigger per forward (source, dest) pair: to_<dest>
TRANSITIONS = [
    {"trigger": f"to_{dest.value}", "source": src.value, "dest": dest.value}
    for i, src in enumerate(PHASE_ORDER)
    for dest in PHASE_ORDER[i + 1:]
]


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        lookup.setdefault((t["source"], t["dest"]), t["trigger"])
    return lookup


TRIGGER_FOR = _build_trigger_lookup()


def phases_exited(current: Phase, target: Phase, config: Config) -> list[Phase]:
    """Phases whose exit requirements apply when moving current -> target.

    The current phase always counts; intermediate phases only when enabled.
    """
    between = PHASE_ORDER[current.index + 1:target.index]
    return [current] + [p for p in between if config.phases.is_enabled(p)]


def exit_blockers(feature, config: Config, target: Phase) -> list[str]:
    """List the unmet exit requirements for moving feature to target.

    Empty list means the transition's exit criteria are met.
    """
    reasons = []
    seen = set()
    for phase in phases_exited(feature.phase, target, config):
        for artifact_type in config.phases.exit_requirements(phase):
            if artifact_type in seen:
                continue
            seen.add(artifact_type)
            artifact = feature.artifact(artifact_type)
            if not artifact.is_satisfied():
                reasons.append(
                    f"artifact '{artifact_type.value}' is {artifact.status.value} "
                    f"(required to leave {phase.value})"
                )
        if phase == Phase.IMPLEMENTATION:
            open_tasks = [t.id for t in feature.tasks if t.status != TaskStatus.COMPLETED]
            if open_tasks:
                reasons.append(f"tasks not completed: {', '.join(open_tasks)}")
    return reasons


class PhaseFSM:
    """State machine over a feature's phase.

    Wraps the transitions library with feature-specific logic:
    - Starts from the feature's current phase
    - Writes the new phase and phase_history back to the feature
    - Logs all transitions
    """

    def __init__(self, feature, on_transition: Callable[[str, str, str], None] | None = None):
        """Initialize FSM for a feature.

        Args:
            feature: Feature whose phase this machine drives
            on_transition: Optional callback(from_phase, to_phase, trigger) called after transitions
        """
        self.feature = feature
        self.on_transition = on_transition

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=feature.phase.value,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",  # Callback after any transition
        )

    def on_state_change(self, event) -> None:
        """Callback after any state transition.

        Closes the open phase_history entry and opens one for the new phase.
        """
        from_phase = event.transition.source
        to_phase = event.transition.dest
        trigger = event.event.name
        now = now_iso()

        for entry in reversed(self.feature.phase_history):
            if entry.exited is None:
                entry.exited = now
                break
        self.feature.phase = Phase(to_phase)
        self.feature.open_phase(self.feature.phase, now)
        self.feature.updated_at = now

        logger.info(f"[FSM] {self.feature.slug}: {from_phase} -> {to_phase} ({trigger})")

        if self.on_transition:
            self.on_transition(from_phase, to_phase, trigger)

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        """Get list of triggers available in current state."""
        return self.machine.get_triggers(self.state)
