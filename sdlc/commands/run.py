"""
sdlc run - Execute the next action for a feature, then verify it with gates.

Exit codes:
    0  action done and all gates passed (or nothing to run)
    2  an automated gate failed after its retries
    3  a human or step-back gate requires a person
    N  the agent's own non-zero exit code
"""

import logging
import shlex
import subprocess
import sys
from pathlib import Path

from sdlc.lib.config import Config
from sdlc.lib.errors import GateFailed, HumanGateRequired
from sdlc.lib.locking import state_lock
from sdlc.lib.types import ActionType
from sdlc.model.feature import Feature
from sdlc.model.state import State
from sdlc.workflow.classifier import classify
from sdlc.workflow.gates import (
    GateDefinition, HumanGate, ShellGate, format_gate_results, gate_outcome, run_gates,
)

logger = logging.getLogger(__name__)

EXIT_GATE_FAILED = 2
EXIT_HUMAN_GATE = 3

# Actions that only a person can complete
HUMAN_ONLY_ACTIONS = (
    ActionType.WAIT_FOR_APPROVAL,
    ActionType.APPROVE_MERGE,
    ActionType.UNBLOCK_DEPENDENCY,
)


def _print_gates(action: ActionType, gates: list[GateDefinition]) -> None:
    print(f"\nGates after {action}:")
    for gate in gates:
        kind = gate.gate_type
        if isinstance(kind, ShellGate):
            print(f"  shell: {gate.name} (retries: {gate.max_retries}, timeout: {gate.timeout_seconds}s)")
            print(f"    command: {kind.command}")
        elif isinstance(kind, HumanGate):
            print(f"  human: {gate.name} - {kind.prompt}")
        else:
            print(f"  step_back: {gate.name} ({len(kind.questions)} questions)")
            for q in kind.questions:
                print(f"    - {q}")


def _record(root: Path, slug: str, action: ActionType, phase: str, outcome: str) -> None:
    with state_lock(root):
        state = State.load(root)
        state.finish_work(slug)
        state.record_action(slug, action.value, phase, outcome)
        state.save(root)


def cmd_run(args, root: Path, config: Config) -> int:
    """Run the classified action for one feature."""
    slug = args.slug
    state = State.load(root)
    feature = Feature.load(root, slug)
    classification = classify(feature, state, config)
    action = classification.action
    phase = classification.current_phase.value

    if action == ActionType.DONE:
        print(f"Feature '{slug}' is complete, no pending actions.")
        return 0

    if action in HUMAN_ONLY_ACTIONS or config.agents.is_human(action):
        print(f"Human action required for '{slug}'.")
        print(classification.message)
        if classification.next_command:
            print(f"Next command:  {classification.next_command}")
        return 0

    argv = config.agents.build_argv(action, classification.render())
    gates = config.gates_for(action.value)

    if args.dry_run:
        print(shlex.join(argv))
        if gates:
            _print_gates(action, gates)
        return 0

    with state_lock(root):
        state = State.load(root)
        state.start_work(slug, action.value, classification.timeout_minutes)
        state.save(root)

    logger.info(f"[RUN] {slug}: {action} via {argv[0]}")
    try:
        result = subprocess.run(argv, cwd=root)
    except OSError as e:
        _record(root, slug, action, phase, "agent_failed")
        print(f"ERROR: failed to execute '{argv[0]}': {e}", file=sys.stderr)
        return 1

    if result.returncode != 0:
        _record(root, slug, action, phase, "agent_failed")
        print(f"ERROR: agent exited with code {result.returncode}", file=sys.stderr)
        return result.returncode

    if not gates:
        _record(root, slug, action, phase, "succeeded")
        return 0

    print(f"\nRunning verification gates for '{action}'...", file=sys.stderr)
    results = run_gates(root, action.value, gates)
    print(format_gate_results(results), file=sys.stderr)

    try:
        gate_outcome(gates, results)
    except HumanGateRequired as e:
        _record(root, slug, action, phase, "human_gate")
        print(f"\nHuman gate '{e.gate_name}' requires approval.", file=sys.stderr)
        return EXIT_HUMAN_GATE
    except GateFailed as e:
        _record(root, slug, action, phase, "gate_failed")
        print(f"\nGate '{e.gate_name}' failed after {e.attempts} attempt(s).", file=sys.stderr)
        return EXIT_GATE_FAILED

    _record(root, slug, action, phase, "succeeded")
    print("All gates passed.", file=sys.stderr)
    return 0
