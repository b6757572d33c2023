"""
sdlc project prepare - Plan a milestone's execution waves.
"""

import json
from pathlib import Path

from sdlc.lib.config import Config
from sdlc.model.state import State
from sdlc.workflow.prepare import PrepareResult, prepare, write_wave_plan


def _print_result(result: PrepareResult) -> None:
    print(f"Project phase: {result.project_phase}")
    if not result.milestone:
        print("No active milestone to prepare")
        return

    print(f"Milestone:     {result.milestone_title} ({result.milestone})")
    p = result.progress
    print(f"Progress:      {p.released}/{p.total} released, {p.in_progress} in progress, "
          f"{p.blocked} blocked, {p.pending} pending")

    if result.gaps:
        print()
        print("Gaps:")
        for gap in result.gaps:
            print(f"  [{gap.severity.value}] {gap.message}")

    for wave in result.waves:
        print()
        worktrees = " (needs worktrees)" if wave.needs_worktrees else ""
        print(f"Wave {wave.number} - {wave.label}{worktrees}")
        for item in wave.items:
            after = f" (after {', '.join(item.blocked_by)})" if item.blocked_by else ""
            print(f"  {item.slug:<28} {item.phase.value:<15} {item.action.value}{after}")

    if result.blocked:
        print()
        print("Blocked:")
        for b in result.blocked:
            print(f"  {b.slug}: {b.reason}")

    if result.next_commands:
        print()
        print("Next:")
        for command in result.next_commands:
            print(f"  {command}")


def cmd_prepare(args, root: Path, config: Config) -> int:
    state = State.load(root)
    result = prepare(root, args.milestone, state=state, config=config)
    plan_path = write_wave_plan(root, result)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)
        if plan_path:
            print(f"\nWave plan written to {plan_path}")
    return 0
