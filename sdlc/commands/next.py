"""
sdlc next - Show the next action for one or all active features.
"""

import json
from pathlib import Path

from sdlc.lib.config import Config
from sdlc.model.state import State
from sdlc.workflow.classifier import Classification, classify_slug


def print_classification(c: Classification) -> None:
    print(f"{c.feature} [{c.current_phase}] -> {c.action}")
    print(f"  {c.message}")
    if c.task_id:
        print(f"  Task:         {c.task_id}")
    if c.next_command:
        print(f"  Next command: {c.next_command}")
    if c.output_path:
        print(f"  Output path:  {c.output_path}")
    if c.transition_to:
        print(f"  Transition:   {c.current_phase} -> {c.transition_to}")


def cmd_next(args, root: Path, config: Config) -> int:
    """Classify one feature (--for) or every active feature."""
    state = State.load(root)
    slugs = [args.for_slug] if args.for_slug else list(state.active_features)

    results = [classify_slug(root, slug, state, config) for slug in slugs]

    if args.json:
        payload = results[0].to_dict() if args.for_slug else [r.to_dict() for r in results]
        print(json.dumps(payload, indent=2))
        return 0

    if not results:
        print("No active features")
        return 0

    for i, result in enumerate(results):
        if i:
            print()
        print_classification(result)
    return 0
