"""
sdlc focus - Show the single highest-priority actionable directive.
"""

import json
from pathlib import Path

from sdlc.commands.next import print_classification
from sdlc.lib.config import Config
from sdlc.model.state import State
from sdlc.workflow.focus import focus


def cmd_focus(args, root: Path, config: Config) -> int:
    state = State.load(root)
    result = focus(root, state, config)

    if args.json:
        print(json.dumps(result.to_dict() if result else None, indent=2))
        return 0

    if result is None:
        print("Nothing actionable: every feature is done, waiting on a human, or blocked")
        return 0

    if result.milestone:
        m = result.milestone
        print(f"Milestone: {m.title} ({m.slug}) - feature {m.position}/{m.total}")
    print_classification(result.classification)
    return 0
