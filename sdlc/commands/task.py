"""
sdlc task - Manage a feature's tasks.
"""

import json
from pathlib import Path

from sdlc.lib.config import Config
from sdlc.model import task as tasks
from sdlc.model.feature import Feature
from sdlc.workflow.state_machine import mutate_feature


def cmd_task_add(args, root: Path, config: Config) -> int:
    created = []

    def add(feature: Feature):
        created.append(tasks.add_task(feature.tasks, args.title, args.depends_on))

    mutate_feature(root, args.slug, add, config)
    print(f"Added {created[0]} to '{args.slug}'")
    return 0


def cmd_task_update(args, root: Path, config: Config) -> int:
    """start / complete / block one task."""
    def update(feature: Feature):
        if args.task_action == "start":
            tasks.start_task(feature.tasks, args.task_id)
        elif args.task_action == "complete":
            tasks.complete_task(feature.tasks, args.task_id)
        else:
            tasks.block_task(feature.tasks, args.task_id, args.reason)

    feature, new_phase = mutate_feature(root, args.slug, update, config)
    print(f"{feature.slug}/{args.task_id}: {args.task_action} ({tasks.summarize_tasks(feature.tasks)})")
    if new_phase:
        print(f"Phase advanced: {feature.slug} -> {new_phase}")
    return 0


def cmd_task_list(args, root: Path, config: Config) -> int:
    feature = Feature.load(root, args.slug)

    if args.json:
        print(json.dumps([t.to_dict() for t in feature.tasks], indent=2))
        return 0

    if not feature.tasks:
        print(f"No tasks for '{feature.slug}'")
        return 0

    upcoming = tasks.next_task(feature.tasks)
    for t in feature.tasks:
        deps = f" (after {', '.join(t.depends_on)})" if t.depends_on else ""
        arrow = "  <-- NEXT" if upcoming is not None and t.id == upcoming.id else ""
        print(f"  {t.id:<4} [{t.status.value:<11}] {t.title}{deps}{arrow}")
        if t.blocker:
            print(f"         blocked: {t.blocker}")
    print(tasks.summarize_tasks(feature.tasks))
    return 0
