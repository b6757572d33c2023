"""
sdlc milestone - Group features into ordered milestones.
"""

from pathlib import Path

from sdlc.lib.config import Config
from sdlc.lib.locking import milestone_lock, state_lock
from sdlc.model.feature import Feature
from sdlc.model.milestone import Milestone
from sdlc.model.state import State


def cmd_milestone_create(args, root: Path, config: Config) -> int:
    with state_lock(root):
        state = State.load(root)
        milestone = Milestone.create(root, args.slug, args.title or args.slug, args.description)
        state.add_milestone(milestone.slug)
        state.save(root)
    print(f"Created milestone '{milestone.slug}'")
    return 0


def cmd_milestone_add_feature(args, root: Path, config: Config) -> int:
    if args.position is not None and args.position < 1:
        print(f"ERROR: position must be 1 or greater, got {args.position}")
        return 1
    Feature.load(root, args.feature)  # must exist
    with milestone_lock(root, args.slug):
        milestone = Milestone.load(root, args.slug)
        if args.position is not None:
            added = milestone.add_feature_at(args.feature, args.position - 1)
        else:
            added = milestone.add_feature(args.feature)
        if added:
            milestone.save(root)
    if added:
        print(f"Added '{args.feature}' to '{args.slug}'")
    else:
        print(f"'{args.feature}' is already in '{args.slug}'")
    return 0


def cmd_milestone_remove_feature(args, root: Path, config: Config) -> int:
    with milestone_lock(root, args.slug):
        milestone = Milestone.load(root, args.slug)
        removed = milestone.remove_feature(args.feature)
        if removed:
            milestone.save(root)
    if not removed:
        print(f"ERROR: '{args.feature}' is not in '{args.slug}'")
        return 1
    print(f"Removed '{args.feature}' from '{args.slug}'")
    return 0


def cmd_milestone_reorder(args, root: Path, config: Config) -> int:
    with milestone_lock(root, args.slug):
        milestone = Milestone.load(root, args.slug)
        milestone.reorder_features(args.features)
        milestone.save(root)
    print(f"'{args.slug}': {', '.join(milestone.features)}")
    return 0


def cmd_milestone_move(args, root: Path, config: Config) -> int:
    if args.position < 1:
        print(f"ERROR: position must be 1 or greater, got {args.position}")
        return 1
    with milestone_lock(root, args.slug):
        milestone = Milestone.load(root, args.slug)
        milestone.move_feature(args.feature, args.position - 1)
        milestone.save(root)
    print(f"'{args.slug}': {', '.join(milestone.features)}")
    return 0


def cmd_milestone_close(args, root: Path, config: Config) -> int:
    """Mark a milestone complete or cancelled (args.close_action)."""
    with milestone_lock(root, args.slug):
        milestone = Milestone.load(root, args.slug)
        if args.close_action == 'complete':
            milestone.complete()
        else:
            milestone.cancel()
        milestone.save(root)
    print(f"Milestone '{args.slug}' is now {milestone.status.value}")
    return 0


def cmd_milestone_list(args, root: Path, config: Config) -> int:
    state = State.load(root)
    milestones = {m.slug: m for m in Milestone.list_all(root)}
    ordered = [milestones[s] for s in state.milestones if s in milestones]
    ordered += [m for s, m in milestones.items() if s not in state.milestones]

    if not ordered:
        print("No milestones")
        return 0
    for m in ordered:
        print(f"  {m.slug:<24} {m.status.value:<10} {m.title}")
        for position, slug in enumerate(m.features, 1):
            print(f"    {position}. {slug}")
    return 0
