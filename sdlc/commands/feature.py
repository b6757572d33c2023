"""
sdlc feature - Create, inspect and transition features.
"""

import json
import logging
from pathlib import Path

from sdlc.lib.config import Config
from sdlc.lib.locking import feature_lock, state_lock
from sdlc.lib.types import parse_phase
from sdlc.model.feature import Feature
from sdlc.model.state import State
from sdlc.model.task import summarize_tasks
from sdlc.workflow.state_machine import mutate_feature, transition_feature

logger = logging.getLogger(__name__)


def cmd_feature_create(args, root: Path, config: Config) -> int:
    with state_lock(root):
        state = State.load(root)
        feature = Feature.create(root, args.slug, args.title or args.slug, args.description)
        state.add_active_feature(feature.slug)
        state.save(root)
    print(f"Created feature '{feature.slug}' in {feature.phase}")
    return 0


def cmd_feature_list(args, root: Path, config: Config) -> int:
    features = Feature.list_all(root)
    if not args.all:
        features = [f for f in features if not f.archived]

    if args.json:
        print(json.dumps([{"slug": f.slug, "title": f.title, "phase": f.phase.value,
                           "archived": f.archived} for f in features], indent=2))
        return 0

    if not features:
        print("No features")
        return 0
    for f in features:
        marker = " (archived)" if f.archived else ""
        print(f"  {f.slug:<32} {f.phase.value:<16} {f.title}{marker}")
    return 0


def cmd_feature_show(args, root: Path, config: Config) -> int:
    feature = Feature.load(root, args.slug)

    if args.json:
        print(json.dumps(feature.to_dict(), indent=2))
        return 0

    print(f"Feature: {feature.slug}")
    print("=" * 60)
    print(f"Title:        {feature.title}")
    if feature.description:
        print(f"Description:  {feature.description}")
    print(f"Phase:        {feature.phase}")
    if feature.dependencies:
        print(f"Depends on:   {', '.join(feature.dependencies)}")
    if feature.blockers:
        print(f"Blockers:     {'; '.join(feature.blockers)}")
    print()
    print("Artifacts:")
    for a in feature.artifacts:
        print(f"  {a.artifact_type.value:<12} {a.status.value}")
    print()
    if feature.tasks:
        print(f"Tasks:        {summarize_tasks(feature.tasks)}")
    else:
        print("Tasks:        none")
    print(f"Comments:     {len(feature.comments)} ({len(feature.blocking_comments())} blocking)")
    return 0


def cmd_feature_update(args, root: Path, config: Config) -> int:
    if args.title is None and args.description is None:
        print("ERROR: nothing to update (use --title and/or --description)")
        return 1

    def update(feature: Feature):
        if args.title is not None:
            feature.update_title(args.title)
        if args.description is not None:
            feature.set_description(args.description or None)

    feature, _ = mutate_feature(root, args.slug, update, config)
    print(f"Updated '{feature.slug}'")
    return 0


def cmd_feature_transition(args, root: Path, config: Config) -> int:
    target = parse_phase(args.phase)
    feature = transition_feature(root, args.slug, target, config)
    print(f"'{feature.slug}' is now in {feature.phase}")
    return 0


def cmd_feature_archive(args, root: Path, config: Config) -> int:
    with state_lock(root):
        state = State.load(root)
        with feature_lock(root, args.slug):
            feature = Feature.load(root, args.slug)
            feature.archive()
            feature.save(root)
        state.remove_active_feature(args.slug)
        state.finish_work(args.slug)
        state.save(root)
    print(f"Archived '{args.slug}'")
    return 0


def cmd_feature_depend(args, root: Path, config: Config) -> int:
    def add(feature: Feature):
        for dep in args.depends_on:
            feature.add_dependency(dep)

    feature, _ = mutate_feature(root, args.slug, add, config)
    print(f"'{feature.slug}' depends on: {', '.join(feature.dependencies)}")
    return 0


def cmd_feature_block(args, root: Path, config: Config) -> int:
    feature, _ = mutate_feature(root, args.slug, lambda f: f.add_blocker(args.reason), config)
    print(f"'{feature.slug}' blocked: {args.reason}")
    return 0


def cmd_feature_unblock(args, root: Path, config: Config) -> int:
    def clear(feature: Feature):
        if args.reason:
            feature.remove_blocker(args.reason)
        else:
            feature.blockers.clear()

    feature, _ = mutate_feature(root, args.slug, clear, config)
    with state_lock(root):
        state = State.load(root)
        if state.unblock(args.slug):
            state.save(root)
    remaining = f" (still blocked: {'; '.join(feature.blockers)})" if feature.blockers else ""
    print(f"Unblocked '{feature.slug}'{remaining}")
    return 0
