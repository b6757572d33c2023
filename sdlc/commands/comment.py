"""
sdlc comment - Add, resolve and list feature comments.
"""

from pathlib import Path

from sdlc.lib.config import Config
from sdlc.lib.errors import CommentNotFound
from sdlc.model.comment import CommentFlag, CommentTarget
from sdlc.model.feature import Feature
from sdlc.workflow.state_machine import mutate_feature


def cmd_comment_add(args, root: Path, config: Config) -> int:
    flag = CommentFlag(args.flag) if args.flag else None
    try:
        target = CommentTarget.parse(args.target)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1
    created = []

    def add(feature: Feature):
        created.append(feature.add_comment(args.body, flag=flag, target=target, author=args.author))

    mutate_feature(root, args.slug, add, config)
    print(f"Added {created[0]} on {target}")
    return 0


def cmd_comment_resolve(args, root: Path, config: Config) -> int:
    def resolve(feature: Feature):
        if not feature.resolve_comment(args.comment_id):
            raise CommentNotFound(args.comment_id)

    mutate_feature(root, args.slug, resolve, config)
    print(f"Resolved {args.comment_id}")
    return 0


def cmd_comment_list(args, root: Path, config: Config) -> int:
    feature = Feature.load(root, args.slug)
    if not feature.comments:
        print(f"No comments on '{feature.slug}'")
        return 0
    for c in feature.comments:
        flag = f"[{c.flag.value}] " if c.flag else ""
        author = f" - {c.author}" if c.author else ""
        print(f"  {c.id:<4} {flag}{c.target}: {c.body}{author}")
    return 0
