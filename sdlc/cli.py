#!/usr/bin/env python3
"""sdlc CLI entrypoint."""

import argparse
import logging
import sys
from pathlib import Path

from sdlc.commands import artifact as cmd_artifact_module
from sdlc.commands import comment as cmd_comment_module
from sdlc.commands import config as cmd_config_module
from sdlc.commands import feature as cmd_feature_module
from sdlc.commands import focus as cmd_focus_module
from sdlc.commands import init as cmd_init_module
from sdlc.commands import merge as cmd_merge_module
from sdlc.commands import milestone as cmd_milestone_module
from sdlc.commands import next as cmd_next_module
from sdlc.commands import prepare as cmd_prepare_module
from sdlc.commands import run as cmd_run_module
from sdlc.commands import task as cmd_task_module
from sdlc.lib.config import load_config
from sdlc.lib.errors import SdlcError
from sdlc.lib.locking import LockTimeout
from sdlc.lib.types import PHASE_ORDER, ArtifactType

logger = logging.getLogger(__name__)


def get_root(args) -> Path:
    """Project root: --root, or the current directory."""
    return Path(args.root) if args.root else Path.cwd()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='sdlc', description='Feature lifecycle engine')
    parser.add_argument('--root', '-C', help='Project root (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # sdlc init
    p_init = subparsers.add_parser('init', help='Initialize .sdlc in the project root')
    p_init.add_argument('--name', help='Project name (default: directory name)')
    p_init.set_defaults(func=cmd_init_module.cmd_init)

    # sdlc next
    p_next = subparsers.add_parser('next', help='Show next action for active features')
    p_next.add_argument('--for', dest='for_slug', metavar='SLUG', help='Only this feature')
    p_next.add_argument('--json', action='store_true', help='JSON output')
    p_next.set_defaults(func=cmd_next_module.cmd_next)

    # sdlc focus
    p_focus = subparsers.add_parser('focus', help='Single highest-priority directive')
    p_focus.add_argument('--json', action='store_true', help='JSON output')
    p_focus.set_defaults(func=cmd_focus_module.cmd_focus)

    # sdlc feature
    p_feature = subparsers.add_parser('feature', help='Manage features')
    feature_sub = p_feature.add_subparsers(dest='feature_cmd', required=True)

    p_fc = feature_sub.add_parser('create', help='Create a feature')
    p_fc.add_argument('slug', help='Feature slug')
    p_fc.add_argument('--title', '-t', help='Title (default: slug)')
    p_fc.add_argument('--description', '-d', help='Description')
    p_fc.set_defaults(func=cmd_feature_module.cmd_feature_create)

    p_fl = feature_sub.add_parser('list', help='List features')
    p_fl.add_argument('--all', '-a', action='store_true', help='Include archived')
    p_fl.add_argument('--json', action='store_true', help='JSON output')
    p_fl.set_defaults(func=cmd_feature_module.cmd_feature_list)

    p_fs = feature_sub.add_parser('show', help='Show feature details')
    p_fs.add_argument('slug', help='Feature slug')
    p_fs.add_argument('--json', action='store_true', help='JSON output')
    p_fs.set_defaults(func=cmd_feature_module.cmd_feature_show)

    p_fup = feature_sub.add_parser('update', help='Change title or description')
    p_fup.add_argument('slug', help='Feature slug')
    p_fup.add_argument('--title', '-t', help='New title')
    p_fup.add_argument('--description', '-d', help='New description ("" clears it)')
    p_fup.set_defaults(func=cmd_feature_module.cmd_feature_update)

    p_ft = feature_sub.add_parser('transition',help='Move a feature to a later phase')
    p_ft.add_argument('slug', help='Feature slug')
    p_ft.add_argument('phase', choices=[p.value for p in PHASE_ORDER], help='Target phase')
    p_ft.set_defaults(func=cmd_feature_module.cmd_feature_transition)

    p_fa = feature_sub.add_parser('archive', help='Archive a feature')
    p_fa.add_argument('slug', help='Feature slug')
    p_fa.set_defaults(func=cmd_feature_module.cmd_feature_archive)

    p_fd = feature_sub.add_parser('depend', help='Declare dependencies on other features')
    p_fd.add_argument('slug', help='Feature slug')
    p_fd.add_argument('depends_on', nargs='+', help='Feature slugs this one depends on')
    p_fd.set_defaults(func=cmd_feature_module.cmd_feature_depend)

    p_fb = feature_sub.add_parser('block', help='Add a free-text blocker')
    p_fb.add_argument('slug', help='Feature slug')
    p_fb.add_argument('reason', help='Why the feature is blocked')
    p_fb.set_defaults(func=cmd_feature_module.cmd_feature_block)

    p_fu = feature_sub.add_parser('unblock', help='Remove blockers')
    p_fu.add_argument('slug', help='Feature slug')
    p_fu.add_argument('reason', nargs='?', help='Blocker to remove (default: all)')
    p_fu.set_defaults(func=cmd_feature_module.cmd_feature_unblock)

    # sdlc artifact <action> <slug> <type>
    p_artifact = subparsers.add_parser('artifact', help='Record artifact status')
    p_artifact.add_argument('artifact_action', choices=list(cmd_artifact_module.ARTIFACT_ACTIONS))
    p_artifact.add_argument('slug', help='Feature slug')
    p_artifact.add_argument('artifact', help=f"Artifact type ({', '.join(t.value for t in ArtifactType)})")
    p_artifact.add_argument('--by', help='Approver (approve)')
    p_artifact.add_argument('--reason', '-r', help='Reason (reject, waive)')
    p_artifact.set_defaults(func=cmd_artifact_module.cmd_artifact)

    # sdlc task
    p_task = subparsers.add_parser('task', help='Manage feature tasks')
    task_sub = p_task.add_subparsers(dest='task_cmd', required=True)

    p_ta = task_sub.add_parser('add', help='Add a task')
    p_ta.add_argument('slug', help='Feature slug')
    p_ta.add_argument('title', help='Task title')
    p_ta.add_argument('--depends-on', nargs='*', default=[], help='Task ids this task waits for')
    p_ta.set_defaults(func=cmd_task_module.cmd_task_add)

    for task_action in ('start', 'complete', 'block'):
        p_tx = task_sub.add_parser(task_action, help=f'{task_action.capitalize()} a task')
        p_tx.add_argument('slug', help='Feature slug')
        p_tx.add_argument('task_id', help='Task id (e.g., T1)')
        if task_action == 'block':
            p_tx.add_argument('reason', help='Why the task is blocked')
        p_tx.set_defaults(func=cmd_task_module.cmd_task_update, task_action=task_action)

    p_tl = task_sub.add_parser('list', help='List tasks')
    p_tl.add_argument('slug', help='Feature slug')
    p_tl.add_argument('--json', action='store_true', help='JSON output')
    p_tl.set_defaults(func=cmd_task_module.cmd_task_list)

    # sdlc comment
    p_comment = subparsers.add_parser('comment', help='Feature comments')
    comment_sub = p_comment.add_subparsers(dest='comment_cmd', required=True)

    p_ca = comment_sub.add_parser('add', help='Add a comment')
    p_ca.add_argument('slug', help='Feature slug')
    p_ca.add_argument('body', help='Comment text')
    p_ca.add_argument('--flag', choices=['blocker', 'question', 'decision', 'fyi'])
    p_ca.add_argument('--target', default='feature', help="feature, task:T1 or artifact:spec")
    p_ca.add_argument('--author', help='Comment author')
    p_ca.set_defaults(func=cmd_comment_module.cmd_comment_add)

    p_cr = comment_sub.add_parser('resolve', help='Resolve (remove) a comment')
    p_cr.add_argument('slug', help='Feature slug')
    p_cr.add_argument('comment_id', help='Comment id (e.g., C1)')
    p_cr.set_defaults(func=cmd_comment_module.cmd_comment_resolve)

    p_cl = comment_sub.add_parser('list', help='List comments')
    p_cl.add_argument('slug', help='Feature slug')
    p_cl.set_defaults(func=cmd_comment_module.cmd_comment_list)

    # sdlc milestone
    p_milestone = subparsers.add_parser('milestone', help='Manage milestones')
    milestone_sub = p_milestone.add_subparsers(dest='milestone_cmd', required=True)

    p_mc = milestone_sub.add_parser('create', help='Create a milestone')
    p_mc.add_argument('slug', help='Milestone slug')
    p_mc.add_argument('--title', '-t', help='Title (default: slug)')
    p_mc.add_argument('--description', '-d', help='Description')
    p_mc.set_defaults(func=cmd_milestone_module.cmd_milestone_create)

    p_maf = milestone_sub.add_parser('add-feature', help='Add a feature to a milestone')
    p_maf.add_argument('slug', help='Milestone slug')
    p_maf.add_argument('feature', help='Feature slug')
    p_maf.add_argument('--position', type=int, help='1-based position (default: end)')
    p_maf.set_defaults(func=cmd_milestone_module.cmd_milestone_add_feature)

    p_mrf = milestone_sub.add_parser('remove-feature', help='Remove a feature from a milestone')
    p_mrf.add_argument('slug', help='Milestone slug')
    p_mrf.add_argument('feature', help='Feature slug')
    p_mrf.set_defaults(func=cmd_milestone_module.cmd_milestone_remove_feature)

    p_mro = milestone_sub.add_parser('reorder', help='Set the feature order')
    p_mro.add_argument('slug', help='Milestone slug')
    p_mro.add_argument('features', nargs='+', help='All member slugs in the new order')
    p_mro.set_defaults(func=cmd_milestone_module.cmd_milestone_reorder)

    p_mmv = milestone_sub.add_parser('move', help='Move one feature to a new position')
    p_mmv.add_argument('slug', help='Milestone slug')
    p_mmv.add_argument('feature', help='Feature slug')
    p_mmv.add_argument('position', type=int, help='1-based position')
    p_mmv.set_defaults(func=cmd_milestone_module.cmd_milestone_move)

    for close_action in ('complete', 'cancel'):
        p_mx = milestone_sub.add_parser(close_action, help=f'Mark a milestone {close_action}')
        p_mx.add_argument('slug', help='Milestone slug')
        p_mx.set_defaults(func=cmd_milestone_module.cmd_milestone_close, close_action=close_action)

    p_ml = milestone_sub.add_parser('list', help='List milestones')
    p_ml.set_defaults(func=cmd_milestone_module.cmd_milestone_list)

    # sdlc project prepare
    p_project = subparsers.add_parser('project', help='Project-level planning')
    project_sub = p_project.add_subparsers(dest='project_cmd', required=True)
    p_prepare = project_sub.add_parser('prepare', help='Plan milestone waves')
    p_prepare.add_argument('--milestone', '-m', help='Milestone slug (default: auto-detect)')
    p_prepare.add_argument('--json', action='store_true', help='JSON output')
    p_prepare.set_defaults(func=cmd_prepare_module.cmd_prepare)

    # sdlc run
    p_run = subparsers.add_parser('run', help='Run the next action for a feature, then its gates')
    p_run.add_argument('slug', help='Feature slug')
    p_run.add_argument('--dry-run', action='store_true', help='Print the agent command and gates only')
    p_run.set_defaults(func=cmd_run_module.cmd_run)

    # sdlc merge
    p_merge = subparsers.add_parser('merge', help='Release a feature that is in merge')
    p_merge.add_argument('slug', help='Feature slug')
    p_merge.set_defaults(func=cmd_merge_module.cmd_merge)

    # sdlc config validate
    p_config = subparsers.add_parser('config', help='Configuration')
    config_sub = p_config.add_subparsers(dest='config_cmd', required=True)
    p_cv = config_sub.add_parser('validate', help='Report config warnings')
    p_cv.add_argument('--strict', action='store_true', help='Exit 1 on warnings')
    p_cv.set_defaults(func=cmd_config_module.cmd_config_validate)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    root = get_root(args)
    try:
        config = load_config(root)
        return args.func(args, root, config)
    except SdlcError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except LockTimeout as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
