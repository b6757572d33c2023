"""Ordered classification rules.

Each Rule pairs a predicate over an EvalContext with builders for the
directive fields. Rules are evaluated in list order and the first match
wins; the classifier adds an unconditional Done fallback.

Precedence:
1. archived, explicit blockers, blocking comments, state-level blocks
2. per-phase artifact rules: missing, then awaiting approval, then rejected,
   then satisfied (which carries the next phase as transition_to)
3. task implementation
4. merge and released
"""

from dataclasses import dataclass
from typing import Callable

from sdlc.lib import paths
from sdlc.lib.config import Config
from sdlc.lib.types import ActionType, ArtifactStatus, ArtifactType, Phase, TaskStatus
from sdlc.model.feature import Feature
from sdlc.model.state import State
from sdlc.model.task import next_task


@dataclass(frozen=True)
class EvalContext:
    """Read-only inputs to classification."""
    feature: Feature
    state: State
    config: Config


Builder = Callable[[EvalContext], str]


@dataclass(frozen=True)
class Rule:
    id: str
    condition: Callable[[EvalContext], bool]
    action: ActionType
    message: Builder
    next_command: Builder
    output_path: Builder | None = None
    transition_to: Phase | None = None
    task_id: Callable[[EvalContext], str | None] | None = None


AWAITING_APPROVAL = (ArtifactStatus.DRAFT, ArtifactStatus.NEEDS_FIX)
NEEDS_REWRITE = (ArtifactStatus.REJECTED, ArtifactStatus.FAILED)


def _status(ctx: EvalContext, artifact_type: ArtifactType) -> ArtifactStatus:
    return ctx.feature.artifact(artifact_type).status


def _satisfied(ctx: EvalContext, artifact_type: ArtifactType) -> bool:
    return ctx.feature.artifact(artifact_type).is_satisfied()


def _in(*phases: Phase) -> Callable[[EvalContext], bool]:
    return lambda ctx: ctx.feature.phase in phases


def _artifact_path(artifact_type: ArtifactType) -> Builder:
    return lambda ctx: paths.artifact_rel_path(ctx.feature.slug, artifact_type.filename)


def _msg(template: str) -> Builder:
    return lambda ctx: template.format(slug=ctx.feature.slug)


_cmd = _msg


def _with_description(template: str) -> Builder:
    def build(ctx: EvalContext) -> str:
        msg = template.format(slug=ctx.feature.slug)
        if ctx.feature.description:
            msg += f"\nDescription: {ctx.feature.description}"
        return msg
    return build


def _no_command(ctx: EvalContext) -> str:
    return ""


def _blocking_comments_message(ctx: EvalContext) -> str:
    comments = ctx.feature.blocking_comments()
    details = "; ".join(f"[{c.id}] {c.body}" for c in comments)
    return (
        f"Feature '{ctx.feature.slug}' has {len(comments)} unresolved blocker "
        f"comment(s): {details}"
    )


def _open_tasks(ctx: EvalContext) -> list:
    return [t for t in ctx.feature.tasks if t.status != TaskStatus.COMPLETED]


def _next_task_id(ctx: EvalContext) -> str | None:
    task = next_task(ctx.feature.tasks)
    return task.id if task else None


def _stuck_tasks_message(ctx: EvalContext) -> str:
    details = ", ".join(
        f"{t.id} ({t.blocker})" if t.blocker else t.id
        for t in _open_tasks(ctx)
    )
    return f"No runnable task for '{ctx.feature.slug}'. Blocked tasks: {details}"


def _artifact_rules(
    phases: tuple[Phase, ...],
    artifact_type: ArtifactType,
    create: ActionType,
    approve: ActionType,
    create_command: str,
    noun: str,
    prerequisites: tuple[ArtifactType, ...] = (),
    rewrite: ActionType | None = None,
    rewrite_command: str | None = None,
) -> list[Rule]:
    """Missing / awaiting approval / rejected rules for one artifact."""
    in_phase = _in(*phases)

    def ready(ctx):
        return in_phase(ctx) and all(_satisfied(ctx, p) for p in prerequisites)

    return [
        Rule(
            id=f"needs_{artifact_type.value}",
            condition=lambda ctx: ready(ctx) and _status(ctx, artifact_type) == ArtifactStatus.MISSING,
            action=create,
            message=_with_description(f"No {noun} exists. Write the {noun} for '{{slug}}'."),
            next_command=_cmd(create_command),
            output_path=_artifact_path(artifact_type),
        ),
        Rule(
            id=f"{artifact_type.value}_needs_approval",
            condition=lambda ctx: ready(ctx) and _status(ctx, artifact_type) in AWAITING_APPROVAL,
            action=approve,
            message=_msg(f"The {noun} for '{{slug}}' is ready for review."),
            next_command=_cmd(f"sdlc artifact approve {{slug}} {artifact_type.value}"),
        ),
        Rule(
            id=f"{artifact_type.value}_rejected",
            condition=lambda ctx: ready(ctx) and _status(ctx, artifact_type) in NEEDS_REWRITE,
            action=rewrite or create,
            message=_msg(f"The {noun} for '{{slug}}' was rejected. Rework it."),
            next_command=_cmd(rewrite_command or create_command),
            output_path=None if rewrite else _artifact_path(artifact_type),
        ),
    ]


PLANNING_ARTIFACTS = (
    ArtifactType.SPEC, ArtifactType.DESIGN, ArtifactType.TASKS, ArtifactType.QA_PLAN,
)


def default_rules() -> list[Rule]:
    """The priority-ordered rule list."""
    rules = [
        Rule(
            id="archived",
            condition=lambda ctx: ctx.feature.archived,
            action=ActionType.DONE,
            message=_msg("Feature '{slug}' is archived."),
            next_command=_no_command,
        ),
        Rule(
            id="blocked",
            condition=lambda ctx: ctx.feature.is_blocked(),
            action=ActionType.UNBLOCK_DEPENDENCY,
            message=lambda ctx: (
                f"Feature '{ctx.feature.slug}' is blocked: {', '.join(ctx.feature.blockers)}"
            ),
            next_command=_no_command,
        ),
        Rule(
            id="blocker_comment",
            condition=lambda ctx: bool(ctx.feature.blocking_comments()),
            action=ActionType.WAIT_FOR_APPROVAL,
            message=_blocking_comments_message,
            next_command=_cmd("sdlc comment list {slug}"),
        ),
        Rule(
            id="state_blocked",
            condition=lambda ctx: ctx.state.blocked_reason(ctx.feature.slug) is not None,
            action=ActionType.UNBLOCK_DEPENDENCY,
            message=lambda ctx: (
                f"Feature '{ctx.feature.slug}' is blocked: "
                f"{ctx.state.blocked_reason(ctx.feature.slug)}"
            ),
            next_command=_no_command,
        ),
    ]

    # Draft, and specified if the spec was reopened
    rules += _artifact_rules(
        (Phase.DRAFT, Phase.SPECIFIED), ArtifactType.SPEC,
        ActionType.CREATE_SPEC, ActionType.APPROVE_SPEC,
        "/spec-feature {slug}", "spec",
    )
    rules.append(Rule(
        id="spec_approved",
        condition=lambda ctx: _in(Phase.DRAFT)(ctx) and _satisfied(ctx, ArtifactType.SPEC),
        action=ActionType.APPROVE_SPEC,
        message=_msg("Spec approved. Transitioning '{slug}' to specified."),
        next_command=_cmd("sdlc feature transition {slug} specified"),
        transition_to=Phase.SPECIFIED,
    ))

    # Specified: design, then tasks, then QA plan
    rules += _artifact_rules(
        (Phase.SPECIFIED,), ArtifactType.DESIGN,
        ActionType.CREATE_DESIGN, ActionType.APPROVE_DESIGN,
        "/design-feature {slug}", "design",
        prerequisites=(ArtifactType.SPEC,),
    )
    rules += _artifact_rules(
        (Phase.SPECIFIED,), ArtifactType.TASKS,
        ActionType.CREATE_TASKS, ActionType.APPROVE_TASKS,
        "/tasks-feature {slug}", "task breakdown",
        prerequisites=(ArtifactType.SPEC, ArtifactType.DESIGN),
    )
    rules += _artifact_rules(
        (Phase.SPECIFIED,), ArtifactType.QA_PLAN,
        ActionType.CREATE_QA_PLAN, ActionType.APPROVE_QA_PLAN,
        "/qa-plan {slug}", "QA plan",
        prerequisites=(ArtifactType.SPEC, ArtifactType.DESIGN, ArtifactType.TASKS),
    )
    rules.append(Rule(
        id="ready_to_plan",
        condition=lambda ctx: _in(Phase.SPECIFIED)(ctx) and all(
            _satisfied(ctx, a) for a in PLANNING_ARTIFACTS
        ),
        action=ActionType.WAIT_FOR_APPROVAL,
        message=_msg("All planning artifacts approved. Transitioning '{slug}' to planned."),
        next_command=_cmd("sdlc feature transition {slug} planned"),
        transition_to=Phase.PLANNED,
    ))

    rules += [
        Rule(
            id="planned_to_ready",
            condition=_in(Phase.PLANNED),
            action=ActionType.IMPLEMENT_TASK,
            message=_msg("Feature '{slug}' is planned. Marking ready for implementation."),
            next_command=_cmd("sdlc feature transition {slug} ready"),
            transition_to=Phase.READY,
        ),
        Rule(
            id="ready_to_implement",
            condition=_in(Phase.READY),
            action=ActionType.IMPLEMENT_TASK,
            message=_msg("Feature '{slug}' is ready. Start implementation."),
            next_command=_cmd("sdlc feature transition {slug} implementation"),
            transition_to=Phase.IMPLEMENTATION,
            task_id=_next_task_id,
        ),
        Rule(
            id="implement_task",
            condition=lambda ctx: _in(Phase.IMPLEMENTATION)(ctx) and next_task(ctx.feature.tasks) is not None,
            action=ActionType.IMPLEMENT_TASK,
            message=_msg("Implement the next task for '{slug}'."),
            next_command=_cmd("/implement {slug}"),
            task_id=_next_task_id,
        ),
        Rule(
            id="tasks_stuck",
            condition=lambda ctx: _in(Phase.IMPLEMENTATION)(ctx) and bool(_open_tasks(ctx)),
            action=ActionType.UNBLOCK_DEPENDENCY,
            message=_stuck_tasks_message,
            next_command=_cmd("sdlc task list {slug}"),
        ),
        Rule(
            id="tasks_done",
            condition=_in(Phase.IMPLEMENTATION),
            action=ActionType.CREATE_REVIEW,
            message=_msg("All tasks complete. Write the code review for '{slug}'."),
            next_command=_cmd("/review-feature {slug}"),
            output_path=_artifact_path(ArtifactType.REVIEW),
            transition_to=Phase.REVIEW,
        ),
    ]

    rules += _artifact_rules(
        (Phase.REVIEW,), ArtifactType.REVIEW,
        ActionType.CREATE_REVIEW, ActionType.APPROVE_REVIEW,
        "/review-feature {slug}", "code review",
        rewrite=ActionType.FIX_REVIEW_ISSUES, rewrite_command="/fix-review {slug}",
    )
    rules.append(Rule(
        id="review_approved",
        condition=lambda ctx: _in(Phase.REVIEW)(ctx) and _satisfied(ctx, ArtifactType.REVIEW),
        action=ActionType.CREATE_AUDIT,
        message=_msg("Review approved. Transitioning '{slug}' to audit."),
        next_command=_cmd("sdlc feature transition {slug} audit"),
        transition_to=Phase.AUDIT,
    ))

    rules += _artifact_rules(
        (Phase.AUDIT,), ArtifactType.AUDIT,
        ActionType.CREATE_AUDIT, ActionType.APPROVE_AUDIT,
        "/audit-feature {slug}", "security audit",
        rewrite=ActionType.FIX_REVIEW_ISSUES, rewrite_command="/fix-audit {slug}",
    )
    rules.append(Rule(
        id="audit_approved",
        condition=lambda ctx: _in(Phase.AUDIT)(ctx) and _satisfied(ctx, ArtifactType.AUDIT),
        action=ActionType.RUN_QA,
        message=_msg("Audit approved. Transitioning '{slug}' to QA."),
        next_command=_cmd("sdlc feature transition {slug} qa"),
        transition_to=Phase.QA,
    ))

    rules += _artifact_rules(
        (Phase.QA,), ArtifactType.QA_RESULTS,
        ActionType.RUN_QA, ActionType.APPROVE_MERGE,
        "/run-qa {slug}", "QA results",
        rewrite=ActionType.FIX_REVIEW_ISSUES, rewrite_command="/fix-qa {slug}",
    )
    rules += [
        Rule(
            id="qa_approved",
            condition=lambda ctx: _in(Phase.QA)(ctx) and _satisfied(ctx, ArtifactType.QA_RESULTS),
            action=ActionType.MERGE,
            message=_msg("QA passed. '{slug}' is ready to merge."),
            next_command=_cmd("sdlc feature transition {slug} merge"),
            transition_to=Phase.MERGE,
        ),
        Rule(
            id="do_merge",
            condition=_in(Phase.MERGE),
            action=ActionType.MERGE,
            message=_msg("Merge '{slug}' to main."),
            next_command=_cmd("sdlc merge {slug}"),
            transition_to=Phase.RELEASED,
        ),
        Rule(
            id="released",
            condition=_in(Phase.RELEASED),
            action=ActionType.DONE,
            message=_msg("Feature '{slug}' is released."),
            next_command=_no_command,
        ),
    ]
    return rules
