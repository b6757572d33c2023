"""Tests for the milestone wave planner."""

import pytest

from sdlc.lib.config import Config
from sdlc.lib.errors import MilestoneNotFound
from sdlc.lib.io import read_yaml
from sdlc.lib.paths import wave_plan_path
from sdlc.lib.types import ActionType, ArtifactType, Phase
from sdlc.model.comment import CommentFlag
from sdlc.model.feature import Feature
from sdlc.model.milestone import Milestone
from sdlc.model.state import State
from sdlc.workflow.prepare import (
    GapSeverity, ProjectPhaseKind, WaveItem, prepare, project_phase, wave_label,
    write_wave_plan,
)


@pytest.fixture
def milestone(root):
    def _make(slug, features):
        m = Milestone.create(root, slug, slug.upper())
        for feature in features:
            m.add_feature(feature)
        m.save(root)
        state = State.load(root)
        state.add_milestone(slug)
        state.save(root)
        return m
    return _make


def set_phase(root, slug, phase):
    feature = Feature.load(root, slug)
    feature.phase = phase
    feature.save(root)


def run_prepare(root, slug="v1"):
    return prepare(root, slug, state=State.load(root), config=Config())


class TestWaves:
    def test_dependency_goes_to_later_wave(self, root, make_feature, milestone):
        make_feature("a", description="A")
        make_feature("b", description="B", dependencies=["a"])
        milestone("v1", ["a", "b"])

        result = run_prepare(root)
        assert [[i.slug for i in w.items] for w in result.waves] == [["a"], ["b"]]
        b = result.waves[1].items[0]
        assert b.blocked_by == ["a"]
        assert not b.needs_worktree
        assert result.next_commands == ["sdlc run a"]
        assert result.gaps == []

    def test_independent_features_share_a_wave(self, root, make_feature, milestone):
        for slug in ("c", "a", "b"):
            make_feature(slug, description=slug)
        milestone("v1", ["c", "a", "b"])

        result = run_prepare(root)
        assert len(result.waves) == 1
        wave = result.waves[0]
        assert [i.slug for i in wave.items] == ["a", "b", "c"]
        assert all(i.needs_worktree for i in wave.items)
        assert wave.needs_worktrees
        assert wave.label == "Planning"
        assert result.next_commands == ["sdlc run a", "sdlc run b", "sdlc run c"]

    def test_released_dependency_is_wave_zero(self, root, make_feature, milestone):
        make_feature("a", description="A")
        make_feature("b", description="B", dependencies=["a"])
        set_phase(root, "a", Phase.RELEASED)
        milestone("v1", ["a", "b"])

        result = run_prepare(root)
        assert result.wave_of("a") is None
        assert result.wave_of("b") == 1
        assert result.waves[0].items[0].blocked_by == []
        assert result.progress.released == 1

    def test_dependency_law(self, root, make_feature, milestone):
        graph = {
            "a": [], "b": ["a"], "c": ["a"], "d": ["b", "c"], "e": [], "f": ["e", "d"],
        }
        for slug, deps in graph.items():
            make_feature(slug, description=slug, dependencies=deps)
        milestone("v1", list(graph))

        result = run_prepare(root)
        for slug, deps in graph.items():
            wave = result.wave_of(slug)
            assert wave is not None
            for dep in deps:
                assert result.wave_of(dep) < wave
        assert result.wave_of("f") == 4


class TestBlocking:
    def test_unreleased_dependency_outside_milestone(self, root, make_feature, milestone):
        make_feature("outside", description="x")
        make_feature("a", description="A", dependencies=["outside"])
        milestone("v1", ["a"])

        result = run_prepare(root)
        assert result.waves == []
        assert [b.slug for b in result.blocked] == ["a"]
        assert result.gaps[0].severity == GapSeverity.BLOCKER
        assert "outside the milestone" in result.gaps[0].message

    def test_released_dependency_outside_milestone(self, root, make_feature, milestone):
        make_feature("outside", description="x")
        set_phase(root, "outside", Phase.RELEASED)
        make_feature("a", description="A", dependencies=["outside"])
        milestone("v1", ["a"])
        assert run_prepare(root).wave_of("a") == 1

    def test_missing_dependency(self, root, make_feature, milestone):
        make_feature("a", description="A", dependencies=["ghost"])
        milestone("v1", ["a"])

        result = run_prepare(root)
        assert result.blocked[0].reason == "Missing prerequisite 'ghost'"
        assert "'ghost' which does not exist" in result.gaps[0].message

    def test_human_gate_blocks_dependents(self, root, make_feature, milestone):
        make_feature("a", description="A")
        make_feature("b", description="B", dependencies=["a"])
        make_feature("c", description="C", dependencies=["b"])
        make_feature("d", description="D")
        feature = Feature.load(root, "a")
        feature.add_comment("which vendor?", flag=CommentFlag.QUESTION)
        feature.save(root)
        milestone("v1", ["a", "b", "c", "d"])

        result = run_prepare(root)
        blocked = {b.slug: b.reason for b in result.blocked}
        assert set(blocked) == {"a", "b", "c"}
        assert blocked["c"] == "Depends on blocked feature 'b'"
        assert [i.slug for w in result.waves for i in w.items] == ["d"]
        info = [g for g in result.gaps if g.severity == GapSeverity.INFO]
        assert info[0].feature == "a"
        assert result.progress.blocked == 3

    def test_cycle(self, root, make_feature, milestone):
        make_feature("a", description="A", dependencies=["b"])
        make_feature("b", description="B", dependencies=["a"])
        milestone("v1", ["a", "b"])

        result = run_prepare(root)
        assert result.waves == []
        assert result.gaps[0].message == "Dependency cycle detected among features: a, b"
        assert result.next_commands == []


class TestGaps:
    def test_missing_member_and_description(self, root, make_feature, milestone):
        make_feature("a")
        milestone("v1", ["a", "ghost"])

        result = run_prepare(root)
        assert result.gaps[0].severity == GapSeverity.BLOCKER
        assert result.gaps[0].feature == "ghost"
        assert any(g.message == "Feature 'a' has no description" for g in result.gaps)

    def test_rework_warning(self, root, make_feature, milestone):
        make_feature("a", description="A")
        feature = Feature.load(root, "a")
        feature.artifact(ArtifactType.SPEC).reject("unclear")
        feature.save(root)
        milestone("v1", ["a"])

        result = run_prepare(root)
        assert any("needing rework: spec" in g.message for g in result.gaps)


class TestProjectPhase:
    def test_idle(self, root):
        assert project_phase(root, State.load(root)).kind == ProjectPhaseKind.IDLE

    def test_planning_then_executing_then_verifying(self, root, make_feature, milestone):
        make_feature("a")
        make_feature("b")
        milestone("v1", ["a", "b"])
        assert project_phase(root, State.load(root)).kind == ProjectPhaseKind.PLANNING

        set_phase(root, "a", Phase.IMPLEMENTATION)
        phase = project_phase(root, State.load(root))
        assert phase.kind == ProjectPhaseKind.EXECUTING
        assert str(phase) == "executing (v1)"

        set_phase(root, "a", Phase.RELEASED)
        set_phase(root, "b", Phase.RELEASED)
        assert project_phase(root, State.load(root)).kind == ProjectPhaseKind.VERIFYING

    def test_inactive_milestone_skipped(self, root, make_feature, milestone):
        make_feature("a")
        m = milestone("v1", ["a"])
        m.complete()
        m.save(root)
        assert project_phase(root, State.load(root)).kind == ProjectPhaseKind.IDLE


class TestPrepareEntry:
    def test_idle_project_empty_result(self, root):
        result = prepare(root, state=State.load(root), config=Config())
        assert result.milestone is None
        assert result.waves == []

    def test_auto_detects_milestone(self, root, make_feature, milestone):
        make_feature("a", description="A")
        milestone("v1", ["a"])
        assert prepare(root).milestone == "v1"

    def test_unknown_milestone(self, root):
        with pytest.raises(MilestoneNotFound):
            prepare(root, "nope")

    def test_write_wave_plan(self, root, make_feature, milestone):
        make_feature("a", description="A")
        milestone("v1", ["a"])
        path = write_wave_plan(root, run_prepare(root))
        assert path == wave_plan_path(root, "v1")
        data = read_yaml(path)
        assert data["waves"][0]["items"][0]["slug"] == "a"
        assert "generated_at" in data

    def test_no_plan_without_waves(self, root, make_feature, milestone):
        make_feature("a", description="A", dependencies=["ghost"])
        milestone("v1", ["a"])
        assert write_wave_plan(root, run_prepare(root)) is None


class TestWaveLabel:
    def item(self, phase):
        return WaveItem(slug="x", title="x", phase=phase, action=ActionType.CREATE_SPEC)

    def test_labels(self):
        assert wave_label([]) == "Empty"
        assert wave_label([self.item(Phase.DRAFT), self.item(Phase.READY)]) == "Planning"
        assert wave_label([self.item(Phase.IMPLEMENTATION)]) == "Implementation"
        assert wave_label([self.item(Phase.QA), self.item(Phase.MERGE)]) == "Review"
        assert wave_label([self.item(Phase.DRAFT), self.item(Phase.REVIEW)]) == "Mixed"
