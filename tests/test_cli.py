"""End-to-end tests through the sdlc CLI entrypoint."""

import json

import pytest

from sdlc.cli import main
from sdlc.lib.paths import config_path, state_path, wave_plan_path
from sdlc.lib.types import Phase
from sdlc.model.feature import Feature
from sdlc.model.milestone import Milestone, MilestoneStatus
from sdlc.model.state import State


@pytest.fixture
def project(tmp_path):
    assert main(["--root", str(tmp_path), "init", "--name", "shop"]) == 0
    return tmp_path


def sdlc(root, *argv):
    return main(["--root", str(root), *argv])


def next_for(root, slug, capsys):
    capsys.readouterr()
    assert sdlc(root, "next", "--for", slug, "--json") == 0
    return json.loads(capsys.readouterr().out)


class TestInit:
    def test_creates_files(self, project):
        assert config_path(project).exists()
        assert State.load(project).project == "shop"

    def test_idempotent(self, project, capsys):
        before = state_path(project).read_text()
        assert sdlc(project, "init") == 0
        assert "Already initialized" in capsys.readouterr().out
        assert state_path(project).read_text() == before

    def test_commands_need_init(self, tmp_path, capsys):
        assert sdlc(tmp_path, "next") == 1
        assert "ERROR: sdlc not initialized" in capsys.readouterr().err


class TestLifecycle:
    def test_spec_approval_moves_to_design(self, project, capsys):
        assert sdlc(project, "feature", "create", "login", "--title", "Login") == 0
        assert next_for(project, "login", capsys)["action"] == "create_spec"

        assert sdlc(project, "artifact", "draft", "login", "spec") == 0
        assert next_for(project, "login", capsys)["action"] == "approve_spec"

        capsys.readouterr()
        assert sdlc(project, "artifact", "approve", "login", "spec", "--by", "alice") == 0
        assert "Phase advanced: login -> specified" in capsys.readouterr().out

        result = next_for(project, "login", capsys)
        assert result["current_phase"] == "specified"
        assert result["action"] == "create_design"

    def test_full_lifecycle(self, project, capsys):
        sdlc(project, "feature", "create", "login")
        for artifact in ("spec", "design", "tasks", "qa-plan"):
            assert sdlc(project, "artifact", "approve", "login", artifact) == 0
        assert Feature.load(project, "login").phase == Phase.PLANNED

        assert sdlc(project, "feature", "transition", "login", "ready") == 0
        assert sdlc(project, "feature", "transition", "login", "implementation") == 0
        assert sdlc(project, "task", "add", "login", "Form") == 0
        assert sdlc(project, "task", "add", "login", "Session", "--depends-on", "T1") == 0
        assert next_for(project, "login", capsys)["task_id"] == "T1"

        assert sdlc(project, "feature", "transition", "login", "review") == 1
        for task_id in ("T1", "T2"):
            assert sdlc(project, "task", "start", "login", task_id) == 0
            assert sdlc(project, "task", "complete", "login", task_id) == 0
        assert sdlc(project, "feature", "transition", "login", "review") == 0

        assert sdlc(project, "artifact", "approve", "login", "review") == 0
        assert sdlc(project, "artifact", "waive", "login", "audit", "--reason", "internal") == 0
        assert sdlc(project, "artifact", "pass", "login", "qa-results") == 0
        assert Feature.load(project, "login").phase == Phase.MERGE

        assert sdlc(project, "merge", "login") == 0
        assert Feature.load(project, "login").phase == Phase.RELEASED
        state = State.load(project)
        assert "login" not in state.active_features
        assert state.history[-1].outcome == "released"
        assert next_for(project, "login", capsys)["action"] == "done"

    def test_backward_transition_rejected(self, project, capsys):
        sdlc(project, "feature", "create", "login")
        sdlc(project, "artifact", "approve", "login", "spec")
        capsys.readouterr()
        assert sdlc(project, "feature", "transition", "login", "draft") == 1
        assert "only move forward" in capsys.readouterr().err

    def test_merge_requires_merge_phase(self, project, capsys):
        sdlc(project, "feature", "create", "login")
        assert sdlc(project, "merge", "login") == 1
        assert "not in merge" in capsys.readouterr().err


class TestFeatureCommands:
    def test_create_invalid_slug(self, project, capsys):
        assert sdlc(project, "feature", "create", "Bad_Slug") == 1
        assert "invalid slug" in capsys.readouterr().err

    def test_list_and_archive(self, project, capsys):
        sdlc(project, "feature", "create", "a")
        sdlc(project, "feature", "create", "b")
        assert sdlc(project, "feature", "archive", "a") == 0
        capsys.readouterr()

        sdlc(project, "feature", "list", "--json")
        assert [f["slug"] for f in json.loads(capsys.readouterr().out)] == ["b"]
        sdlc(project, "feature", "list", "--all", "--json")
        assert len(json.loads(capsys.readouterr().out)) == 2
        assert State.load(project).active_features == ["b"]

    def test_block_and_unblock(self, project, capsys):
        sdlc(project, "feature", "create", "a")
        assert sdlc(project, "feature", "block", "a", "legal review") == 0
        assert next_for(project, "a", capsys)["action"] == "unblock_dependency"
        assert sdlc(project, "feature", "unblock", "a") == 0
        assert next_for(project, "a", capsys)["action"] == "create_spec"

    def test_show_json(self, project, capsys):
        sdlc(project, "feature", "create", "a", "--description", "Alpha")
        capsys.readouterr()
        assert sdlc(project, "feature", "show", "a", "--json") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["description"] == "Alpha"
        assert data["phase"] == "draft"

    def test_show_missing(self, project, capsys):
        assert sdlc(project, "feature", "show", "ghost") == 1
        assert "feature 'ghost' not found" in capsys.readouterr().err


class TestCommentCommands:
    def test_blocker_comment_cycle(self, project, capsys):
        sdlc(project, "feature", "create", "a")
        assert sdlc(project, "comment", "add", "a", "Which IdP?", "--flag", "question",
                    "--target", "artifact:spec") == 0
        assert next_for(project, "a", capsys)["action"] == "wait_for_approval"

        assert sdlc(project, "comment", "resolve", "a", "C1") == 0
        assert next_for(project, "a", capsys)["action"] == "create_spec"
        assert sdlc(project, "comment", "add", "a", "noted") == 0
        assert Feature.load(project, "a").comments[0].id == "C2"

    def test_resolve_unknown(self, project, capsys):
        sdlc(project, "feature", "create", "a")
        assert sdlc(project, "comment", "resolve", "a", "C9") == 1
        assert "comment 'C9' not found" in capsys.readouterr().err

    def test_bad_target(self, project, capsys):
        sdlc(project, "feature", "create", "a")
        assert sdlc(project, "comment", "add", "a", "hi", "--target", "nowhere") == 1


class TestMilestoneCommands:
    def test_milestone_and_prepare(self, project, capsys):
        sdlc(project, "feature", "create", "a", "--description", "A")
        sdlc(project, "feature", "create", "b", "--description", "B")
        assert sdlc(project, "feature", "depend", "b", "a") == 0
        assert sdlc(project, "milestone", "create", "v1", "--title", "V1") == 0
        assert sdlc(project, "milestone", "add-feature", "v1", "b") == 0
        assert sdlc(project, "milestone", "add-feature", "v1", "a", "--position", "1") == 0
        assert Milestone.load(project, "v1").features == ["a", "b"]

        capsys.readouterr()
        assert sdlc(project, "project", "prepare", "--json") == 0
        result = json.loads(capsys.readouterr().out)
        assert result["milestone"] == "v1"
        assert [w["items"][0]["slug"] for w in result["waves"]] == ["a", "b"]
        assert result["waves"][1]["items"][0]["blocked_by"] == ["a"]
        assert wave_plan_path(project, "v1").exists()

        assert sdlc(project, "focus", "--json") == 0
        focus = json.loads(capsys.readouterr().out)
        assert focus["feature"] == "a"
        assert focus["milestone"]["position"] == 1

    def test_reorder(self, project, capsys):
        for slug in ("a", "b"):
            sdlc(project, "feature", "create", slug)
        sdlc(project, "milestone", "create", "v1")
        sdlc(project, "milestone", "add-feature", "v1", "a")
        sdlc(project, "milestone", "add-feature", "v1", "b")
        assert sdlc(project, "milestone", "reorder", "v1", "b", "a") == 0
        assert Milestone.load(project, "v1").features == ["b", "a"]
        assert sdlc(project, "milestone", "reorder", "v1", "b") == 1
        assert "missing features: a" in capsys.readouterr().err

    def test_remove_feature(self, project):
        sdlc(project, "feature", "create", "a")
        sdlc(project, "milestone", "create", "v1")
        sdlc(project, "milestone", "add-feature", "v1", "a")
        assert sdlc(project, "milestone", "remove-feature", "v1", "a") == 0
        assert sdlc(project, "milestone", "remove-feature", "v1", "a") == 1

    @pytest.mark.parametrize("position", ["0", "-1"])
    def test_add_feature_rejects_position_below_one(self, project, capsys, position):
        for slug in ("a", "b", "c"):
            sdlc(project, "feature", "create", slug)
        sdlc(project, "milestone", "create", "v1")
        sdlc(project, "milestone", "add-feature", "v1", "a")
        sdlc(project, "milestone", "add-feature", "v1", "b")
        capsys.readouterr()
        assert sdlc(project, "milestone", "add-feature", "v1", "c", "--position", position) == 1
        assert "ERROR: position must be 1 or greater" in capsys.readouterr().out
        assert Milestone.load(project, "v1").features == ["a", "b"]

    def test_move(self, project, capsys):
        sdlc(project, "milestone", "create", "v1")
        for slug in ("a", "b", "c"):
            sdlc(project, "feature", "create", slug)
            sdlc(project, "milestone", "add-feature", "v1", slug)
        assert sdlc(project, "milestone", "move", "v1", "c", "1") == 0
        assert Milestone.load(project, "v1").features == ["c", "a", "b"]
        assert sdlc(project, "milestone", "move", "v1", "c", "0") == 1
        assert sdlc(project, "milestone", "move", "v1", "ghost", "1") == 1

    @pytest.mark.parametrize("action, status", [
        ("complete", MilestoneStatus.COMPLETE),
        ("cancel", MilestoneStatus.CANCELLED),
    ])
    def test_close(self, project, action, status):
        sdlc(project, "milestone", "create", "v1")
        assert sdlc(project, "milestone", action, "v1") == 0
        assert Milestone.load(project, "v1").status == status

    def test_invalid_milestone_slug(self, project, capsys):
        assert sdlc(project, "milestone", "complete", "../v1") == 1
        assert "ERROR:" in capsys.readouterr().err


class TestConfigCommand:
    def test_validate_clean(self, project, capsys):
        assert sdlc(project, "config", "validate") == 0
        assert "Config OK" in capsys.readouterr().out

    def test_validate_strict(self, project):
        config_path(project).write_text(
            "gates:\n  deploy:\n    - name: x\n      gate_type: {type: shell, command: 'true'}\n"
        )
        assert sdlc(project, "config", "validate") == 0
        assert sdlc(project, "config", "validate", "--strict") == 1

    def test_invalid_config(self, project, capsys):
        config_path(project).write_text("phases:\n  enabled: [draft, shipping]\n")
        assert sdlc(project, "next") == 1
        assert "ERROR: [config]" in capsys.readouterr().err


class TestFeatureUpdate:
    def test_update_title_and_clear_description(self, project):
        sdlc(project, "feature", "create", "a", "--description", "Alpha")
        assert sdlc(project, "feature", "update", "a", "--title", "Alpha v2", "--description", "") == 0
        feature = Feature.load(project, "a")
        assert feature.title == "Alpha v2"
        assert feature.description is None

    def test_update_needs_a_field(self, project):
        sdlc(project, "feature", "create", "a")
        assert sdlc(project, "feature", "update", "a") == 1

    def test_blocked_transition_exit_code(self, project, capsys):
        sdlc(project, "feature", "create", "a")
        sdlc(project, "feature", "block", "a", "legal")
        capsys.readouterr()
        assert sdlc(project, "feature", "transition", "a", "specified") == 1
        assert "is blocked: legal" in capsys.readouterr().err
