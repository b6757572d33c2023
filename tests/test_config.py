"""Tests for sdlc.lib.config and schema validation."""

import pytest
import yaml

from sdlc.lib.config import (
    DEFAULT_AGENT_COMMAND, Config, load_config, parse_config, save_config,
)
from sdlc.lib.paths import config_path
from sdlc.lib.types import ActionType, ArtifactType, Phase
from sdlc.lib.validate import ValidationError
from sdlc.workflow.gates import HumanGate, ShellGate, StepBackGate


def write_config(root, data):
    path = config_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data))


class TestLoadConfig:
    def test_defaults_when_missing(self, tmp_path):
        config = load_config(tmp_path)
        assert config.phases.enabled == Phase.all()
        assert config.phases.exit_requirements(Phase.DRAFT) == [ArtifactType.SPEC]
        assert config.phases.exit_requirements(Phase.IMPLEMENTATION) == []
        assert config.gates == {}
        assert config.agents.default == DEFAULT_AGENT_COMMAND

    def test_full_config(self, tmp_path):
        write_config(tmp_path, {
            "version": 1,
            "project": {"name": "shop"},
            "phases": {
                "enabled": ["draft", "specified", "implementation", "review", "released"],
                "exit_artifacts": {"draft": ["spec"], "review": ["review"]},
            },
            "gates": {
                "implement_task": [
                    {"name": "tests", "gate_type": {"type": "shell", "command": "make test"},
                     "max_retries": 2, "timeout_seconds": 300},
                    {"name": "lookover", "gate_type": {"type": "human", "prompt": "Check it"}},
                ],
                "create_review": [
                    {"name": "reflect", "gate_type": {"type": "step_back", "questions": ["Why?"]}},
                ],
            },
            "agents": {"default": "agent run {prompt}", "actions": {"approve_spec": "human"}},
        })
        config = load_config(tmp_path)
        assert config.project.name == "shop"
        assert not config.phases.is_enabled(Phase.AUDIT)
        assert config.phases.exit_requirements(Phase.SPECIFIED) == []

        gates = config.gates_for("implement_task")
        assert isinstance(gates[0].gate_type, ShellGate)
        assert gates[0].max_retries == 2
        assert gates[0].timeout_seconds == 300
        assert isinstance(gates[1].gate_type, HumanGate)
        assert gates[1].is_human
        assert isinstance(config.gates_for("create_review")[0].gate_type, StepBackGate)
        assert config.gates_for("merge") == []

        assert config.agents.is_human(ActionType.APPROVE_SPEC)
        assert not config.agents.is_human(ActionType.CREATE_SPEC)

    def test_round_trip_through_save(self, tmp_path):
        config = parse_config({
            "gates": {"merge": [{"name": "ci", "gate_type": {"type": "shell", "command": "ci"}}]},
        })
        save_config(tmp_path, config)
        assert load_config(tmp_path).to_dict() == config.to_dict()


class TestSchemaValidation:
    def test_unknown_phase(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_config({"phases": {"enabled": ["draft", "shipping"]}})
        assert exc_info.value.schema_name == "config"
        assert exc_info.value.path == "phases.enabled.1"

    def test_unknown_gate_type(self):
        with pytest.raises(ValidationError):
            parse_config({"gates": {"merge": [{"name": "x", "gate_type": {"type": "magic"}}]}})

    def test_negative_retries(self):
        with pytest.raises(ValidationError):
            parse_config({"gates": {"merge": [
                {"name": "x", "gate_type": {"type": "shell", "command": "true"}, "max_retries": -1},
            ]}})

    def test_malformed_file_raises(self, tmp_path):
        write_config(tmp_path, {"version": "one"})
        with pytest.raises(ValidationError):
            load_config(tmp_path)


class TestConfigWarnings:
    def test_clean_defaults(self):
        assert Config().validate() == []

    def test_warnings(self, tmp_path, caplog):
        write_config(tmp_path, {
            "phases": {
                "enabled": ["draft", "specified", "released"],
                "exit_artifacts": {"draft": ["spec"], "review": ["review"]},
            },
            "gates": {
                "deploy": [{"name": "d", "gate_type": {"type": "shell", "command": "true"}}],
                "merge": [
                    {"name": "empty", "gate_type": {"type": "shell", "command": "  "}},
                    {"name": "flaky", "gate_type": {"type": "shell", "command": "true"},
                     "max_retries": 50},
                ],
            },
            "agents": {"actions": {"ship_it": "human"}},
        })
        config = load_config(tmp_path)
        warnings = config.validate()
        assert len(warnings) == 5
        assert any("unknown action 'deploy'" in w for w in warnings)
        assert any("'empty' has an empty command" in w for w in warnings)
        assert any("max_retries=50" in w for w in warnings)
        assert any("'review' is not enabled" in w for w in warnings)
        assert any("'ship_it'" in w for w in warnings)
        assert "Config:" in caplog.text


class TestAgentArgv:
    def test_prompt_substituted_as_one_argument(self):
        config = parse_config({"agents": {"default": "agent --print {prompt} --fast"}})
        argv = config.agents.build_argv(ActionType.CREATE_SPEC, "write the 'spec'\nnow")
        assert argv == ["agent", "--print", "write the 'spec'\nnow", "--fast"]

    def test_prompt_appended_without_placeholder(self):
        config = parse_config({"agents": {"default": "agent run"}})
        assert config.agents.build_argv(ActionType.CREATE_SPEC, "go") == ["agent", "run", "go"]

    def test_per_action_override(self):
        config = parse_config({"agents": {"actions": {"run_qa": "qa-bot {prompt}"}}})
        assert config.agents.build_argv(ActionType.RUN_QA, "p") == ["qa-bot", "p"]
