"""
Project configuration loader.

Loads .sdlc/config.yaml, validates it against the config schema and
returns a Config. A missing file yields the defaults below.

Example config.yaml:

    version: 1
    project:
      name: my-app
    phases:
      enabled: [draft, specified, planned, ready, implementation,
                review, audit, qa, merge, released]
      exit_artifacts:
        draft: [spec]
    gates:
      implement_task:
        - name: tests
          gate_type: {type: shell, command: make test}
          max_retries: 2
          timeout_seconds: 300
    agents:
      default: claude -p {prompt}
      actions:
        create_review: human
"""

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from sdlc.lib import validate
from sdlc.lib.constants import MAX_RETRIES_WARNING
from sdlc.lib.io import write_yaml
from sdlc.lib.paths import config_path
from sdlc.lib.types import ActionType, ArtifactType, Phase
from sdlc.workflow.gates import GateDefinition, ShellGate

logger = logging.getLogger(__name__)

HUMAN_BACKEND = "human"
DEFAULT_AGENT_COMMAND = "claude -p {prompt} --permission-mode acceptEdits"

# Artifacts that must be satisfied to leave each phase
DEFAULT_EXIT_ARTIFACTS: dict[Phase, list[ArtifactType]] = {
    Phase.DRAFT: [ArtifactType.SPEC],
    Phase.SPECIFIED: [
        ArtifactType.SPEC,
        ArtifactType.DESIGN,
        ArtifactType.TASKS,
        ArtifactType.QA_PLAN,
    ],
    Phase.REVIEW: [ArtifactType.REVIEW],
    Phase.AUDIT: [ArtifactType.AUDIT],
    Phase.QA: [ArtifactType.QA_RESULTS],
}


@dataclass
class ProjectInfo:
    name: str = ""
    description: str | None = None


@dataclass
class PhaseConfig:
    enabled: list[Phase] = field(default_factory=Phase.all)
    exit_artifacts: dict[Phase, list[ArtifactType]] = field(
        default_factory=lambda: {p: list(a) for p, a in DEFAULT_EXIT_ARTIFACTS.items()}
    )

    def is_enabled(self, phase: Phase) -> bool:
        return phase in self.enabled

    def exit_requirements(self, phase: Phase) -> list[ArtifactType]:
        return self.exit_artifacts.get(phase, [])


@dataclass
class AgentsConfig:
    """Agent command templates per action."""
    default: str = DEFAULT_AGENT_COMMAND
    actions: dict[str, str] = field(default_factory=dict)

    def backend_for(self, action: ActionType) -> str:
        return self.actions.get(action.value, self.default)

    def is_human(self, action: ActionType) -> bool:
        return self.backend_for(action).strip() == HUMAN_BACKEND

    def build_argv(self, action: ActionType, prompt: str) -> list[str]:
        """Build the agent argv for an action.

        {prompt} is substituted after shell-style splitting so the prompt
        is passed as a single argument regardless of its content.
        """
        template = self.backend_for(action)
        parts = shlex.split(template)
        if "{prompt}" not in template:
            return parts + [prompt]
        return [prompt if p == "{prompt}" else p.replace("{prompt}", prompt) for p in parts]


@dataclass
class Config:
    version: int = 1
    project: ProjectInfo = field(default_factory=ProjectInfo)
    phases: PhaseConfig = field(default_factory=PhaseConfig)
    gates: dict[str, list[GateDefinition]] = field(default_factory=dict)
    agents: AgentsConfig = field(default_factory=AgentsConfig)

    def gates_for(self, action: str) -> list[GateDefinition]:
        return self.gates.get(action, [])

    def validate(self) -> list[str]:
        """Return warnings about suspicious but loadable settings."""
        warnings = []
        known_actions = {a.value for a in ActionType}

        for action, gates in self.gates.items():
            if action not in known_actions:
                warnings.append(f"gates: unknown action '{action}'")
            for gate in gates:
                if isinstance(gate.gate_type, ShellGate) and not gate.gate_type.command.strip():
                    warnings.append(f"gates.{action}: gate '{gate.name}' has an empty command")
                if gate.max_retries > MAX_RETRIES_WARNING:
                    warnings.append(
                        f"gates.{action}: gate '{gate.name}' has max_retries={gate.max_retries}"
                    )

        for phase in self.phases.exit_artifacts:
            if not self.phases.is_enabled(phase):
                warnings.append(f"phases.exit_artifacts: phase '{phase}' is not enabled")

        for action in self.agents.actions:
            if action not in known_actions:
                warnings.append(f"agents.actions: unknown action '{action}'")

        return warnings

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "project": {"name": self.project.name, "description": self.project.description},
            "phases": {
                "enabled": [p.value for p in self.phases.enabled],
                "exit_artifacts": {
                    p.value: [a.value for a in arts]
                    for p, arts in self.phases.exit_artifacts.items()
                },
            },
            "gates": {a: [g.to_dict() for g in gs] for a, gs in self.gates.items()},
            "agents": {"default": self.agents.default, "actions": dict(self.agents.actions)},
        }


def parse_config(data: dict) -> Config:
    """Validate raw config data and build a Config.

    Raises:
        ValidationError: If the data doesn't match the config schema
    """
    validate.validate(data, "config")

    project = data.get("project") or {}
    phases = data.get("phases") or {}
    agents = data.get("agents") or {}

    phase_config = PhaseConfig()
    if "enabled" in phases:
        phase_config.enabled = [Phase(p) for p in phases["enabled"]]
    if "exit_artifacts" in phases:
        phase_config.exit_artifacts = {
            Phase(p): [ArtifactType(a) for a in arts]
            for p, arts in phases["exit_artifacts"].items()
        }

    return Config(
        version=data.get("version", 1),
        project=ProjectInfo(name=project.get("name", ""), description=project.get("description")),
        phases=phase_config,
        gates={
            action: [GateDefinition.from_dict(g) for g in gates]
            for action, gates in (data.get("gates") or {}).items()
        },
        agents=AgentsConfig(
            default=agents.get("default", DEFAULT_AGENT_COMMAND),
            actions=dict(agents.get("actions") or {}),
        ),
    )


def load_config(root: Path) -> Config:
    """Load .sdlc/config.yaml, or defaults if it doesn't exist."""
    path = config_path(root)
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return Config()

    data = yaml.safe_load(path.read_text()) or {}
    config = parse_config(data)
    for warning in config.validate():
        logger.warning(f"Config: {warning}")
    return config


def save_config(root: Path, config: Config) -> None:
    write_yaml(config_path(root), config.to_dict())
