"""Verification gates run after an automated action.

A gate is one of three kinds:
- ShellGate: a command run with `sh -c` in the project root, retried up to
  max_retries extra times, each attempt with its own timeout
- HumanGate: a prompt for a person; never auto-resolved, never retried
- StepBackGate: a list of reflection questions; treated like HumanGate

run_gates() executes gates in order and stops at the first gate that
ultimately fails. The trailing GateResult tells the caller what happened.

Usage:
    from sdlc.workflow.gates import run_gates, gate_outcome

    results = run_gates(root, "implement_task", config.gates_for("implement_task"))
    outcome = gate_outcome(gates, results)
"""

import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path

from sdlc.lib.constants import DEFAULT_GATE_TIMEOUT, MAX_GATE_OUTPUT
from sdlc.lib.errors import GateFailed, HumanGateRequired

logger = logging.getLogger(__name__)


@dataclass
class ShellGate:
    command: str
    type: str = field(default="shell", init=False)


@dataclass
class HumanGate:
    prompt: str
    type: str = field(default="human", init=False)


@dataclass
class StepBackGate:
    questions: list[str] = field(default_factory=list)
    type: str = field(default="step_back", init=False)


GateKind = ShellGate | HumanGate | StepBackGate


@dataclass
class GateDefinition:
    """A configured gate for one action."""
    name: str
    gate_type: GateKind
    auto: bool = True
    max_retries: int = 0  # 0 = one attempt total
    timeout_seconds: int = DEFAULT_GATE_TIMEOUT  # 0 = no timeout

    @property
    def is_human(self) -> bool:
        return isinstance(self.gate_type, (HumanGate, StepBackGate))

    @classmethod
    def from_dict(cls, data: dict) -> "GateDefinition":
        kind = data["gate_type"]
        kind_type = kind["type"]
        if kind_type == "shell":
            gate_type = ShellGate(command=kind["command"])
        elif kind_type == "human":
            gate_type = HumanGate(prompt=kind["prompt"])
        elif kind_type == "step_back":
            gate_type = StepBackGate(questions=list(kind.get("questions") or []))
        else:
            raise ValueError(f"Unknown gate type: {kind_type}")
        return cls(
            name=data["name"],
            gate_type=gate_type,
            auto=data.get("auto", True),
            max_retries=data.get("max_retries", 0),
            timeout_seconds=data.get("timeout_seconds", DEFAULT_GATE_TIMEOUT),
        )

    def to_dict(self) -> dict:
        kind = self.gate_type
        if isinstance(kind, ShellGate):
            gate_type = {"type": "shell", "command": kind.command}
        elif isinstance(kind, HumanGate):
            gate_type = {"type": "human", "prompt": kind.prompt}
        else:
            gate_type = {"type": "step_back", "questions": list(kind.questions)}
        return {
            "name": self.name,
            "gate_type": gate_type,
            "auto": self.auto,
            "max_retries": self.max_retries,
            "timeout_seconds": self.timeout_seconds,
        }


@dataclass
class GateResult:
    gate_name: str
    passed: bool
    output: str
    attempt: int  # 1-indexed
    duration_ms: int


def _trim_output(output: str) -> str:
    """Strip and keep the last MAX_GATE_OUTPUT characters."""
    output = output.strip()
    if len(output) > MAX_GATE_OUTPUT:
        output = output[-MAX_GATE_OUTPUT:]
    return output


def execute_shell_gate(root: Path, command: str, timeout_seconds: int) -> tuple[bool, str]:
    """Run one attempt of a shell gate.

    The command runs in its own process group so a timeout kills the
    whole tree, not just the shell.

    Returns:
        Tuple of (passed, output)
    """
    proc = subprocess.Popen(
        ["sh", "-c", command],
        cwd=root,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        start_new_session=True,
    )
    timeout = timeout_seconds if timeout_seconds > 0 else None
    try:
        output, _ = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        proc.communicate()
        return False, f"timed out after {timeout_seconds}s"
    return proc.returncode == 0, _trim_output(output or "")


def run_gates(root: Path, action: str, gates: list[GateDefinition]) -> list[GateResult]:
    """Run gates sequentially, stopping at the first gate that fails.

    Args:
        root: Project root; shell gates run with this as cwd
        action: Action name the gates verify (for logging)
        gates: Ordered gate definitions

    Returns:
        GateResults in execution order. If any gate failed, it is the last entry.
    """
    results: list[GateResult] = []

    for gate in gates:
        kind = gate.gate_type

        if isinstance(kind, (HumanGate, StepBackGate)):
            output = kind.prompt if isinstance(kind, HumanGate) else "\n".join(kind.questions)
            logger.info(f"[GATE] {action}: '{gate.name}' requires a human")
            results.append(GateResult(gate.name, False, output, 1, 0))
            return results

        if not kind.command.strip():
            logger.warning(f"[GATE] {action}: '{gate.name}' has an empty command")
            results.append(GateResult(gate.name, False, "gate command is empty", 1, 0))
            return results

        passed = False
        for attempt in range(1, gate.max_retries + 2):
            start = time.monotonic()
            passed, output = execute_shell_gate(root, kind.command, gate.timeout_seconds)
            duration_ms = int((time.monotonic() - start) * 1000)
            results.append(GateResult(gate.name, passed, output, attempt, duration_ms))
            logger.info(
                f"[GATE] {action}: '{gate.name}' attempt {attempt} "
                f"{'passed' if passed else 'failed'} ({duration_ms}ms)"
            )
            if passed:
                break

        if not passed:
            return results

    return results


def gate_outcome(gates: list[GateDefinition], results: list[GateResult]) -> None:
    """Raise if the gate run did not pass.

    Raises:
        HumanGateRequired: If the run halted on a human or step-back gate
        GateFailed: If a shell gate exhausted its retries
    """
    if not results or results[-1].passed:
        return
    failing = results[-1]
    gate = next((g for g in gates if g.name == failing.gate_name), None)
    if gate is not None and gate.is_human:
        raise HumanGateRequired(failing.gate_name)
    raise GateFailed(failing.gate_name, failing.attempt)


def format_gate_results(results: list[GateResult]) -> str:
    """Render results as check/cross lines with failing output indented."""
    lines = []
    for r in results:
        mark = "✓" if r.passed else "✗"
        lines.append(f"  {mark} {r.gate_name} (attempt {r.attempt}, {r.duration_ms}ms)")
        if not r.passed and r.output:
            lines.extend(f"    {line}" for line in r.output.splitlines())
    return "\n".join(lines)
