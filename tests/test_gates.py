"""Tests for sdlc.workflow.gates."""

import pytest

from sdlc.lib.constants import MAX_GATE_OUTPUT
from sdlc.lib.errors import GateFailed, HumanGateRequired
from sdlc.workflow.gates import (
    GateDefinition, GateResult, HumanGate, ShellGate, StepBackGate,
    execute_shell_gate, format_gate_results, gate_outcome, run_gates,
)


def shell(name, command, max_retries=0, timeout_seconds=10):
    return GateDefinition(name, ShellGate(command), max_retries=max_retries,
                          timeout_seconds=timeout_seconds)


class TestExecuteShellGate:
    def test_pass_captures_output(self, tmp_path):
        passed, output = execute_shell_gate(tmp_path, "echo hello; echo oops >&2", 10)
        assert passed
        assert "hello" in output
        assert "oops" in output

    def test_runs_in_root(self, tmp_path):
        (tmp_path / "marker.txt").write_text("x")
        passed, _ = execute_shell_gate(tmp_path, "test -f marker.txt", 10)
        assert passed

    def test_failure(self, tmp_path):
        passed, output = execute_shell_gate(tmp_path, "echo broken; exit 3", 10)
        assert not passed
        assert output == "broken"

    def test_timeout(self, tmp_path):
        passed, output = execute_shell_gate(tmp_path, "sleep 5", 1)
        assert not passed
        assert output == "timed out after 1s"

    def test_output_truncated_to_tail(self, tmp_path):
        passed, output = execute_shell_gate(
            tmp_path, f"head -c {MAX_GATE_OUTPUT * 2} /dev/zero | tr '\\0' a; echo END", 10,
        )
        assert passed
        assert len(output) == MAX_GATE_OUTPUT
        assert output.endswith("END")


class TestRunGates:
    def test_single_attempt_without_retries(self, tmp_path):
        results = run_gates(tmp_path, "merge", [shell("lint", "false")])
        assert [(r.gate_name, r.passed, r.attempt) for r in results] == [("lint", False, 1)]

    def test_retries_exhausted(self, tmp_path):
        results = run_gates(tmp_path, "merge", [shell("lint", "false", max_retries=2)])
        assert [r.attempt for r in results] == [1, 2, 3]
        assert not any(r.passed for r in results)

    def test_stops_retrying_on_pass(self, tmp_path):
        # Fails on the first attempt, passes on the second
        gate = shell("flaky", "if [ -f seen ]; then exit 0; else touch seen; exit 1; fi",
                     max_retries=2)
        results = run_gates(tmp_path, "merge", [gate])
        assert [(r.attempt, r.passed) for r in results] == [(1, False), (2, True)]

    def test_short_circuits_on_failure(self, tmp_path):
        gates = [
            shell("one", "true"),
            shell("two", "false"),
            shell("three", "touch ran-three"),
        ]
        results = run_gates(tmp_path, "merge", gates)
        assert [r.gate_name for r in results] == ["one", "two"]
        assert not (tmp_path / "ran-three").exists()

    def test_human_gate_halts(self, tmp_path):
        gates = [
            shell("one", "true"),
            GateDefinition("sign-off", HumanGate("Does it look right?")),
            shell("three", "touch ran-three"),
        ]
        results = run_gates(tmp_path, "merge", gates)
        assert results[-1] == GateResult("sign-off", False, "Does it look right?", 1, 0)
        assert not (tmp_path / "ran-three").exists()

    def test_step_back_gate_output(self, tmp_path):
        gate = GateDefinition("reflect", StepBackGate(["Is this needed?", "Simpler way?"]))
        results = run_gates(tmp_path, "create_design", [gate])
        assert results[0].output == "Is this needed?\nSimpler way?"
        assert not results[0].passed

    def test_empty_command(self, tmp_path):
        results = run_gates(tmp_path, "merge", [shell("blank", "   ", max_retries=3)])
        assert len(results) == 1
        assert results[0].output == "gate command is empty"

    def test_no_gates(self, tmp_path):
        assert run_gates(tmp_path, "merge", []) == []


class TestGateOutcome:
    def test_pass(self):
        gates = [shell("a", "true")]
        gate_outcome(gates, [GateResult("a", True, "", 1, 5)])
        gate_outcome([], [])

    def test_failed(self):
        gates = [shell("a", "false", max_retries=1)]
        results = [GateResult("a", False, "", 1, 5), GateResult("a", False, "", 2, 5)]
        with pytest.raises(GateFailed) as exc_info:
            gate_outcome(gates, results)
        assert exc_info.value.attempts == 2

    def test_human(self):
        gates = [GateDefinition("sign-off", HumanGate("ok?"))]
        with pytest.raises(HumanGateRequired):
            gate_outcome(gates, [GateResult("sign-off", False, "ok?", 1, 0)])


class TestFormatGateResults:
    def test_marks_and_indented_output(self):
        text = format_gate_results([
            GateResult("lint", True, "clean", 1, 12),
            GateResult("tests", False, "1 failed\nE assert 0", 1, 340),
        ])
        lines = text.splitlines()
        assert lines[0] == "  ✓ lint (attempt 1, 12ms)"
        assert lines[1] == "  ✗ tests (attempt 1, 340ms)"
        assert lines[2:] == ["    1 failed", "    E assert 0"]
