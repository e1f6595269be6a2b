"""Command lines built by the run_tests.py helper."""

import subprocess
import sys

import pytest

import run_tests


@pytest.fixture
def captured(monkeypatch):
    calls = []

    class _Done:
        returncode = 0

    def fake_run(cmd):
        calls.append(cmd)
        return _Done()

    monkeypatch.setattr(subprocess, "run", fake_run)
    return calls


def _invoke(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["run_tests.py", *argv])
    return run_tests.run_tests()


class TestRunner:

    def test_defaults_to_whole_suite(self, monkeypatch, captured):
        assert _invoke(monkeypatch) == 0
        assert captured == [[sys.executable, "-m", "pytest", "tests/"]]

    def test_engine_category_spans_files(self, monkeypatch, captured):
        _invoke(monkeypatch, "engine", "-q")
        cmd = captured[0]
        assert cmd[3:6] == ["tests/test_calculation.py", "tests/test_solver.py", "tests/test_policy.py"]
        assert cmd[-1] == "-q"

    def test_quick_skips_sweeps(self, monkeypatch, captured):
        _invoke(monkeypatch, "calc", "--quick")
        cmd = captured[0]
        assert "--quick" not in cmd
        assert cmd[-2:] == ["-k", "not monotonic and not details_sum_to_total"]

    def test_quick_merges_with_caller_filter(self, monkeypatch, captured):
        _invoke(monkeypatch, "solver", "-k", "converge", "--quick", "--coverage")
        cmd = captured[0]
        assert "--cov=vnpayroll" in cmd
        assert cmd.count("-k") == 1
        assert cmd[-1] == "(converge) and not monotonic and not details_sum_to_total"

    def test_failure_code_passed_through(self, monkeypatch):
        class _Failed:
            returncode = 1

        monkeypatch.setattr(subprocess, "run", lambda cmd: _Failed())
        assert _invoke(monkeypatch, "cli") == 1
