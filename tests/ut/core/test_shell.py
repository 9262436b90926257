"""shell.py run_cmd 单元测试"""

from __future__ import annotations

import os

import pytest

from cartrepo.core.exceptions import CommandTimeoutError, ExecutionError
from cartrepo.utils.shell import (
    CommandResult,
    LocalExecutor,
    get_executor,
    run_cmd,
    set_executor,
)


class TestRunCmd:
    def test_success(self, tmp_path) -> None:
        r = run_cmd(["echo", "hello"], cwd=str(tmp_path), label="test")
        assert r.returncode == 0
        assert r.success
        assert "hello" in r.stdout

    def test_failure_raises_execution_error(self, tmp_path) -> None:
        with pytest.raises(ExecutionError, match="cmd失败") as exc:
            run_cmd(["false"], cwd=str(tmp_path))
        assert exc.value.returncode == 1

    def test_custom_label_in_error(self, tmp_path) -> None:
        with pytest.raises(ExecutionError, match="unzip失败"):
            run_cmd(["false"], cwd=str(tmp_path), label="unzip")

    def test_expected_returncode(self, tmp_path) -> None:
        r = run_cmd(["false"], cwd=str(tmp_path), expected_returncode=1)
        assert r.returncode == 1

    def test_env_passed(self, tmp_path) -> None:
        env = {**os.environ, "MY_TEST_VAR": "42"}
        r = run_cmd(["env"], cwd=str(tmp_path), env=env, label="env_test")
        assert "MY_TEST_VAR=42" in r.stdout

    def test_arguments_not_shell_interpolated(self, tmp_path) -> None:
        r = run_cmd(["echo", "$HOME; rm -rf x"], cwd=str(tmp_path))
        assert r.stdout.strip() == "$HOME; rm -rf x"

    def test_timeout_kills_process(self, tmp_path) -> None:
        with pytest.raises(CommandTimeoutError, match="sleep超时") as exc:
            run_cmd(
                ["sleep", "10"],
                cwd=str(tmp_path), timeout=0.5, label="sleep",
            )
        assert exc.value.timeout == 0.5

    def test_missing_binary(self, tmp_path) -> None:
        with pytest.raises(ExecutionError, match="无法启动"):
            run_cmd(["definitely-not-a-real-binary-xyz"], cwd=str(tmp_path))


class TestExecutorRegistry:
    def test_set_and_restore(self) -> None:
        class Recorder:
            def __init__(self) -> None:
                self.seen: list[list[str]] = []

            def execute(self, args, *, cwd=None, env=None, timeout=None) -> CommandResult:
                self.seen.append(args)
                return CommandResult(returncode=0, stdout="ok", stderr="")

        original = get_executor()
        rec = Recorder()
        try:
            set_executor(rec)
            assert run_cmd(["anything"]).stdout == "ok"
            assert rec.seen == [["anything"]]
        finally:
            set_executor(original)
        assert isinstance(get_executor(), LocalExecutor)
