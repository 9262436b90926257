"""cartrepo 命令行端到端测试"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cartrepo.cli import main
from cartrepo.core.config import reset_config
from cartrepo.services.container import reset_container
from cartrepo.utils.logger import reset_logging


@pytest.fixture(autouse=True)
def _isolate():
    yield
    reset_container()
    reset_config()
    reset_logging()


@pytest.fixture()
def run(tmp_path: Path):
    repo_dir = tmp_path / "repo"

    def _run(*args: str):
        return CliRunner().invoke(
            main,
            ["--config", str(tmp_path / "none.yml"), "--repository", str(repo_dir), *args],
            env={"CARTREPO_LOG_LEVEL": "ERROR"},
        )

    return _run


class TestCli:
    def test_install_select_erase(self, run, make_source) -> None:
        r = run("install", str(make_source("php")))
        assert r.exit_code == 0, r.output
        assert "已安装: php" in r.output

        r = run("select", "php", "5.3", "--json")
        assert r.exit_code == 0, r.output
        data = json.loads(r.output)
        assert data["cartridge_version"] == "1.0"
        assert "5.3" in data["versions"]
        # 所有软件版本槽位共享同一个描述对象
        assert data == json.loads(run("select", "php", "--json").output)

        r = run("list")
        assert "php" in r.output

        r = run("show")
        assert "(php, *, *)" in r.output

        r = run("erase", "php", "5.3", "1.0")
        assert r.exit_code == 0, r.output

        r = run("select", "php")
        assert r.exit_code == 1
        assert "NOT_FOUND" in r.output

    def test_load_counts(self, run, make_source) -> None:
        run("install", str(make_source("php")))
        run("install", str(make_source("ruby", versions=["1.9"])))
        r = run("load")
        assert r.exit_code == 0, r.output
        assert "已索引 cartridge: 2" in r.output

    def test_empty_list(self, run) -> None:
        r = run("list")
        assert r.exit_code == 0
        assert "没有 cartridge" in r.output

    def test_install_without_manifest(self, run, tmp_path: Path) -> None:
        bare = tmp_path / "bare"
        bare.mkdir()
        r = run("install", str(bare))
        assert r.exit_code == 1
        assert "INVALID_ARGUMENT" in r.output

    def test_instantiate(self, run, make_source, tmp_path: Path) -> None:
        run("install", str(make_source("php")))
        target = tmp_path / "gear" / "php"
        r = run("instantiate", "php", str(target), "--version", "5.4")
        assert r.exit_code == 0, r.output
        assert (target / "usr").is_symlink()

    def test_instantiate_manifest_file_uri(self, run, make_source, tmp_path: Path) -> None:
        src = make_source("mock", versions=["0.1"])
        manifest = tmp_path / "remote.yml"
        manifest.write_text(
            "Name: mock\nCartridge-Vendor: example\nCartridge-Version: '0.0.1'\n"
            f"Version: '0.1'\nSource-Url: {src.as_uri()}\n",
            encoding="utf-8",
        )
        target = tmp_path / "gear" / "mock"
        r = run("instantiate-manifest", str(manifest), str(target))
        assert r.exit_code == 0, r.output
        assert (target / "bin" / "control").is_file()
