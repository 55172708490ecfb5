import json
import os

import pytest
from click.testing import CliRunner

from distrogen.cli import main


@pytest.fixture
def runner(monkeypatch):
    for name in ("ROOT", "BASE_URL", "CF_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


def test_init_root(runner, tmp_path):
    result = runner.invoke(main, ["init", "root", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "schemas" / "servermeta.schema.json").is_file()
    assert (tmp_path / "schemas" / "distribution.schema.json").is_file()
    assert json.loads((tmp_path / "distribution.json").read_text())["servers"] == []


def test_generate_server_then_distro(runner, tmp_path):
    root = str(tmp_path)
    assert runner.invoke(main, ["init", "root", root]).exit_code == 0

    result = runner.invoke(main, ["generate", "server", "alpha", "1.20.1", "--root", root, "--main"])
    assert result.exit_code == 0, result.output
    with open(os.path.join(root, "servers", "alpha", "mods", "required", "a.jar"), "wb") as f:
        f.write(b"mod")

    result = runner.invoke(
        main, ["generate", "distro", "--root", root, "--base-url", "cdn.example.com"]
    )
    assert result.exit_code == 0, result.output

    manifest = json.loads((tmp_path / "distribution.json").read_text())
    [server] = manifest["servers"]
    assert server["mainServer"] is True
    assert server["modules"][0]["artifact"]["url"] == (
        "https://cdn.example.com/servers/alpha/mods/required/a.jar"
    )


def test_generate_server_rejects_two_loaders(runner, tmp_path):
    result = runner.invoke(
        main,
        ["generate", "server", "alpha", "1.16.5", "--forge", "36.2.39", "--fabric", "0.14.21",
         "--root", str(tmp_path)],
    )

    assert result.exit_code == 1
    assert not (tmp_path / "servers").exists()


def test_generate_distro_exits_nonzero_on_failures(runner, tmp_path):
    root = str(tmp_path)
    runner.invoke(main, ["generate", "server", "alpha", "1.16.5", "--root", root])
    os.symlink(
        os.path.join(root, "missing.jar"),
        os.path.join(root, "servers", "alpha", "mods", "required", "broken.jar"),
    )

    result = runner.invoke(
        main, ["generate", "distro", "--root", root, "--base-url", "cdn.example.com"]
    )

    assert result.exit_code == 1
    assert (tmp_path / "distribution.json").is_file()


def test_generate_distro_requires_base_url(runner, tmp_path):
    result = runner.invoke(main, ["generate", "distro", "--root", str(tmp_path)])

    assert result.exit_code == 1
    assert not (tmp_path / "distribution.json").exists()


def test_generate_distro_writes_failure_report(runner, tmp_path):
    root = str(tmp_path)
    runner.invoke(main, ["generate", "server", "alpha", "1.16.5", "--root", root])
    os.symlink(
        os.path.join(root, "missing.jar"),
        os.path.join(root, "servers", "alpha", "mods", "required", "broken.jar"),
    )
    report_path = tmp_path / "report.json"

    result = runner.invoke(
        main,
        ["generate", "distro", "--root", root, "--base-url", "cdn.example.com",
         "--report", str(report_path)],
    )

    assert result.exit_code == 1
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["ok"] is False
    [failure] = report["failures"]
    assert failure["server"] == "alpha"
    assert failure["location"] == "servers/alpha/mods/required/broken.jar"
    assert failure["code"] == "E401"
