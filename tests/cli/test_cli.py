import logging
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from foundry.cli.app import app

runner = CliRunner()


STACK = {
    "cluster": {"name": "homelab", "primary_domain": "lab.example"},
    "hosts": [
        {"hostname": "bao", "address": "10.0.0.10", "roles": ["openbao"]},
        {"hostname": "ns1", "address": "10.0.0.11", "roles": ["dns"]},
        {"hostname": "reg", "address": "10.0.0.12", "roles": ["zot"]},
    ],
}


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    monkeypatch.setenv("FOUNDRY_CONFIG_DIR", str(tmp_path))
    yield
    # init_logging binds handlers to the runner's streams
    logger = logging.getLogger("foundry")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True


def _stack(tmp_path: Path, **state) -> Path:
    path = tmp_path / "stack.yaml"
    path.write_text(yaml.safe_dump({**STACK, "_setup_state": state}, sort_keys=False))
    return path


def test_component_list():
    result = runner.invoke(app, ["component", "list"])

    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert [l.split()[0] for l in lines] == sorted(l.split()[0] for l in lines)
    assert any(l.startswith("grafana") and "depends on: prometheus, loki" in l for l in lines)


def test_unknown_component_exits_1(tmp_path):
    path = _stack(tmp_path)
    result = runner.invoke(app, ["component", "install", "nope", "--config", str(path)])

    assert result.exit_code == 1
    assert "Error: component 'nope' not found in registry" in result.output


def test_missing_dependency_tells_what_to_run(tmp_path):
    path = _stack(tmp_path)
    result = runner.invoke(app, ["component", "install", "k3s", "--config", str(path)])

    assert result.exit_code == 1
    assert "foundry component install openbao" in result.output


def test_nfs_backend_requires_flags(tmp_path):
    path = _stack(tmp_path)
    result = runner.invoke(app, ["component", "install", "storage", "--backend", "nfs", "--config", str(path)])

    assert result.exit_code == 1
    assert "--nfs-server and --nfs-path are required" in result.output


def test_missing_config_file(tmp_path):
    result = runner.invoke(app, ["component", "install", "zot"])

    assert result.exit_code == 1
    assert "no configuration found" in result.output


def test_ssh_dry_run(tmp_path):
    path = _stack(tmp_path, openbao_installed=True, openbao_initialized=True, dns_installed=True)
    before = path.read_text()

    result = runner.invoke(app, ["component", "install", "zot", "-n", "--config", str(path)])

    assert result.exit_code == 0, result.output
    assert "[dry-run] zot: install (ssh)" in result.output
    assert path.read_text() == before
    assert list((tmp_path / "logs").glob("foundry-*.log"))


def test_stack_install_dry_run_prints_order(tmp_path):
    path = _stack(tmp_path)
    result = runner.invoke(app, ["stack", "install", "velero", "--dry-run", "--config", str(path)])

    assert result.exit_code == 0, result.output
    assert "Install order: openbao -> dns -> zot -> k3s -> storage -> seaweedfs -> velero" in result.output


def test_stack_state_and_reset(tmp_path):
    path = _stack(tmp_path, openbao_installed=True)

    shown = runner.invoke(app, ["stack", "state", "--config", str(path)])
    assert shown.exit_code == 0
    assert "[x] openbao_installed" in shown.output
    assert "next step: openbao_install" in shown.output

    reset = runner.invoke(app, ["stack", "reset-state", "--yes", "--config", str(path)])
    assert reset.exit_code == 0
    assert yaml.safe_load(path.read_text())["_setup_state"]["openbao_installed"] is False
