from pathlib import Path

import pytest
import yaml

from foundry.config.loader import load_config
from foundry.config.models import SetupState
from foundry.errors import ConfigError
from foundry.state.store import DNS_API_KEY_REF, StateStore, record_install

STACK_YAML = """\
cluster:
  name: homelab
  primary_domain: lab.example
hosts:
  - hostname: ns1
    address: 10.0.0.11
    roles: [dns]
components:
  grafana:
    admin_password: ${GRAFANA_PASSWORD}
"""


def _write(tmp_path: Path) -> Path:
    path = tmp_path / "stack.yaml"
    path.write_text(STACK_YAML)
    return path


def test_missing_state_section_loads_defaults(tmp_path):
    assert StateStore(_write(tmp_path)).load() == SetupState()


def test_record_install_dns_stores_reference_not_key(tmp_path, monkeypatch):
    monkeypatch.setenv("GRAFANA_PASSWORD", "hunter2")
    path = _write(tmp_path)
    cfg = load_config(path)

    changed = record_install(cfg, flags=("dns_installed",), component="dns", api_key_used=True)
    StateStore(path).save(cfg)

    assert changed is True
    saved = yaml.safe_load(path.read_text())
    assert saved["_setup_state"]["dns_installed"] is True
    assert saved["dns"]["api_key"] == DNS_API_KEY_REF
    # env placeholders on disk are not expanded by a state save
    assert saved["components"]["grafana"]["admin_password"] == "${GRAFANA_PASSWORD}"


def test_record_install_without_flags_is_a_noop(tmp_path):
    cfg = load_config(_write(tmp_path))
    assert record_install(cfg, flags=(), component="grafana") is False
    assert cfg.setup_state == SetupState()


def test_record_install_unknown_flag(tmp_path):
    cfg = load_config(_write(tmp_path))
    with pytest.raises(ConfigError):
        record_install(cfg, flags=("bogus",), component="x")


def test_reset_clears_flags(tmp_path):
    path = _write(tmp_path)
    cfg = load_config(path)
    record_install(cfg, flags=("openbao_installed", "openbao_initialized"), component="openbao")
    store = StateStore(path)
    store.save(cfg)

    store.reset()

    assert store.load() == SetupState()


def test_next_step_and_completion():
    state = SetupState(openbao_installed=True)
    assert state.next_step() == "openbao_install"
    assert not state.is_complete()

    state.openbao_initialized = state.dns_installed = True
    # zones are part of the dns step
    assert state.next_step() == "dns_install"

    for flag in ("dns_zones_created", "zot_installed", "k8s_installed"):
        setattr(state, flag, True)
    # network planning flags do not gate completion
    assert not state.network_planned
    assert state.is_complete()
    assert state.next_step() == "complete"

    state.reset()
    assert state.next_step() == "openbao_install"
