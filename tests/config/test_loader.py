from pathlib import Path
import textwrap

import pytest

from foundry.config.loader import config_dir, find_config, load_config
from foundry.config.models import ROLE_DNS, ROLE_OPENBAO
from foundry.errors import ConfigError, HostNotConfiguredError


STACK = textwrap.dedent("""
    cluster:
      name: homelab
      primary_domain: lab.example
      vip: ${CLUSTER_VIP}
    hosts:
      - hostname: bao
        address: 10.0.0.10
        roles: [openbao]
      - hostname: ns1
        address: 10.0.0.11
        roles: [dns]
    dns:
      api_key: ${secret:dns:api_key}
      kubernetes_zones:
        - name: k8s.lab.example
      infrastructure_zones:
        - name: lab.example
        - name: infra.lab.example
""")


def test_load_config_expands_env_but_not_secret_refs(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("CLUSTER_VIP", "10.0.0.100")
    f = tmp_path / "stack.yaml"
    f.write_text(STACK)

    cfg = load_config(f)

    assert cfg.cluster.vip == "10.0.0.100"
    assert cfg.dns.api_key == "${secret:dns:api_key}"
    assert cfg.primary_address(ROLE_OPENBAO) == "10.0.0.10"
    assert cfg.hosts_by_role(ROLE_DNS)[0].hostname == "ns1"
    assert cfg.local_zones() == ["lab.example", "k8s.lab.example", "infra.lab.example"]


def test_missing_role_raises(tmp_path: Path):
    f = tmp_path / "stack.yaml"
    f.write_text("cluster: {name: homelab}\n")
    with pytest.raises(HostNotConfiguredError):
        load_config(f).primary_host("zot")


def test_invalid_config_is_a_config_error(tmp_path: Path):
    f = tmp_path / "stack.yaml"
    f.write_text("hosts: []\n")
    with pytest.raises(ConfigError, match="invalid config"):
        load_config(f)


def test_find_config_priority(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("FOUNDRY_CONFIG_DIR", str(tmp_path))
    assert config_dir() == tmp_path

    with pytest.raises(ConfigError):
        find_config()

    (tmp_path / "stack.yaml").write_text("cluster: {name: a}\n")
    (tmp_path / "lab.yaml").write_text("cluster: {name: b}\n")
    explicit = tmp_path / "elsewhere.yml"
    explicit.write_text("cluster: {name: c}\n")

    assert find_config() == tmp_path / "stack.yaml"
    assert find_config("lab") == tmp_path / "lab.yaml"
    assert find_config(str(explicit)) == explicit
    with pytest.raises(ConfigError):
        find_config("missing")

