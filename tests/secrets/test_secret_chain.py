import json

import pytest

from foundry.config.models import StackConfig
from foundry.errors import SecretBackendError, SecretNotFoundError, ValidationError
from foundry.secrets.chain import ChainResolver, build_secret_chain
from foundry.secrets.refs import ResolutionContext, SecretRef, parse_secret_ref
from foundry.secrets.resolvers import EnvResolver, OpenBaoResolver


class FakeBao:
    def __init__(self, data=None, error=None):
        self.data = data or {}
        self.error = error
        self.reads = []

    def read_secret_v2(self, mount, path):
        self.reads.append((mount, path))
        if self.error:
            raise self.error
        return self.data.get(path)


def _stack(**extra):
    return StackConfig.model_validate({
        "cluster": {"name": "homelab"},
        "hosts": [{"hostname": "bao", "address": "10.0.0.10", "roles": ["openbao"]}],
        **extra,
    })


def test_parse_secret_ref():
    ref = parse_secret_ref("${secret:dns:api_key}")
    assert ref == SecretRef(path="dns", key="api_key", raw="${secret:dns:api_key}")
    assert parse_secret_ref("plain-value") is None
    with pytest.raises(ValidationError):
        parse_secret_ref("${secret:bad path:key}")


def test_env_var_name():
    ctx = ResolutionContext(instance="myapp-prod")
    ref = SecretRef(path="db/main", key="pass-word")
    assert ctx.env_var_name(ref) == "FOUNDRY_SECRET_MYAPP_PROD_DB_MAIN_PASS_WORD"


def test_env_short_circuits_openbao(monkeypatch):
    monkeypatch.setenv("FOUNDRY_SECRET_DNS_API_KEY", "from-env")
    bao = FakeBao({"dns": {"api_key": "from-bao"}})
    chain = ChainResolver(EnvResolver(), OpenBaoResolver(bao))

    assert chain.resolve_value(ResolutionContext(), "${secret:dns:api_key}") == "from-env"
    assert bao.reads == []


def test_falls_back_to_openbao(monkeypatch):
    monkeypatch.delenv("FOUNDRY_SECRET_DNS_API_KEY", raising=False)
    bao = FakeBao({"dns": {"api_key": "from-bao"}})
    chain = ChainResolver(EnvResolver(), OpenBaoResolver(bao))

    assert chain.resolve(ResolutionContext(), SecretRef("dns", "api_key")) == "from-bao"
    assert bao.reads == [("foundry-core", "dns")]


def test_all_failing_lists_every_reason(monkeypatch):
    monkeypatch.delenv("FOUNDRY_SECRET_DNS_API_KEY", raising=False)
    chain = ChainResolver(EnvResolver(), OpenBaoResolver(FakeBao(error=SecretBackendError("sealed"))))

    with pytest.raises(SecretNotFoundError) as ei:
        chain.resolve(ResolutionContext(), SecretRef("dns", "api_key"))

    msg = str(ei.value)
    assert "resolver 1: environment variable FOUNDRY_SECRET_DNS_API_KEY not set" in msg
    assert "resolver 2: sealed" in msg


def test_non_reference_values_pass_through():
    assert ChainResolver(EnvResolver()).resolve_value(ResolutionContext(), "literal") == "literal"


def test_chain_degrades_to_env_without_root_token(tmp_path):
    chain = build_secret_chain(_stack(), tmp_path)
    assert [type(r) for r in chain.resolvers] == [EnvResolver]


def test_chain_includes_openbao_with_root_token(tmp_path):
    keys = tmp_path / "homelab" / "keys.json"
    keys.parent.mkdir(parents=True)
    keys.write_text(json.dumps({"root_token": "s.root", "keys": ["k1"]}))
    made = []

    def factory(address, token):
        made.append((address, token))
        return FakeBao()

    chain = build_secret_chain(_stack(), tmp_path, client_factory=factory)

    assert [type(r) for r in chain.resolvers] == [EnvResolver, OpenBaoResolver]
    assert made == [("http://10.0.0.10:8200", "s.root")]
