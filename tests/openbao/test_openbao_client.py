import json

import pytest
import requests

from foundry.errors import SecretBackendError
from foundry.openbao.client import OpenBaoClient, load_key_material, read_root_token, save_key_material


class Resp:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body or {}
        self.text = text or json.dumps(self._body)

    def json(self):
        return self._body


def test_read_secret_v2(monkeypatch):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen["url"] = url
        seen["token"] = headers["X-Vault-Token"]
        return Resp(body={"data": {"data": {"api_key": "abc"}}})

    monkeypatch.setattr(requests, "get", fake_get)

    data = OpenBaoClient("http://10.0.0.10:8200/", "s.root").read_secret_v2("foundry-core", "/dns")

    assert data == {"api_key": "abc"}
    assert seen == {"url": "http://10.0.0.10:8200/v1/foundry-core/data/dns", "token": "s.root"}


def test_read_missing_secret_is_none(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda *a, **k: Resp(404))
    assert OpenBaoClient("http://x:8200", "t").read_secret_v2("m", "p") is None


def test_errors_are_wrapped(monkeypatch):
    def boom(*a, **k):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(requests, "post", boom)
    with pytest.raises(SecretBackendError, match="refused"):
        OpenBaoClient("http://x:8200", "t").write_secret_v2("m", "p", {"k": "v"})


def test_unseal_stops_when_unsealed(monkeypatch):
    sent = []

    def fake_request(method, url, json=None, headers=None, timeout=None):
        sent.append(json["key"])
        return Resp(body={"sealed": len(sent) < 3})

    monkeypatch.setattr(requests, "request", fake_request)

    OpenBaoClient("http://x:8200", "").unseal(["k1", "k2", "k3", "k4", "k5"])

    assert sent == ["k1", "k2", "k3"]


def test_enable_kv_tolerates_existing_mount(monkeypatch):
    monkeypatch.setattr(
        requests, "request",
        lambda *a, **k: Resp(400, text='{"errors":["path is already in use at foundry-core/"]}'),
    )
    OpenBaoClient("http://x:8200", "t").enable_kv_v2()


def test_key_material_round_trip(tmp_path):
    assert read_root_token(tmp_path, "homelab") is None

    path = save_key_material(tmp_path, "homelab", {"keys": ["a"], "root_token": "s.root"})

    assert path.stat().st_mode & 0o777 == 0o600
    assert load_key_material(tmp_path, "homelab")["keys"] == ["a"]
    assert read_root_token(tmp_path, "homelab") == "s.root"
