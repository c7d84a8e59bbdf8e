import pytest
import requests

from foundry.config.models import DNSConfig, DNSZone, StackConfig
from foundry.dns.client import PowerDNSClient
from foundry.dns.registration import backfill, ensure_zones, register_after_install
from foundry.errors import DNSClientError


class Zone:
    """In-memory zone keyed like PowerDNS rrsets (REPLACE semantics)."""

    def __init__(self, fail_on=None):
        self.records = {}
        self.writes = 0
        self.fail_on = fail_on

    def add_a_record(self, zone, short_name, ip):
        if short_name == self.fail_on:
            raise DNSClientError("HTTP 500")
        self.writes += 1
        fqdn = f"{short_name}.{zone}."
        self.records[fqdn] = ip
        return fqdn


def _stack(domain="lab.example", vip="10.0.0.100", **state):
    return StackConfig.model_validate({
        "cluster": {"name": "homelab", "primary_domain": domain, "vip": vip},
        "hosts": [
            {"hostname": "bao", "address": "10.0.0.10", "roles": ["openbao"]},
            {"hostname": "ns1", "address": "10.0.0.11", "roles": ["dns"]},
            {"hostname": "reg", "address": "10.0.0.12", "roles": ["zot"]},
        ],
        "_setup_state": state,
    })


def test_backfill_registers_installed_components():
    zone = Zone()
    cfg = _stack(openbao_installed=True, zot_installed=True, k8s_installed=True)

    written = backfill(cfg, zone)

    assert written == [
        "openbao.lab.example.",
        "dns.lab.example.",
        "zot.lab.example.",
        "k8s.lab.example.",
    ]
    assert zone.records["k8s.lab.example."] == "10.0.0.100"
    assert zone.records["zot.lab.example."] == "10.0.0.12"


def test_backfill_is_idempotent():
    zone = Zone()
    cfg = _stack(openbao_installed=True)

    backfill(cfg, zone)
    first = dict(zone.records)
    backfill(cfg, zone)

    assert zone.records == first
    assert zone.writes == 4


def test_backfill_skips_k8s_without_vip():
    zone = Zone()
    written = backfill(_stack(vip="", k8s_installed=True), zone)
    assert written == ["dns.lab.example."]


def test_backfill_stops_at_first_failure():
    zone = Zone(fail_on="openbao")
    with pytest.raises(DNSClientError, match="openbao"):
        backfill(_stack(openbao_installed=True, zot_installed=True), zone)
    assert zone.records == {}


def test_register_after_install_needs_primary_domain():
    def factory():
        raise AssertionError("client must not be built")

    assert register_after_install("zot", "zot", _stack(domain="", dns_installed=True), factory) == []


def test_self_registration_waits_for_dns():
    zone = Zone()
    assert register_after_install("zot", "zot", _stack(), lambda: zone) == []
    assert register_after_install("zot", "zot", _stack(dns_installed=True), lambda: zone) == ["zot.lab.example."]


def test_powerdns_client_sends_replace(monkeypatch):
    sent = []

    class Resp:
        status_code = 204
        text = ""

    def fake_request(method, url, json=None, headers=None, timeout=None):
        sent.append((method, url, json, headers))
        return Resp()

    monkeypatch.setattr(requests, "request", fake_request)

    fqdn = PowerDNSClient("http://10.0.0.11:8081", "key").add_a_record("lab.example", "zot", "10.0.0.12")

    assert fqdn == "zot.lab.example."
    method, url, body, headers = sent[0]
    assert method == "PATCH"
    assert url.endswith("/api/v1/servers/localhost/zones/lab.example.")
    assert body["rrsets"][0]["changetype"] == "REPLACE"
    assert body["rrsets"][0]["records"] == [{"content": "10.0.0.12", "disabled": False}]
    assert headers["X-API-Key"] == "key"


def test_powerdns_client_wraps_http_errors(monkeypatch):
    class Resp:
        status_code = 422
        text = "zone not found"

    monkeypatch.setattr(requests, "request", lambda *a, **k: Resp())

    with pytest.raises(DNSClientError, match="422"):
        PowerDNSClient("http://x:8081", "key").add_a_record("lab.example", "zot", "10.0.0.12")


class Server:
    """Zone listing that fails `down_for` times before answering."""

    def __init__(self, zones=(), down_for=0):
        self.zones = list(zones)
        self.down_for = down_for
        self.created = []

    def list_zones(self):
        if self.down_for:
            self.down_for -= 1
            raise DNSClientError("GET /api/v1/servers/localhost/zones failed: connection refused")
        return list(self.zones)

    def create_zone(self, name, kind="Native"):
        self.created.append(name)


def test_ensure_zones_creates_only_missing_zones():
    cfg = _stack()
    cfg.dns = DNSConfig(kubernetes_zones=[DNSZone(name="k8s.lab.example"), DNSZone(name="lab.example")])
    server = Server(zones=["lab.example."])

    created = ensure_zones(cfg, server, interval=0)

    assert created == ["k8s.lab.example"]
    assert server.created == ["k8s.lab.example"]


def test_ensure_zones_waits_for_the_api():
    server = Server(down_for=2)

    assert ensure_zones(_stack(), server, interval=0) == ["lab.example"]
    assert server.down_for == 0


def test_ensure_zones_gives_up_when_api_stays_down():
    with pytest.raises(DNSClientError, match="PowerDNS API not ready"):
        ensure_zones(_stack(), Server(down_for=1000), timeout=0, interval=0)


def test_ensure_zones_without_domain_is_a_no_op():
    server = Server(down_for=1000)
    assert ensure_zones(_stack(domain=""), server) == []


def test_create_zone_posts_canonical_name(monkeypatch):
    sent = []

    class Resp:
        status_code = 201
        text = ""

    def fake_request(method, url, json=None, headers=None, timeout=None):
        sent.append((method, url, json))
        return Resp()

    monkeypatch.setattr(requests, "request", fake_request)

    PowerDNSClient("http://10.0.0.11:8081", "key").create_zone("lab.example")

    assert sent == [(
        "POST",
        "http://10.0.0.11:8081/api/v1/servers/localhost/zones",
        {"name": "lab.example.", "kind": "Native", "nameservers": []},
    )]
