import threading

import pytest
from pydantic import ValidationError

from core.errors import ScanCancelled
from core.models import ScanConfig, ScanStatus
from pipeline import liveness
from pipeline.orchestrator import Orchestrator
from probers import banner


def _fake_banners(monkeypatch, texts, calls=None):
    def fake(host, port, timeout):
        if calls is not None:
            calls.append(port)
        if port in texts:
            return texts[port], None
        return "", ConnectionResetError("reset")

    monkeypatch.setattr(banner, "grab_banner", fake)


def test_scan_host_builds_sorted_annotated_report(fake_probe, monkeypatch):
    fake_probe({80, 22, 4444})
    _fake_banners(monkeypatch, {22: "SSH-2.0-OpenSSH_8.9 ", 4444: "HTTP/1.1 400 Bad Request"})
    orch = Orchestrator()
    report, err = orch.scan_host(ScanConfig(host="10.0.0.5", start_port=1, end_port=5000, concurrency=50, timeout_s=0.2))
    assert err is None
    assert report.open_ports == [22, 80, 4444]
    services = {p.port: p.service for p in report.ports}
    assert services == {22: "SSH", 80: "HTTP", 4444: "HTTP"}
    assert report.ports[1].banner == ""
    assert report.os_guess == "Likely Linux/Unix or Network Device"
    assert orch.results() == [report]


def test_cancelled_scan_keeps_ports_without_banners(fake_probe, monkeypatch):
    fake_probe({22})
    calls = []
    _fake_banners(monkeypatch, {22: "SSH"}, calls=calls)
    cancel = threading.Event()
    cancel.set()
    orch = Orchestrator()
    report, err = orch.scan_host(ScanConfig(host="h", start_port=1, end_port=10, concurrency=2, timeout_s=0.1, cancel=cancel))
    assert isinstance(err, ScanCancelled)
    assert report.status == ScanStatus.CANCELLED
    assert calls == []
    assert len(orch.results()) == 1


def test_sweep_skips_dead_hosts(fake_probe, monkeypatch):
    fake_probe({7})
    _fake_banners(monkeypatch, {})
    monkeypatch.setattr(liveness, "is_alive", lambda host, timeout=None, cancel=None: host.endswith(".2"))
    orch = Orchestrator()
    reports, err = orch.sweep("10.0.0.1-10.0.0.3", start_port=1, end_port=10, concurrency=2, timeout_s=0.1)
    assert err is None
    assert [r.host for r in reports] == ["10.0.0.2"]
    assert reports[0].open_ports == [7]


def test_sweep_stops_when_cancelled(fake_probe, monkeypatch):
    fake_probe({7})
    checked = []
    monkeypatch.setattr(liveness, "is_alive", lambda host, timeout=None, cancel=None: checked.append(host) or True)
    cancel = threading.Event()
    cancel.set()
    reports, err = Orchestrator().sweep("10.0.0.1-10.0.0.3", end_port=10, cancel=cancel)
    assert reports == []
    assert checked == []
    assert isinstance(err, ScanCancelled)


@pytest.mark.parametrize("options", [
    {"start_port": 100, "end_port": 50},
    {"concurrency": 0},
    {"timeout_s": 0},
])
def test_sweep_rejects_bad_options_before_liveness(monkeypatch, options):
    checked = []
    monkeypatch.setattr(liveness, "is_alive", lambda host, timeout=None, cancel=None: checked.append(host) or False)
    orch = Orchestrator()
    with pytest.raises(ValidationError):
        orch.sweep("10.0.0.1-10.0.0.3", **options)
    assert checked == []
    assert orch.results() == []


def test_sweep_hosts_share_one_cancel_event(fake_probe, monkeypatch):
    fake_probe({7})
    _fake_banners(monkeypatch, {})
    monkeypatch.setattr(liveness, "is_alive", lambda host, timeout=None, cancel=None: True)
    seen = []
    real_scan_host = Orchestrator.scan_host

    def spy(self, config, **kwargs):
        seen.append(config)
        return real_scan_host(self, config, **kwargs)

    monkeypatch.setattr(Orchestrator, "scan_host", spy)
    cancel = threading.Event()
    reports, err = Orchestrator().sweep("10.0.0.1-10.0.0.2", end_port=10, concurrency=2, timeout_s=0.1, cancel=cancel)
    assert err is None
    assert [c.host for c in seen] == ["10.0.0.1", "10.0.0.2"]
    assert all(c.cancel is cancel and c.end_port == 10 for c in seen)
