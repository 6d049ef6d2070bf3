import json

import pytest

from pingrelay import __main__ as cli
from pingrelay.core import settings
from pingrelay.core.command import ProbeRequest
from pingrelay.host import app


@pytest.fixture
def captured_runs(monkeypatch, tmp_path):
    """Replace run_console so main() never spawns anything."""
    monkeypatch.setattr(settings, "SETTINGS_PATH", tmp_path / "settings.json")
    runs = []

    def fake_run_console(requests, timeout_s=None, **kwargs):
        runs.append((requests, timeout_s))
        return 0

    monkeypatch.setattr(app, "run_console", fake_run_console)
    return runs


def test_list_servers(capsys) -> None:
    assert cli.main(["--list"]) == 0
    out = capsys.readouterr().out
    assert "pingtest-ams.brawlhalla.com" in out
    assert len(out.strip().splitlines()) == 9


def test_targets_become_requests(captured_runs) -> None:
    assert cli.main(["-c", "3", "lo=127.0.0.1", "eu", "--timeout", "5"]) == 0
    requests, timeout_s = captured_runs[0]
    assert requests == [
        ProbeRequest("lo", "127.0.0.1", 3),
        ProbeRequest("eu", "pingtest-ams.brawlhalla.com", 3),
    ]
    assert timeout_s == 5.0


def test_all_uses_catalog_and_default_count(captured_runs) -> None:
    assert cli.main(["--all"]) == 0
    requests, _ = captured_runs[0]
    assert len(requests) == 9
    assert all(r.count == 100 for r in requests)


def test_count_from_settings(captured_runs) -> None:
    settings.SETTINGS_PATH.write_text(json.dumps({"ping_count": 7}), encoding="utf-8")
    cli.main(["8.8.8.8"])
    requests, _ = captured_runs[0]
    assert requests[0].count == 7


@pytest.mark.parametrize("value", ["4", 4.0, " 4 "])
def test_count_from_settings_accepts_numeric_forms(captured_runs, value) -> None:
    settings.SETTINGS_PATH.write_text(json.dumps({"ping_count": value}), encoding="utf-8")
    assert cli.main(["8.8.8.8"]) == 0
    requests, _ = captured_runs[0]
    assert requests[0].count == 4


@pytest.mark.parametrize("value", ["four", 0, -3, 2.5, True, [4]])
def test_invalid_settings_count_falls_back(captured_runs, caplog, value) -> None:
    settings.SETTINGS_PATH.write_text(json.dumps({"ping_count": value}), encoding="utf-8")
    assert cli.main(["8.8.8.8"]) == 0
    requests, _ = captured_runs[0]
    assert requests[0].count == 100
    assert "Invalid ping_count" in caplog.text
    assert str(settings.SETTINGS_PATH) in caplog.text


def test_count_flag_overrides_bad_settings(captured_runs, caplog) -> None:
    settings.SETTINGS_PATH.write_text(json.dumps({"ping_count": "bogus"}), encoding="utf-8")
    assert cli.main(["-c", "2", "8.8.8.8"]) == 0
    requests, _ = captured_runs[0]
    assert requests[0].count == 2
    assert "Invalid ping_count" not in caplog.text


@pytest.mark.parametrize("argv", [
    [],
    ["8.8.8.8; rm -rf /"],
    ["-c", "0", "8.8.8.8"],
    ["a=1.1.1.1", "a=8.8.8.8"],
])
def test_rejected_arguments(captured_runs, argv) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    assert excinfo.value.code == 2
    assert captured_runs == []
