from __future__ import annotations

import runpy
import signal
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for _pkg_dir in ("apps/controller", "packages/core", "packages/actuators", "packages/metrics"):
    sys.path.insert(0, str(ROOT / _pkg_dir))

import clusterdial_app.__main__ as controller_main
from clusterdial_app import cli


def test_main_defaults_to_run(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(controller_main, "_cli_main", lambda argv=None: calls.append(list(argv or [])) or 0)

    rc = controller_main.main([])
    assert rc == 0
    assert calls == [["run"]]


def test_main_passes_through_args(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(controller_main, "_cli_main", lambda argv=None: calls.append(list(argv or [])) or 0)

    rc = controller_main.main(["doctor", "--export"])
    assert rc == 0
    assert calls == [["doctor", "--export"]]


def test_main_module_runpath_without_package_context() -> None:
    main_path = ROOT / "apps" / "controller" / "clusterdial_app" / "__main__.py"
    result = runpy.run_path(str(main_path))
    assert "main" in result


def test_run_once_dry_run_leaves_hardware_idle(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    for name in ("NEW_RELIC_ACCOUNT_ID", "INSIGHTS_QUERY", "NEW_RELIC_INSIGHTS_QUERY_KEY", "DEBUG", "SLEEP_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(cli, "install_crash_hooks", lambda: None)
    monkeypatch.setattr(signal, "signal", lambda *_args: None)

    drivers = []
    real_build_driver = cli.build_driver

    def _build_driver(cfg):
        driver = real_build_driver(cfg)
        driver._sleep = lambda _s: None
        drivers.append(driver)
        return driver

    monkeypatch.setattr(cli, "build_driver", _build_driver)

    args = cli.build_parser().parse_args(["run", "--dry-run", "--once"])
    assert cli.cmd_run(args) == 0

    transport = drivers[0].transport
    pins = drivers[0].pins
    # No account configured: the single cycle shows the error display, then teardown clears it.
    assert not transport.is_open
    assert not any(transport.levels[pin] for pin in pins.light_pins())
    assert drivers[0].last_angle == 180
