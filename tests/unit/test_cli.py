import io
import json
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "apps" / "controller"))
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "actuators"))
sys.path.insert(0, str(ROOT / "packages" / "metrics"))

from clusterdial_actuators import DryRunTransport, GpioTransport
from clusterdial_app import cli
from clusterdial_core.config import AppConfig
from clusterdial_metrics import ClusterSnapshot, FetchFailure, FetchSuccess, InsightsSource


class CliTests(unittest.TestCase):
    def test_run_command(self):
        parser = cli.build_parser()
        args = parser.parse_args(["run", "--debug", "--sleep-seconds", "60", "--dry-run"])
        self.assertEqual(args.command, "run")
        self.assertTrue(args.debug)
        self.assertEqual(args.sleep_seconds, 60)
        self.assertTrue(args.dry_run)
        self.assertFalse(args.once)

    def test_doctor_command(self):
        parser = cli.build_parser()
        args = parser.parse_args(["--config", "x.json", "doctor", "--export"])
        self.assertEqual(args.command, "doctor")
        self.assertEqual(args.config, "x.json")
        self.assertTrue(args.export)

    def test_config_init_command(self):
        parser = cli.build_parser()
        args = parser.parse_args(["config", "init", "--force"])
        self.assertEqual(args.config_cmd, "init")
        self.assertTrue(args.force)

    def test_build_driver_respects_dry_run(self):
        cfg = AppConfig()
        self.assertIsInstance(cli.build_driver(cfg).transport, GpioTransport)
        cfg.device.dry_run = True
        self.assertIsInstance(cli.build_driver(cfg).transport, DryRunTransport)

    def test_build_source_defaults_to_insights(self):
        cfg = AppConfig()
        cfg.source.account_id = "1"
        source = cli.build_source(cfg)
        self.assertIsInstance(source, InsightsSource)
        self.assertEqual(source.account_id, "1")

    def test_fetch_prints_display_plan(self):
        snap = ClusterSnapshot.from_percents(cpu=20, mem=95, disk=10)
        args = cli.build_parser().parse_args(["fetch"])
        buf = io.StringIO()
        with patch.object(InsightsSource, "fetch", return_value=FetchSuccess(snapshot=snap)), redirect_stdout(buf):
            rc = cli.cmd_fetch(args)
        self.assertEqual(rc, 0)
        out = json.loads(buf.getvalue())
        self.assertEqual(out["worst"], "memory")
        self.assertEqual(out["angle"], 9)
        self.assertTrue(out["alarm"])

    def test_fetch_failure_exit_code(self):
        args = cli.build_parser().parse_args(["fetch"])
        buf = io.StringIO()
        with patch.object(InsightsSource, "fetch", return_value=FetchFailure(reason="down")), redirect_stdout(buf):
            rc = cli.cmd_fetch(args)
        self.assertEqual(rc, 2)
        self.assertFalse(json.loads(buf.getvalue())["success"])

    def test_config_init_writes_file_once(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "conf" / "config.json"
            args = cli.build_parser().parse_args(["--config", str(path), "config", "init"])
            with redirect_stdout(io.StringIO()):
                self.assertEqual(cli.cmd_config_init(args), 0)
            self.assertTrue(path.exists())
            with patch("sys.stderr", io.StringIO()):
                self.assertEqual(cli.cmd_config_init(args), 1)

    def test_main_sizes_log_rotation_from_config(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text(json.dumps({"diagnostics": {"keep_log_files": 12}}), encoding="utf-8")
            with patch.object(cli, "configure_logging") as configure, patch.object(
                InsightsSource, "fetch", return_value=FetchFailure(reason="down")
            ), redirect_stdout(io.StringIO()):
                rc = cli.main(["--config", str(path), "fetch"])
        self.assertEqual(rc, 2)
        self.assertEqual(configure.call_args.kwargs["keep_files"], 12)

    def test_doctor_export_bundles_logged_loop_events(self):
        events = [{"event": "error_display", "state": "ErrorDisplay", "reason": "down"}]
        with tempfile.TemporaryDirectory() as tmp:
            args = cli.build_parser().parse_args(["doctor", "--export", "--out-dir", tmp])
            bundle_path = Path(tmp) / "bundle.zip"
            with patch.object(cli, "read_loop_events", return_value=events), \
                patch.object(cli, "build_doctor_payload", return_value={"pins": {}}), \
                patch.object(cli.DiagnosticsExporter, "bundle", return_value=bundle_path) as bundle, \
                redirect_stdout(io.StringIO()):
                self.assertEqual(cli.cmd_doctor(args), 0)
        self.assertEqual(bundle.call_args.kwargs["recent_loop_events"], events)


if __name__ == "__main__":
    unittest.main()
