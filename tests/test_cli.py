import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

from fundflow.adapters.providers.static_provider_adapter import StaticProviderAdapter
from fundflow.cli.main import main
from fundflow.core.enums import CryptoType
from fundflow.core.models import Transaction


def _providers():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return {
        CryptoType.ETH: StaticProviderAdapter([
            Transaction("0xaaaa", "0xbbbb", "1.0000", CryptoType.ETH, ts, "0x1"),
            Transaction("0xaaaa", "0xbbbb", "2.0000", CryptoType.ETH, ts, "0x2"),
        ], crypto_type=CryptoType.ETH, provider_key="ethereum"),
    }


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)
        self.store = str(self.root / "sessions")
        patcher = mock.patch("fundflow.cli.main.build_providers", side_effect=_providers)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _run(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(["--store", self.store, "--user", "u1", *argv])
        return code, out.getvalue(), err.getvalue()

    def _create(self, name="case 1") -> str:
        code, _, _ = self._run("create", name)
        self.assertEqual(code, 0)
        newest = max(Path(self.store).glob("*.json"), key=lambda p: p.stat().st_mtime)
        return newest.stem

    def test_create_and_list(self) -> None:
        sid = self._create()

        code, out, _ = self._run("sessions")

        self.assertEqual(code, 0)
        self.assertIn(sid, out)
        self.assertIn("case 1", out)

    def test_add_label_and_export(self) -> None:
        sid = self._create()

        code, out, _ = self._run("add", sid, "0xAAAA", "--type", "ETH")
        self.assertEqual(code, 0)
        self.assertIn("0xaaaa -> 0xbbbb | 1.0000 ETH", out)

        self.assertEqual(self._run("label", sid, "0xbbbb", "Victim")[0], 0)

        out_dir = self.root / "out"
        code, out, _ = self._run("export", sid, "--out", str(out_dir))
        self.assertEqual(code, 0)
        graph = json.loads((out_dir / "graph.json").read_text(encoding="utf-8"))
        self.assertEqual(len(graph["edges"]), 1)
        self.assertEqual(graph["edges"][0]["label"], "3 ETH (2)")
        colors = {n["id"]: n["color"] for n in graph["nodes"]}
        self.assertEqual(colors, {"0xaaaa": "#FF0000", "0xbbbb": "blue"})
        accounts = (out_dir / "accounts.md").read_text(encoding="utf-8")
        self.assertIn("| 0xbbbb | ETH | 0.0000 ETH | 3.0000 ETH |", accounts)

    def test_unknown_session_exits_with_error(self) -> None:
        code, _, err = self._run("accounts", "0123abcd")

        self.assertEqual(code, 1)
        self.assertIn("Session not found", err)

    def test_missing_provider_exits_with_config_error(self) -> None:
        sid = self._create()

        code, _, err = self._run("add", sid, "1Abc", "--type", "BTC")

        self.assertEqual(code, 2)
        self.assertIn("No provider configured for BTC", err)


if __name__ == "__main__":
    unittest.main()
