import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from calendar_sync import dependencies
from calendar_sync.config import Settings
from calendar_sync.dependencies import build_store, get_snapshot_store
from calendar_sync.server import build_parser, main, resolve_settings
from calendar_sync.storage import FileSnapshotStore, InMemorySnapshotStore


class ResolveSettingsTests(unittest.TestCase):
    def test_cli_overrides_settings(self):
        base = Settings(_env_file=None)
        args = build_parser().parse_args(["--port", "9000", "-d", "/tmp/sync"])
        settings = resolve_settings(args, base=base)
        self.assertEqual(settings.port, 9000)
        self.assertEqual(settings.data_dir, "/tmp/sync")
        self.assertEqual(settings.host, base.host)

    def test_no_overrides_returns_base(self):
        base = Settings(_env_file=None)
        args = build_parser().parse_args([])
        self.assertIs(resolve_settings(args, base=base), base)


class BuildStoreTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmpdir, ignore_errors=True)

    def test_file_store_creates_directory(self):
        data_dir = os.path.join(self.tmpdir, "nested", "store")
        store = build_store(Settings(_env_file=None, data_dir=data_dir))
        self.assertIsInstance(store, FileSnapshotStore)
        self.assertTrue(os.path.isdir(data_dir))

    def test_in_memory_toggle(self):
        store = build_store(Settings(_env_file=None, use_in_memory_store=True))
        self.assertIsInstance(store, InMemorySnapshotStore)

    @patch("calendar_sync.dependencies.get_settings")
    def test_get_snapshot_store_is_singleton(self, mock_settings):
        mock_settings.return_value = Settings(_env_file=None, use_in_memory_store=True)
        with patch.object(dependencies, "_snapshot_store", None):
            first = get_snapshot_store()
            self.assertIs(first, get_snapshot_store())
        mock_settings.assert_called_once()


class MainTests(unittest.TestCase):
    @patch("calendar_sync.server.uvicorn.run")
    @patch("calendar_sync.server.get_settings")
    def test_main_runs_uvicorn_with_resolved_settings(self, mock_settings, mock_run):
        tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmpdir, ignore_errors=True)
        mock_settings.return_value = Settings(_env_file=None)

        exit_code = main(["--port", "4100", "--data-dir", tmpdir])

        self.assertEqual(exit_code, 0)
        mock_run.assert_called_once()
        _, kwargs = mock_run.call_args
        self.assertEqual(kwargs["port"], 4100)
        self.assertTrue(os.path.isdir(tmpdir))


if __name__ == "__main__":
    unittest.main()
