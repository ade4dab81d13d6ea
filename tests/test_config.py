import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from callsync.core.config import load_config, load_provider_config, resolve_config_path
from callsync.providers.folder import FolderConfig
from callsync.providers.http import HttpConfig

CONFIG_YAML = """
paths:
  storage_root: /sdcard
  recording_dirs: [Call]
  database: /tmp/callsync/recordings.db
watcher:
  settle_delay_seconds: 1.5
  auto_upload: false
correlator:
  tolerance_minutes: 2
upload:
  remote: http
  max_workers: 2
identity:
  user_id: u1
  display_name: Kim
  approved: true
providers:
  http:
    base_url: https://rec.example
  folder:
    root: /tmp/uploads
debug: true
"""


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "config.yaml"

    def tearDown(self):
        self.tmp.cleanup()

    def test_full_config(self):
        self.path.write_text(CONFIG_YAML, encoding="utf-8")
        context = load_config(str(self.path))

        self.assertEqual(context.paths.candidate_dirs(), [Path("/sdcard/Call")])
        self.assertEqual(context.watcher.settle_delay_seconds, 1.5)
        self.assertFalse(context.watcher.auto_upload)
        self.assertTrue(context.watcher.scan_on_start)
        self.assertEqual(context.correlator.tolerance_minutes, 2)
        self.assertEqual(context.upload.max_workers, 2)
        self.assertEqual(context.identity.display_name, "Kim")
        self.assertTrue(context.debug)

        self.assertIsInstance(context.providers["http"], HttpConfig)
        self.assertEqual(context.providers["http"].base_url, "https://rec.example")
        self.assertIsInstance(context.providers["folder"], FolderConfig)
        self.assertEqual(context.providers["folder"].root, "/tmp/uploads")

    def test_missing_file_gives_defaults(self):
        context = load_config(str(self.path))
        self.assertEqual(context.upload.remote, "folder")
        self.assertEqual(context.watcher.settle_delay_seconds, 3.0)
        self.assertEqual(context.correlator.tolerance_minutes, 5.0)
        self.assertIsNone(context.identity.user_id)
        # The active remote always gets a validated config
        self.assertIsInstance(context.providers["folder"], FolderConfig)

    def test_http_api_key_from_environment(self):
        self.path.write_text("upload:\n  remote: http\n", encoding="utf-8")
        with patch.dict(os.environ, {"CALLSYNC_HTTP_API_KEY": "from-env"}):
            context = load_config(str(self.path))
        self.assertEqual(context.providers["http"].api_key.get_secret_value(), "from-env")

    def test_unknown_provider_keeps_raw_section(self):
        self.assertEqual(load_provider_config("nonexistent", {"a": 1}), {"a": 1})

    def test_explicit_path_wins(self):
        self.assertEqual(resolve_config_path(str(self.path)), self.path)


if __name__ == '__main__':
    unittest.main()
