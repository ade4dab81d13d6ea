import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from callsync.core.models import CallerInfo, Recording
from callsync.core.store import RecordingStore
from callsync.correlator import CallLogCorrelator
from callsync.scanner import DirectoryScanner, list_recording_files, locate_recording_directory

from tests.helpers import write_audio


class TestDirectoryScanner(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.store = RecordingStore(self.root / "db" / "recordings.db")
        self.candidates = [self.root / "Recordings" / "Call", self.root / "Call"]
        self.scanner = DirectoryScanner(self.candidates, self.store, CallLogCorrelator(None))

    def tearDown(self):
        self.tmp.cleanup()

    def test_no_directory_yields_empty_list(self):
        self.assertIsNone(self.scanner.directory)
        self.assertEqual(self.scanner.scan(), [])

    def test_first_existing_candidate_wins(self):
        (self.root / "Call").mkdir()
        self.assertEqual(locate_recording_directory(self.candidates), self.root / "Call")
        (self.root / "Recordings" / "Call").mkdir(parents=True)
        self.assertEqual(locate_recording_directory(self.candidates), self.root / "Recordings" / "Call")

    def test_only_audio_files_newest_first(self):
        directory = self.root / "Call"
        write_audio(directory / "old 010-1111-2222.m4a", mtime_ms=1_700_000_000_000)
        write_audio(directory / "new 010-3333-4444.MP3", mtime_ms=1_700_000_100_000)
        write_audio(directory / "notes.txt")
        write_audio(directory / ".pending.m4a")
        (directory / "sub.m4a").mkdir()

        names = [p.name for p in list_recording_files(directory)]
        self.assertEqual(names, ["new 010-3333-4444.MP3", "old 010-1111-2222.m4a"])

        device_files = self.scanner.scan()
        self.assertEqual([f.caller.phone_number for f in device_files], ["01033334444", "01011112222"])
        self.assertEqual(device_files[0].recorded_at, 1_700_000_100_000)

    def test_marks_files_already_in_store(self):
        directory = self.root / "Call"
        added = write_audio(directory / "a.m4a")
        write_audio(directory / "b.m4a")
        self.store.insert_or_replace(Recording(
            id="a", file_name="a.m4a", file_path=str(added.absolute()), recorded_at=1,
        ))

        flags = {f.file_name: f.is_already_added for f in self.scanner.scan()}
        self.assertEqual(flags, {"a.m4a": True, "b.m4a": False})

    def test_scan_does_not_write_to_store(self):
        write_audio(self.root / "Call" / "a.m4a")
        listener = MagicMock()
        self.store.add_listener(listener)
        self.scanner.scan()
        self.assertEqual(self.store.list_all(), [])
        listener.assert_not_called()

    def test_caller_comes_from_correlator(self):
        write_audio(self.root / "Call" / "a.m4a", mtime_ms=1_700_000_000_000)
        correlator = MagicMock(spec=CallLogCorrelator)
        correlator.resolve.return_value = CallerInfo(phone_number="0101", contact_name="Kim")
        scanner = DirectoryScanner(self.candidates, self.store, correlator)

        device_files = scanner.scan()
        self.assertEqual(device_files[0].caller.contact_name, "Kim")
        correlator.resolve.assert_called_once_with("a.m4a", 1_700_000_000_000)


if __name__ == '__main__':
    unittest.main()
