import unittest
from pathlib import Path

from callsync.core.models import (
    CallLogEntry, CallType, PathsConfig, Recording, UploadStatus, recording_id_for
)


class TestUploadStatus(unittest.TestCase):
    def test_allowed_transitions(self):
        self.assertTrue(UploadStatus.PENDING.can_transition_to(UploadStatus.UPLOADING))
        self.assertTrue(UploadStatus.UPLOADING.can_transition_to(UploadStatus.DONE))
        self.assertTrue(UploadStatus.UPLOADING.can_transition_to(UploadStatus.FAILED))
        self.assertTrue(UploadStatus.FAILED.can_transition_to(UploadStatus.UPLOADING))

    def test_forbidden_transitions(self):
        self.assertFalse(UploadStatus.PENDING.can_transition_to(UploadStatus.DONE))
        self.assertFalse(UploadStatus.FAILED.can_transition_to(UploadStatus.DONE))
        for target in UploadStatus:
            self.assertFalse(UploadStatus.DONE.can_transition_to(target))

    def test_retryable(self):
        self.assertEqual(
            {s for s in UploadStatus if s.is_retryable},
            {UploadStatus.PENDING, UploadStatus.FAILED},
        )


class TestModels(unittest.TestCase):
    def test_recording_id_is_stable(self):
        self.assertEqual(recording_id_for(Path("/sdcard/Call/a.m4a")), recording_id_for("/sdcard/Call/a.m4a"))
        self.assertNotEqual(recording_id_for(Path("/sdcard/Call/a.m4a")), recording_id_for(Path("/sdcard/Call/b.m4a")))
        self.assertEqual(len(recording_id_for(Path("/x"))), 16)

    def test_negative_duration_is_clamped(self):
        recording = Recording(id="r", file_name="a.m4a", file_path="/a.m4a", recorded_at=1, duration=-5)
        self.assertEqual(recording.duration, 0)

    def test_recording_defaults(self):
        recording = Recording(id="r", file_name="a.m4a", file_path="/a.m4a", recorded_at=1)
        self.assertEqual(recording.upload_status, UploadStatus.PENDING)
        self.assertEqual(recording.call_type, CallType.UNKNOWN)
        self.assertIsNone(recording.remote_url)
        self.assertGreater(recording.created_at, 0)

    def test_other_call_types_map_to_unknown(self):
        for raw in ["missed", "rejected", "blocked", None, 5]:
            with self.subTest(raw=raw):
                self.assertEqual(CallLogEntry(timestamp=0, call_type=raw).call_type, CallType.UNKNOWN)
        self.assertEqual(CallLogEntry(timestamp=0, call_type="Incoming").call_type, CallType.INCOMING)

    def test_candidate_dirs_in_priority_order(self):
        dirs = PathsConfig(storage_root="/sdcard").candidate_dirs()
        self.assertEqual(dirs[0], Path("/sdcard/Recordings/Call"))
        self.assertEqual(dirs[-1], Path("/sdcard/Sounds/Call"))
        self.assertEqual(len(dirs), 4)


if __name__ == '__main__':
    unittest.main()
