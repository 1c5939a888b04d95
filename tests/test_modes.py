import tempfile
import unittest
from pathlib import Path

from artist_batches.manifest import BatchManifest
from artist_batches.models import RunMode
from artist_batches.modes import BatchFolderMatcher, detect_mode

STAGING = ".artists_flat_temp"


class TestDetectMode(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dest = Path(self._tmp.name) / "dest"
        self.dest.mkdir()
        self.staging = self.dest / STAGING
        self.matcher = BatchFolderMatcher(" - ")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _detect(self, matcher: BatchFolderMatcher | None = None) -> RunMode:
        return detect_mode(self.dest, self.staging, matcher or self.matcher)

    def test_empty_destination_is_fresh(self) -> None:
        self.assertIs(self._detect(), RunMode.FRESH)

    def test_missing_destination_is_fresh(self) -> None:
        missing = Path(self._tmp.name) / "nowhere"
        self.assertIs(
            detect_mode(missing, missing / STAGING, self.matcher), RunMode.FRESH
        )

    def test_batch_folder_means_sync(self) -> None:
        (self.dest / "ABBA - Beck").mkdir()
        self.assertIs(self._detect(), RunMode.SYNC)

    def test_staging_area_means_recovery(self) -> None:
        (self.dest / "ABBA - Beck").mkdir()
        self.staging.mkdir()
        self.assertIs(self._detect(), RunMode.RECOVERY)

    def test_unrelated_content_is_fresh(self) -> None:
        (self.dest / "Podcasts").mkdir()
        (self.dest / "Old - Stuff.txt").write_text("x", encoding="utf-8")
        (self.dest / ".cache - dir").mkdir()
        self.assertIs(self._detect(), RunMode.FRESH)

    def test_detection_is_repeatable(self) -> None:
        (self.dest / "ABBA - Beck").mkdir()
        self.assertEqual(self._detect(), self._detect())
        self.assertTrue((self.dest / "ABBA - Beck").is_dir())
        self.assertFalse(self.staging.exists())

    def test_manifest_narrows_batch_folder_recognition(self) -> None:
        (self.dest / "Earth - Wind").mkdir()
        manifest = BatchManifest(batches={"ABBA - Beck"})
        matcher = BatchFolderMatcher(" - ", manifest)
        self.assertIs(self._detect(matcher), RunMode.FRESH)
        (self.dest / "ABBA - Beck").mkdir()
        self.assertIs(self._detect(matcher), RunMode.SYNC)
        self.assertEqual(
            [p.name for p in matcher.batch_folders(self.dest)], ["ABBA - Beck"]
        )


class TestBatchFolderMatcher(unittest.TestCase):
    def test_batch_folders_sorted_case_insensitively(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            dest = Path(tmpdir)
            for name in ("zed - zoo", "Air - Beck", "beck - cake", "Other"):
                (dest / name).mkdir()
            matcher = BatchFolderMatcher(" - ")
            self.assertEqual(
                [p.name for p in matcher.batch_folders(dest)],
                ["Air - Beck", "beck - cake", "zed - zoo"],
            )

    def test_hidden_names_never_match(self) -> None:
        matcher = BatchFolderMatcher(" - ")
        self.assertFalse(matcher.matches(".a - b"))
        self.assertTrue(matcher.matches("a - b"))
        self.assertFalse(matcher.matches("a-b"))


if __name__ == "__main__":
    unittest.main()
