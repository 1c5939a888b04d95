import os
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from artist_batches.config import MirrorSettings
from artist_batches.mirror import PythonMirror, RsyncMirror, create_mirror
from artist_batches.models import OperationFailure


class TestPythonMirror(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        tmp = Path(self._tmp.name)
        self.source = tmp / "src"
        self.target = tmp / "dst"
        (self.source / "Air" / "Moon Safari").mkdir(parents=True)
        (self.source / "Air" / "Moon Safari" / "01.flac").write_bytes(b"la femme")
        (self.source / "Beck").mkdir()
        (self.source / "Beck" / "loser.mp3").write_bytes(b"loser")
        old = 1_600_000_000
        os.utime(self.source / "Beck" / "loser.mp3", (old, old))

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_copies_tree_with_timestamps(self) -> None:
        stats = PythonMirror().mirror(self.source, self.target)
        self.assertEqual(stats.copied, 2)
        copied = self.target / "Beck" / "loser.mp3"
        self.assertEqual(copied.read_bytes(), b"loser")
        self.assertEqual(int(copied.stat().st_mtime), 1_600_000_000)
        self.assertTrue((self.target / "Air" / "Moon Safari" / "01.flac").exists())

    def test_second_run_is_incremental(self) -> None:
        mirror = PythonMirror()
        mirror.mirror(self.source, self.target)
        stats = mirror.mirror(self.source, self.target)
        self.assertEqual(stats.copied, 0)
        self.assertEqual(stats.unchanged, 2)

    def test_changed_files_are_recopied_and_extras_kept(self) -> None:
        mirror = PythonMirror()
        mirror.mirror(self.source, self.target)
        (self.target / "Cake").mkdir()
        (self.source / "Beck" / "loser.mp3").write_bytes(b"loser (remaster)")

        stats = mirror.mirror(self.source, self.target)

        self.assertEqual(stats.copied, 1)
        self.assertEqual(
            (self.target / "Beck" / "loser.mp3").read_bytes(), b"loser (remaster)"
        )
        self.assertTrue((self.target / "Cake").is_dir())

    def test_link_replaces_real_copy_in_target(self) -> None:
        elsewhere = self.source.parent / "elsewhere"
        (elsewhere / "Cake").mkdir(parents=True)
        os.symlink(elsewhere / "Cake", self.source / "Cake")
        (self.target / "Cake" / "Comfort").mkdir(parents=True)

        PythonMirror().mirror(self.source, self.target)

        self.assertTrue((self.target / "Cake").is_symlink())
        self.assertEqual(os.readlink(self.target / "Cake"), str(elsewhere / "Cake"))

    def test_copy_failure_is_fatal(self) -> None:
        with patch("artist_batches.mirror.shutil.copy2", side_effect=OSError("disk full")):
            with self.assertRaises(OperationFailure):
                PythonMirror().mirror(self.source, self.target)


class TestRsyncMirror(unittest.TestCase):
    def test_command_copies_directory_contents(self) -> None:
        mirror = RsyncMirror(MirrorSettings(extra_args=["--no-perms"]))
        cmd = mirror.command(Path("/music"), Path("/usb/.artists_flat_temp"))
        self.assertEqual(
            cmd,
            [
                "rsync",
                "-a",
                "--info=progress2",
                "--no-perms",
                f"/music{os.sep}",
                f"/usb/.artists_flat_temp{os.sep}",
            ],
        )

    def test_nonzero_exit_is_fatal(self) -> None:
        mirror = RsyncMirror(MirrorSettings(progress=False))
        error = subprocess.CalledProcessError(23, ["rsync"])
        with patch("artist_batches.mirror.subprocess.run", side_effect=error):
            with self.assertRaises(OperationFailure):
                mirror.mirror(Path("/music"), Path("/usb/staging"))

    def test_missing_executable_is_fatal(self) -> None:
        mirror = RsyncMirror(MirrorSettings(rsync_path="/nonexistent/rsync"))
        with patch(
            "artist_batches.mirror.subprocess.run", side_effect=FileNotFoundError()
        ):
            with self.assertRaises(OperationFailure):
                mirror.mirror(Path("/music"), Path("/usb/staging"))


class TestCreateMirror(unittest.TestCase):
    def test_auto_falls_back_to_python_without_rsync(self) -> None:
        with patch("artist_batches.mirror.shutil.which", return_value=None):
            mirror = create_mirror(MirrorSettings(backend="auto"))
        self.assertIsInstance(mirror, PythonMirror)

    def test_auto_prefers_rsync(self) -> None:
        with patch("artist_batches.mirror.shutil.which", return_value="/usr/bin/rsync"):
            mirror = create_mirror(MirrorSettings(backend="auto"))
        self.assertIsInstance(mirror, RsyncMirror)

    def test_explicit_backend(self) -> None:
        self.assertIsInstance(create_mirror(MirrorSettings(backend="python")), PythonMirror)


if __name__ == "__main__":
    unittest.main()
