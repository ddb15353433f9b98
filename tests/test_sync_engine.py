"""Tests for the sync engine."""

import io
from unittest.mock import Mock

import pytest

from pyfoldersync.exceptions import (
    ListingFailedError,
    NotAccessibleError,
    StreamOpenError,
)
from pyfoldersync.handles import Handle, LocalHandle
from pyfoldersync.sync import (
    SyncEngine,
    SyncMode,
    SyncProgressEvent,
    SyncProgressTracker,
    SyncResult,
)
from pyfoldersync.sync.scanner import TreeEnumerator

from .conftest import mtime_ms, write_file

T0 = 1_700_000_000_000


def _tree(root):
    """Map relative path to content for every file below root."""
    return {
        path.relative_to(root).as_posix(): path.read_text()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def engine():
    return SyncEngine()


class TestPreconditions:
    """Tests for unresolvable root handles."""

    def test_source_none(self, engine, dest):
        result = engine.synchronize(None, dest)

        assert result == SyncResult(
            success=False, errors=("Source folder not accessible",)
        )

    def test_destination_missing(self, engine, source, tmp_path, make_file):
        make_file(source.path, "a.txt", "A")

        result = engine.synchronize(source, LocalHandle(tmp_path / "missing"))

        assert result.success is False
        assert result.errors == ("Destination folder not accessible",)
        assert result.files_scanned == 0
        assert result.files_copied == 0
        assert not (tmp_path / "missing").exists()

    def test_root_is_a_file(self, engine, dest, tmp_path):
        path = write_file(tmp_path, "file.txt", "x")

        result = engine.synchronize(LocalHandle(path), dest, SyncMode.ONE_WAY)

        assert result.errors == ("Source folder not accessible",)

    def test_unexpected_error_is_reported(self, engine, dest):
        source = Mock(spec=Handle)
        source.name = "src"
        source.exists.return_value = True
        source.is_directory = True
        source.list_children.side_effect = RuntimeError("boom")

        result = engine.synchronize(source, dest)

        assert result.success is False
        assert result.errors == ("Sync failed: boom",)


class TestTwoWaySync:
    """Tests for TWO_WAY mode."""

    def test_newer_destination_overwrites_source(self, engine, source, dest):
        src_file = write_file(source.path, "a.txt", "A", mtime_ms=1000)
        write_file(dest.path, "a.txt", "B", mtime_ms=5000)

        result = engine.synchronize(source, dest)

        assert result.success
        assert result.files_updated == 1
        assert result.files_copied == 0
        assert src_file.read_text() == "B"
        assert (dest.path / "a.txt").read_text() == "B"
        assert mtime_ms(src_file) == 5000

    def test_newer_source_overwrites_destination(self, engine, source, dest):
        write_file(source.path, "docs/a.txt", "new", mtime_ms=T0 + 10_000)
        dest_file = write_file(dest.path, "docs/a.txt", "old", mtime_ms=T0)

        result = engine.synchronize(source, dest)

        assert result.files_updated == 1
        assert dest_file.read_text() == "new"
        assert mtime_ms(dest_file) == T0 + 10_000

    def test_copy_creates_intermediate_directory(self, engine, source, dest):
        write_file(source.path, "dir/x.txt", "X")

        result = engine.synchronize(source, dest)

        assert result.success
        assert result.files_copied == 1
        assert (dest.path / "dir").is_dir()
        assert (dest.path / "dir" / "x.txt").read_text() == "X"

    def test_one_sided_files_copied_both_ways(self, engine, source, dest):
        write_file(source.path, "only_src.txt", "s")
        write_file(source.path, "nested/deep/s.bin", "deep")
        write_file(dest.path, "only_dest.txt", "d")
        write_file(dest.path, "other/d.txt", "dd")

        result = engine.synchronize(source, dest)

        assert result.files_copied == 4
        assert _tree(source.path) == _tree(dest.path)
        assert _tree(source.path) == {
            "nested/deep/s.bin": "deep",
            "only_dest.txt": "d",
            "only_src.txt": "s",
            "other/d.txt": "dd",
        }

    @pytest.mark.parametrize("delta", [0, 1, 1999, 2000])
    def test_within_tolerance_unchanged(self, engine, source, dest, delta):
        write_file(source.path, "a.txt", "A", mtime_ms=T0)
        write_file(dest.path, "a.txt", "B", mtime_ms=T0 + delta)

        result = engine.synchronize(source, dest)

        assert result.success
        assert result.files_updated == 0
        assert (source.path / "a.txt").read_text() == "A"
        assert (dest.path / "a.txt").read_text() == "B"

    def test_just_outside_tolerance_updates(self, engine, source, dest):
        write_file(source.path, "a.txt", "A", mtime_ms=T0)
        write_file(dest.path, "a.txt", "B", mtime_ms=T0 + 2001)

        result = engine.synchronize(source, dest)

        assert result.files_updated == 1
        assert (source.path / "a.txt").read_text() == "B"

    def test_second_pass_is_idempotent(self, engine, source, dest):
        write_file(source.path, "a.txt", "A", mtime_ms=1000)
        write_file(dest.path, "a.txt", "B", mtime_ms=5000)
        write_file(source.path, "dir/new.txt", "N")
        write_file(dest.path, "back.txt", "K")

        first = engine.synchronize(source, dest)
        second = engine.synchronize(source, dest)

        assert first.files_copied == 2
        assert first.files_updated == 1
        assert second.files_copied == 0
        assert second.files_updated == 0
        assert second.success

    def test_files_scanned_is_larger_side(self, engine, source, dest):
        for name in ("a", "b", "c"):
            write_file(source.path, f"{name}.txt", name)
        write_file(dest.path, "z/z.txt", "z")

        source_count = len(TreeEnumerator().flatten(source))
        dest_count = len(TreeEnumerator().flatten(dest))
        result = engine.synchronize(source, dest)

        assert result.files_scanned == max(source_count, dest_count) == 3

    def test_deletions_never_propagate(self, engine, source, dest):
        """A file present on one side only is copied, never removed."""
        write_file(dest.path, "keep.txt", "k")

        engine.synchronize(source, dest)

        assert (dest.path / "keep.txt").exists()
        assert (source.path / "keep.txt").read_text() == "k"

    def test_per_file_failure_does_not_abort(self, engine, source, dest):
        """Type clashes fail for their paths only; other files still sync."""
        write_file(source.path, "x/y.txt", "nested")
        write_file(dest.path, "x", "plain file")
        write_file(source.path, "ok.txt", "fine")

        result = engine.synchronize(source, dest)

        assert result.success is False
        assert result.files_copied == 1
        assert len(result.errors) == 2
        assert result.errors[0].startswith("Failed to copy to source x:")
        assert result.errors[1].startswith("Failed to copy to destination x/y.txt")
        assert (dest.path / "ok.txt").read_text() == "fine"

    def test_failed_copy_is_retried_next_pass(
        self, engine, source, dest, monkeypatch
    ):
        """A copy that fails mid-way must not leave a file that wins later."""
        write_file(source.path, "a.txt", "precious", mtime_ms=T0)
        open_read = LocalHandle.open_read_stream
        calls = []

        def flaky_open(handle):
            calls.append(handle)
            if len(calls) == 1:
                raise StreamOpenError("transient read failure")
            return open_read(handle)

        monkeypatch.setattr(LocalHandle, "open_read_stream", flaky_open)

        first = engine.synchronize(source, dest)

        assert first.errors == (
            "Failed to copy to destination a.txt: transient read failure",
        )
        assert not (dest.path / "a.txt").exists()

        second = engine.synchronize(source, dest)

        assert second.success
        assert second.files_copied == 1
        assert second.files_updated == 0
        assert (source.path / "a.txt").read_text() == "precious"
        assert (dest.path / "a.txt").read_text() == "precious"

    def test_unreadable_mtime_fails_only_that_path(
        self, engine, source, dest, monkeypatch
    ):
        write_file(source.path, "a.txt", "A", mtime_ms=T0)
        write_file(dest.path, "a.txt", "B", mtime_ms=T0 + 10_000)
        write_file(source.path, "new.txt", "N")
        stat = LocalHandle.last_modified.fget
        vanished = source.path / "a.txt"

        def flaky_stat(handle):
            if handle.path == vanished:
                raise NotAccessibleError("file vanished")
            return stat(handle)

        monkeypatch.setattr(LocalHandle, "last_modified", property(flaky_stat))

        result = engine.synchronize(source, dest)

        assert result.success is False
        assert result.errors == ("Failed to compare a.txt: file vanished",)
        assert result.files_copied == 1
        assert result.files_updated == 0
        assert (dest.path / "new.txt").read_text() == "N"
        assert (source.path / "a.txt").read_text() == "A"
        assert (dest.path / "a.txt").read_text() == "B"

    def test_symlink_loop_copied_once(self, engine, source, dest):
        write_file(source.path, "a.txt", "A")
        (source.path / "loop").symlink_to(source.path, target_is_directory=True)

        result = engine.synchronize(source, dest)

        assert result.success
        assert result.files_copied == 1
        assert _tree(dest.path) == {"a.txt": "A"}

    def test_dry_run_changes_nothing(self, engine, source, dest):
        write_file(source.path, "a.txt", "A", mtime_ms=1000)
        write_file(dest.path, "a.txt", "B", mtime_ms=5000)
        write_file(source.path, "new.txt", "N")

        result = engine.synchronize(source, dest, dry_run=True)

        assert result.files_copied == 1
        assert result.files_updated == 1
        assert (source.path / "a.txt").read_text() == "A"
        assert not (dest.path / "new.txt").exists()

    def test_progress_events(self, source, dest):
        events = []
        engine = SyncEngine(progress=SyncProgressTracker(callback=events.append))
        write_file(source.path, "a.txt", "A")

        engine.synchronize(source, dest)

        kinds = [info.event for info in events]
        assert kinds[0] == SyncProgressEvent.SCAN_START
        assert SyncProgressEvent.ACTIONS_PLANNED in kinds
        assert SyncProgressEvent.FILE_COPIED in kinds
        assert kinds[-1] == SyncProgressEvent.SYNC_COMPLETE
        copied = next(i for i in events if i.event == SyncProgressEvent.FILE_COPIED)
        assert copied.relative_path == "a.txt"
        assert copied.total_actions == 1

    def test_broken_progress_callback_is_ignored(self, source, dest):
        callback = Mock(side_effect=ValueError("display gone"))
        engine = SyncEngine(progress=SyncProgressTracker(callback=callback))
        write_file(source.path, "a.txt", "A")

        result = engine.synchronize(source, dest)

        assert result.success
        assert (dest.path / "a.txt").exists()


class TestOneWaySync:
    """Tests for ONE_WAY mode."""

    def test_mirrors_tree(self, engine, source, dest):
        write_file(source.path, "a.txt", "A")
        write_file(source.path, "dir/b.txt", "B")

        result = engine.synchronize(source, dest, SyncMode.ONE_WAY)

        assert result.success
        # a.txt, dir and dir/b.txt are all visited
        assert result.files_scanned == 3
        assert result.files_copied == 2
        assert _tree(dest.path) == {"a.txt": "A", "dir/b.txt": "B"}

    def test_never_touches_source(self, engine, source, dest):
        write_file(dest.path, "dest_only.txt", "d")
        write_file(source.path, "a.txt", "old", mtime_ms=T0)
        write_file(dest.path, "a.txt", "newer", mtime_ms=T0 + 60_000)

        result = engine.synchronize(source, dest, SyncMode.ONE_WAY)

        assert result.files_updated == 0
        assert _tree(source.path) == {"a.txt": "old"}
        assert (dest.path / "a.txt").read_text() == "newer"

    def test_newer_source_replaces_destination(self, engine, source, dest):
        write_file(source.path, "a.txt", "new", mtime_ms=T0 + 2001)
        write_file(dest.path, "a.txt", "old", mtime_ms=T0)

        result = engine.synchronize(source, dest, SyncMode.ONE_WAY)

        assert result.files_updated == 1
        assert (dest.path / "a.txt").read_text() == "new"

    def test_tolerance_is_dest_protective(self, engine, source, dest):
        write_file(source.path, "a.txt", "new", mtime_ms=T0 + 2000)
        write_file(dest.path, "a.txt", "old", mtime_ms=T0)

        result = engine.synchronize(source, dest, SyncMode.ONE_WAY)

        assert result.files_updated == 0
        assert (dest.path / "a.txt").read_text() == "old"

    def test_existing_directory_reused(self, engine, source, dest):
        write_file(source.path, "dir/b.txt", "B")
        write_file(dest.path, "dir/keep.txt", "K")

        engine.synchronize(source, dest, SyncMode.ONE_WAY)

        assert _tree(dest.path) == {"dir/b.txt": "B", "dir/keep.txt": "K"}

    def test_listing_failure_continues_with_siblings(self, engine, dest):
        broken = Mock(spec=Handle)
        broken.name = "broken"
        broken.is_directory = True
        broken.list_children.side_effect = ListingFailedError("Permission denied")

        ok_file = Mock(spec=Handle)
        ok_file.name = "ok.txt"
        ok_file.is_directory = False
        ok_file.is_file = True
        ok_file.mime_type = "text/plain"
        ok_file.last_modified = T0
        ok_file.open_read_stream.side_effect = lambda: io.BytesIO(b"ok")

        source = Mock(spec=Handle)
        source.name = "src"
        source.exists.return_value = True
        source.is_directory = True
        source.list_children.return_value = [broken, ok_file]

        result = engine.synchronize(source, dest, SyncMode.ONE_WAY)

        assert result.success is False
        assert result.errors == ("Error scanning broken: Permission denied",)
        assert result.files_scanned == 2
        assert result.files_copied == 1
        assert (dest.path / "broken").is_dir()
        assert (dest.path / "ok.txt").read_text() == "ok"

    def test_file_vs_directory_clash_reported(self, engine, source, dest):
        write_file(source.path, "thing", "file")
        (dest.path / "thing").mkdir()
        write_file(source.path, "other.txt", "o")

        result = engine.synchronize(source, dest, SyncMode.ONE_WAY)

        assert result.success is False
        assert result.errors[0].startswith("Error syncing thing")
        assert result.files_copied == 1

    def test_dry_run_counts_without_copying(self, engine, source, dest):
        write_file(source.path, "a.txt", "A")
        write_file(source.path, "dir/b.txt", "B")
        write_file(source.path, "dir/sub/c.txt", "C")

        result = engine.synchronize(source, dest, SyncMode.ONE_WAY, dry_run=True)

        assert result.files_copied == 3
        assert result.files_scanned == 5
        assert _tree(dest.path) == {}
        assert not (dest.path / "dir").exists()


class TestSubmit:
    def test_submit_runs_on_io_thread(self, engine, source, dest):
        write_file(source.path, "a.txt", "A")

        future = engine.submit(source, dest)
        result = future.result(timeout=10)
        engine.shutdown()

        assert result.files_copied == 1
        assert (dest.path / "a.txt").read_text() == "A"

    def test_shutdown_without_submit(self, engine):
        engine.shutdown()


class TestSyncResult:
    def test_success_follows_errors(self):
        assert SyncResult.from_counts(1, 1, 0, []).success is True
        assert SyncResult.from_counts(1, 0, 0, ["x"]).success is False

    @pytest.mark.parametrize(
        "success,errors", [(True, ("boom",)), (False, ())]
    )
    def test_success_must_match_errors(self, success, errors):
        with pytest.raises(ValueError):
            SyncResult(success, errors=errors)

    def test_immutable(self):
        result = SyncResult(success=True)

        with pytest.raises(AttributeError):
            result.files_copied = 3  # type: ignore[misc]

    def test_status_line(self):
        result = SyncResult(True, files_scanned=3, files_copied=1, files_updated=2)

        assert result.status_line() == "✓ Synced: 1 copied, 2 updated (3 scanned)"
        assert (
            SyncResult(False, errors=("first", "second")).status_line()
            == "✗ Sync failed: first"
        )

    def test_to_dict(self):
        result = SyncResult.from_counts(2, 1, 0, ["oops"])

        assert result.to_dict() == {
            "success": False,
            "files_scanned": 2,
            "files_copied": 1,
            "files_updated": 0,
            "errors": ["oops"],
        }
