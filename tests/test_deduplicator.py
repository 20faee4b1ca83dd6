"""
Integration tests for DeduplicatorImpl.
Runs the whole pipeline on real trees (walk → size buckets → quick check →
digest → resolve → delete) and checks events, statistics and what survives.
"""
import os
import sys
import threading
from pathlib import Path

import pytest

from dupsweep.core.deduplicator import DeduplicatorImpl
from dupsweep.core.errors import RootDirectoryError
from dupsweep.core.hasher import HasherImpl
from dupsweep.core.models import (
    DeduplicationParams, Deleted, DeleteFailed, DuplicateFound, KeepPolicy, RaceAnomaly, ScanError,
)
from conftest import T0, deny_scandir, requires_mtime_clock, requires_non_root, write_file


class CountingHasher(HasherImpl):
    """Records every path passed to the full and quick-check hash functions."""

    def __init__(self):
        super().__init__()
        self.full_calls = []
        self.front_calls = []
        self._lock = threading.Lock()

    def hash(self, path, expected_size=None):
        with self._lock:
            self.full_calls.append(path)
        return super().hash(path, expected_size=expected_size)

    def front_hash(self, path):
        with self._lock:
            self.front_calls.append(path)
        return super().front_hash(path)


class RecordingFileService:
    """Deletion executor double that fails for selected paths."""

    def __init__(self, fail_paths=()):
        self.fail_paths = set(fail_paths)
        self.calls = []

    def delete(self, path):
        self.calls.append(path)
        if path in self.fail_paths:
            return DeleteFailed(path, "Permission denied")
        os.remove(path)
        return Deleted(path, 0)


def run(root, **kwargs):
    hasher = kwargs.pop("hasher", None)
    file_service = kwargs.pop("file_service", None)
    stopped_flag = kwargs.pop("stopped_flag", None)
    events = []
    params = DeduplicationParams(root_dir=str(root), **kwargs)
    stats = DeduplicatorImpl(hasher=hasher, file_service=file_service).run(
        params, on_event=events.append, stopped_flag=stopped_flag
    )
    return events, stats


def surviving(root):
    return sorted(str(p) for p in Path(root).rglob("*") if p.is_file())


def of_type(events, cls):
    return [e for e in events if isinstance(e, cls)]


class TestScenarios:

    @requires_mtime_clock
    def test_older_file_kept_newer_deleted(self, temp_dir):
        """a.txt (X, T1) and b/b.txt (X, T2>T1): b/b.txt is deleted, a.txt kept."""
        a = write_file(temp_dir / "a.txt", b"X", T0)
        b = write_file(temp_dir / "b" / "b.txt", b"X", T0 + 60)

        events, stats = run(temp_dir)

        assert a.exists()
        assert not b.exists()
        assert of_type(events, DuplicateFound) == [DuplicateFound(kept=str(a), removed=str(b))]
        assert of_type(events, Deleted) == [Deleted(str(b), 1)]
        assert stats.duplicates_found == 1
        assert stats.files_deleted == 1

    @requires_mtime_clock
    def test_keep_newest_policy(self, temp_dir):
        a = write_file(temp_dir / "a.txt", b"X", T0)
        b = write_file(temp_dir / "b" / "b.txt", b"X", T0 + 60)

        events, _ = run(temp_dir, keep_policy=KeepPolicy.NEWEST)

        assert not a.exists()
        assert b.exists()
        assert of_type(events, DuplicateFound) == [DuplicateFound(kept=str(b), removed=str(a))]

    @pytest.mark.parametrize("quick_check", [True, False])
    def test_two_equal_one_different_of_same_length(self, temp_dir, quick_check):
        """"X","X","Y" of equal length: one X is deleted, Y is untouched."""
        x1 = write_file(temp_dir / "x1.txt", b"X" * 100, T0)
        x2 = write_file(temp_dir / "x2.txt", b"X" * 100, T0 + 1)
        y = write_file(temp_dir / "y.txt", b"Y" * 100, T0 + 2)

        events, stats = run(temp_dir, quick_check=quick_check)

        assert y.exists()
        assert x1.exists() != x2.exists()
        found = of_type(events, DuplicateFound)
        assert len(found) == 1
        assert str(y) not in (found[0].kept, found[0].removed)
        assert stats.files_deleted == 1

    @requires_non_root
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_unreadable_subdirectory_reports_and_siblings_complete(self, temp_dir):
        locked = temp_dir / "locked"
        write_file(locked / "hidden.txt", b"same")
        a = write_file(temp_dir / "open" / "a.txt", b"dup!", T0)
        b = write_file(temp_dir / "open" / "b.txt", b"dup!", T0 + 1)
        os.chmod(locked, 0)
        try:
            events, stats = run(temp_dir)
        finally:
            os.chmod(locked, 0o755)

        assert [e.path for e in of_type(events, ScanError)] == [str(locked)]
        assert a.exists() != b.exists()
        assert stats.files_deleted == 1
        assert stats.errors == 1

    @requires_mtime_clock
    def test_fixture_tree(self, test_files, temp_dir):
        events, stats = run(temp_dir)

        removed = {e.removed for e in of_type(events, DuplicateFound)}
        assert removed == {str(test_files["dup1_b"]), str(test_files["sub_dup"]), str(test_files["dup2_a"])}
        for name in ("dup1_a", "dup2_b", "unique1", "unique2", "same_size"):
            assert test_files[name].exists(), name
        assert stats.bytes_freed == 1024 * 2 + 2048


class TestProperties:

    @pytest.mark.parametrize("workers", [1, 4, 16])
    def test_exactly_one_copy_survives(self, temp_dir, workers):
        for i in range(25):
            write_file(temp_dir / f"d{i % 5}" / f"copy{i}.bin", b"same content", T0 + (i * 7) % 11)
        for i in range(5):
            write_file(temp_dir / f"other{i}.bin", b"other " + bytes([i]) * 6, T0)

        events, stats = run(temp_dir, workers=workers)

        remaining = surviving(temp_dir)
        same = [p for p in remaining if "copy" in p]
        assert len(same) == 1
        assert len([p for p in remaining if "other" in p]) == 5
        assert stats.files_deleted == 24
        assert of_type(events, DeleteFailed) == []

    def test_distinct_content_all_survive(self, temp_dir):
        paths = [write_file(temp_dir / f"f{i}.bin", bytes([i]) * 64, T0) for i in range(10)]

        events, stats = run(temp_dir)

        assert all(p.exists() for p in paths)
        assert of_type(events, DuplicateFound) == []
        assert stats.files_deleted == 0

    def test_empty_files_are_duplicates_of_each_other(self, temp_dir):
        for i in range(3):
            write_file(temp_dir / f"empty{i}", b"", T0 + i)

        _, stats = run(temp_dir)

        assert len(surviving(temp_dir)) == 1
        assert stats.files_deleted == 2
        assert stats.bytes_freed == 0

    def test_second_run_deletes_nothing(self, test_files, temp_dir):
        run(temp_dir)
        before = surviving(temp_dir)

        events, stats = run(temp_dir)

        assert surviving(temp_dir) == before
        assert of_type(events, DuplicateFound) == []
        assert stats.files_deleted == 0

    @requires_mtime_clock
    def test_equal_timestamps_same_survivor_across_runs(self, temp_dir):
        write_file(temp_dir / "one.txt", b"tie", T0)
        write_file(temp_dir / "two.txt", b"tie", T0)

        first, _ = run(temp_dir, workers=1, dry_run=True)
        second, _ = run(temp_dir, workers=1, dry_run=True)

        assert of_type(first, DuplicateFound) == of_type(second, DuplicateFound)
        assert len(of_type(first, DuplicateFound)) == 1

    def test_unique_size_files_are_never_hashed(self, test_files, temp_dir):
        hasher = CountingHasher()

        run(temp_dir, hasher=hasher)

        touched = set(hasher.full_calls) | set(hasher.front_calls)
        assert str(test_files["unique1"]) not in touched
        assert str(test_files["unique2"]) not in touched

    def test_quick_check_skips_full_hash_of_different_heads(self, test_files, temp_dir):
        hasher = CountingHasher()

        run(temp_dir, hasher=hasher)

        assert str(test_files["same_size"]) in hasher.front_calls
        assert str(test_files["same_size"]) not in hasher.full_calls
        assert len(hasher.full_calls) == 5

    def test_without_quick_check_all_candidates_fully_hashed(self, test_files, temp_dir):
        hasher = CountingHasher()

        run(temp_dir, hasher=hasher, quick_check=False)

        assert hasher.front_calls == []
        assert len(hasher.full_calls) == 6

    def test_events_are_delivered_one_at_a_time(self, temp_dir):
        for i in range(40):
            write_file(temp_dir / f"c{i}.bin", b"dup" * 10, T0 + i)
        guard = threading.Lock()
        overlaps = []

        def on_event(event):
            if not guard.acquire(blocking=False):
                overlaps.append(event)
                return
            try:
                threading.Event().wait(0.001)
            finally:
                guard.release()

        params = DeduplicationParams(root_dir=str(temp_dir), workers=8)
        DeduplicatorImpl().run(params, on_event=on_event)

        assert overlaps == []


class TestErrorsAndOptions:

    def test_missing_root_is_fatal(self, temp_dir):
        with pytest.raises(RootDirectoryError, match="does not exist"):
            run(temp_dir / "nope")

    def test_file_root_is_fatal(self, temp_dir):
        f = write_file(temp_dir / "file.txt", b"x")
        with pytest.raises(RootDirectoryError, match="Not a directory"):
            run(f)

    def test_unreadable_root_is_fatal(self, test_files, temp_dir):
        events = []
        params = DeduplicationParams(root_dir=str(temp_dir))

        with deny_scandir(temp_dir):
            with pytest.raises(RootDirectoryError, match="Cannot read directory") as exc:
                DeduplicatorImpl().run(params, on_event=events.append)

        assert exc.value.path == str(temp_dir)
        assert events == []
        assert all(p.exists() for p in test_files.values())

    def test_unlistable_subdirectory_reports_and_siblings_complete(self, temp_dir):
        locked = temp_dir / "locked"
        hidden = write_file(locked / "hidden.txt", b"dup!", T0)
        a = write_file(temp_dir / "open" / "a.txt", b"dup!", T0 + 1)
        b = write_file(temp_dir / "open" / "b.txt", b"dup!", T0 + 2)

        with deny_scandir(locked):
            events, stats = run(temp_dir)

        assert [e.path for e in of_type(events, ScanError)] == [str(locked)]
        assert hidden.exists()
        assert a.exists() != b.exists()
        assert stats.files_scanned == 2
        assert stats.files_deleted == 1
        assert stats.errors == 1

    def test_dry_run_reports_without_deleting(self, test_files, temp_dir):
        before = surviving(temp_dir)

        events, stats = run(temp_dir, dry_run=True)

        assert surviving(temp_dir) == before
        assert len(of_type(events, DuplicateFound)) == 3
        assert of_type(events, Deleted) == []
        assert stats.files_deleted == 0
        assert stats.duplicates_found == 3

    def test_delete_failure_is_reported_and_run_continues(self, temp_dir):
        a1 = write_file(temp_dir / "a1.txt", b"aaaa", T0)
        a2 = write_file(temp_dir / "a2.txt", b"aaaa", T0 + 1)
        b1 = write_file(temp_dir / "b1.txt", b"bbbbbbbb", T0)
        b2 = write_file(temp_dir / "b2.txt", b"bbbbbbbb", T0 + 1)
        # Fails whichever "a" copy gets picked for deletion
        service = RecordingFileService(fail_paths={str(a1), str(a2)})

        events, stats = run(temp_dir, file_service=service)

        assert len(of_type(events, DeleteFailed)) == 1
        assert a1.exists() and a2.exists()
        assert b1.exists() != b2.exists()
        assert stats.delete_failures == 1
        assert stats.files_deleted == 1

    def test_hash_failure_is_scan_error_and_file_untouched(self, temp_dir):
        a = write_file(temp_dir / "a.txt", b"same", T0)
        b = write_file(temp_dir / "b.txt", b"same", T0 + 1)

        class UnreadableHasher(HasherImpl):
            def hash(self, path, expected_size=None):
                if path == str(b):
                    return super().hash(path + ".missing", expected_size)
                return super().hash(path, expected_size)

        events, stats = run(temp_dir, hasher=UnreadableHasher())

        assert a.exists() and b.exists()
        assert [e.path for e in of_type(events, ScanError)] == [str(b)]
        assert of_type(events, DuplicateFound) == []
        assert stats.errors == 1

    def test_file_changed_after_walk_is_race_anomaly(self, temp_dir):
        a = write_file(temp_dir / "a.txt", b"same", T0)
        b = write_file(temp_dir / "b.txt", b"same", T0 + 1)

        class GrowingHasher(HasherImpl):
            def hash(self, path, expected_size=None):
                if path == str(b):
                    with open(path, "ab") as f:
                        f.write(b"appended")
                return super().hash(path, expected_size)

        events, stats = run(temp_dir, hasher=GrowingHasher(), quick_check=False)

        assert of_type(events, RaceAnomaly) == [RaceAnomaly(str(b), 4, 12)]
        assert of_type(events, DuplicateFound) == []
        assert a.exists() and b.exists()

    def test_size_change_ignored_without_verification(self, temp_dir):
        write_file(temp_dir / "a.txt", b"same", T0)
        b = write_file(temp_dir / "b.txt", b"same", T0 + 1)

        class GrowingHasher(HasherImpl):
            def hash(self, path, expected_size=None):
                assert expected_size is None
                if path == str(b):
                    with open(path, "ab") as f:
                        f.write(b"appended")
                return super().hash(path, expected_size)

        events, _ = run(temp_dir, hasher=GrowingHasher(), quick_check=False, verify_size=False)

        assert of_type(events, RaceAnomaly) == []
        assert of_type(events, DuplicateFound) == []

    def test_stopped_flag_prevents_deletion(self, test_files, temp_dir):
        before = surviving(temp_dir)

        events, stats = run(temp_dir, stopped_flag=lambda: True)

        assert surviving(temp_dir) == before
        assert events == []
        assert stats.files_hashed == 0

    def test_excluded_dirs_are_not_deduplicated(self, temp_dir):
        a = write_file(temp_dir / "a.txt", b"same", T0)
        archived = write_file(temp_dir / "archive" / "a.txt", b"same", T0 + 1)

        events, _ = run(temp_dir, excluded_dirs=[str(temp_dir / "archive")])

        assert a.exists() and archived.exists()
        assert events == []

    def test_stats_counters(self, test_files, temp_dir):
        _, stats = run(temp_dir)

        assert stats.files_scanned == 8
        assert stats.size_groups == 2
        assert stats.candidates == 5
        assert stats.files_hashed == 5
        assert stats.duplicates_found == 3
        assert stats.total_time >= 0
        assert "Walk" in stats.stage_stats
