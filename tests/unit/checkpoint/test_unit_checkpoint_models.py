# tests/unit/checkpoint/test_unit_checkpoint_models.py — v1
"""Tests for checkpoint/models.py — queue, completion and counters."""

from __future__ import annotations

from fsingest.checkpoint.models import CrawlCheckpoint, CrawlerState


class TestNewCheckpoint:
    def test_seeds_root(self):
        cp = CrawlCheckpoint.new_checkpoint("/data")
        assert cp.pending_paths == ["/data"]
        assert cp.state is CrawlerState.RUNNING
        assert cp.scan_id
        assert cp.scan_start_time.tzinfo is not None

    def test_unique_scan_ids(self):
        a = CrawlCheckpoint.new_checkpoint("/data")
        b = CrawlCheckpoint.new_checkpoint("/data")
        assert a.scan_id != b.scan_id

    def test_empty_checkpoint_is_stopped(self):
        cp = CrawlCheckpoint()
        assert cp.state is CrawlerState.STOPPED
        assert not cp.has_pending_work()
        assert cp.peek_next_path() is None
        assert cp.poll_next_path() is None


class TestQueue:
    def test_fifo_with_priority(self):
        cp = CrawlCheckpoint()
        cp.add_path("/a")
        cp.add_path("/b")
        cp.add_path_first("/priority")
        assert cp.poll_next_path() == "/priority"
        assert cp.poll_next_path() == "/a"
        assert cp.poll_next_path() == "/b"
        assert not cp.has_pending_work()

    def test_peek_does_not_remove(self):
        cp = CrawlCheckpoint()
        cp.add_path("/a")
        assert cp.peek_next_path() == "/a"
        assert cp.pending_paths == ["/a"]

    def test_poll_sets_current_and_resets_retry(self):
        cp = CrawlCheckpoint(retry_count=2)
        cp.add_path("/a")
        assert cp.poll_next_path() == "/a"
        assert cp.current_path == "/a"
        assert cp.retry_count == 0

    def test_no_duplicates(self):
        cp = CrawlCheckpoint()
        cp.add_path("/a")
        cp.add_path("/a")
        assert cp.pending_paths == ["/a"]

    def test_add_first_moves_pending_path(self):
        cp = CrawlCheckpoint()
        cp.add_path("/a")
        cp.add_path("/b")
        cp.add_path_first("/b")
        assert cp.pending_paths == ["/b", "/a"]

    def test_completed_path_not_requeued(self):
        cp = CrawlCheckpoint()
        cp.mark_completed("/a")
        cp.add_path("/a")
        cp.add_path_first("/a")
        assert cp.pending_paths == []


class TestCompletion:
    def test_idempotent(self):
        cp = CrawlCheckpoint()
        cp.mark_completed("/a")
        cp.mark_completed("/a")
        assert cp.completed_paths == {"/a"}
        assert cp.is_completed("/a")
        assert not cp.is_completed("/b")

    def test_completion_resets_retry_of_current(self):
        cp = CrawlCheckpoint()
        cp.add_path("/a")
        cp.poll_next_path()
        cp.increment_retry_count()
        cp.mark_completed("/a")
        assert cp.retry_count == 0


class TestCounters:
    def test_counters(self):
        cp = CrawlCheckpoint()
        cp.increment_files_processed()
        cp.increment_files_processed()
        cp.increment_files_deleted()
        assert cp.files_processed == 2
        assert cp.files_deleted == 1

    def test_retry_count(self):
        cp = CrawlCheckpoint()
        cp.increment_retry_count()
        cp.increment_retry_count()
        assert cp.retry_count == 2
        cp.reset_retry_count()
        assert cp.retry_count == 0


class TestState:
    def test_resumable_states(self):
        assert CrawlerState.RUNNING.is_resumable
        assert CrawlerState.RETRYING.is_resumable
        assert CrawlerState.PAUSED.is_resumable
        assert not CrawlerState.COMPLETED.is_resumable
        assert not CrawlerState.FAILED.is_resumable
        assert not CrawlerState.STOPPED.is_resumable

    def test_str_summary(self):
        cp = CrawlCheckpoint.new_checkpoint("/data")
        text = str(cp)
        assert "RUNNING" in text
        assert "pending=1" in text
