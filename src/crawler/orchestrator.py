# src/crawler/orchestrator.py — v1
"""Crawl orchestrator: walk a file tree into the bulk processor.

One FsCrawler runs one crawl job on a single crawl thread. Each run:
  1. Opens the backend and checks that the root exists.
  2. Resumes an interrupted checkpoint, or starts a new scan.
  3. Pops directories from the checkpoint, lists them, and turns files into
     IndexOperations (folders into folder documents, vanished files into
     DeleteOperations).
  4. Persists the checkpoint after every directory, so a restarted job skips
     completed directories.
  5. Flushes the processor and marks the scan COMPLETED.

Delivery is at-least-once: the checkpoint advances independently of bulk
acknowledgements.
"""

from __future__ import annotations

import hashlib
import io
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Callable, Iterable

from fsingest.bulk.listeners import RetryBulkListener
from fsingest.bulk.models import DeleteOperation, IndexOperation
from fsingest.bulk.processor import BulkEngine, BulkProcessor
from fsingest.checkpoint.file_handler import CheckpointFileHandler
from fsingest.checkpoint.models import CrawlCheckpoint, CrawlerState
from fsingest.config.settings import Settings
from fsingest.core.byte_size import format_byte_size
from fsingest.core.errors import (
    BulkProcessorClosedError,
    CheckpointReadError,
    CheckpointWriteError,
    FileAbstractorError,
)
from fsingest.crawler.documents import build_document, build_folder_document, generate_id, sign
from fsingest.crawler.filters import is_file_size_under_limit, is_indexable
from fsingest.crawler.models import ScanStatistic
from fsingest.fileabstraction.abstractor_factory import create_file_abstractor
from fsingest.fileabstraction.base_file_abstractor import FileAbstractor
from fsingest.fileabstraction.models import FileEntry
from fsingest.fileabstraction.paths import compute_real_path_name, compute_virtual_path_name
from fsingest.logging.context import clear_context, set_job_context, set_path_context

logger = logging.getLogger(__name__)

IGNORE_FILENAME = ".fsingestignore"

# Modification times are compared with a small safety margin.
SCAN_DATE_MARGIN = timedelta(seconds=2)

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    EOFError,
    TimeoutError,
    FileAbstractorError,
)

Extractor = Callable[[BinaryIO, FileEntry], str]
IndexedFilesLookup = Callable[[str], Iterable[str]]


def decode_text(stream: BinaryIO, entry: FileEntry) -> str:
    """Default extractor: read the stream as UTF-8 text."""
    return stream.read().decode("utf-8", errors="replace")


class FsCrawler:
    """Drive checkpoint, file backend and bulk processor for one job."""

    def __init__(
        self,
        settings: Settings,
        engine: BulkEngine,
        file_abstractor: FileAbstractor | None = None,
        checkpoint_handler: CheckpointFileHandler | None = None,
        processor: BulkProcessor | None = None,
        extractor: Extractor | None = None,
        indexed_files: IndexedFilesLookup | None = None,
        indexed_folders: IndexedFilesLookup | None = None,
    ) -> None:
        """Wire the crawler.

        Args:
            settings: Job settings.
            engine: Transport executing bulk requests, used when no processor
                is given.
            file_abstractor: Backend; built from settings when omitted.
            checkpoint_handler: Checkpoint store; defaults to CONFIG_DIR.
            processor: Bulk processor; built from settings when omitted.
            extractor: Turns a file stream into text content.
            indexed_files: Returns the filenames the store holds for a
                directory. Enables deletion of vanished files.
            indexed_folders: Returns the subfolder names the store holds for
                a directory. Enables removal of vanished folders.
        """
        self._settings = settings
        self._job_name = settings.job_name
        self._abstractor = file_abstractor or create_file_abstractor(settings)
        self._checkpoints = checkpoint_handler or CheckpointFileHandler(settings.config_dir)
        self._processor = processor or BulkProcessor(
            engine,
            listener=RetryBulkListener(settings.bulk_retry_errors_list),
            bulk_actions=settings.bulk_size,
            flush_interval=settings.bulk_flush_interval,
            byte_size=settings.bulk_byte_size_bytes,
        )
        self._extractor = extractor or decode_text
        self._indexed_files = indexed_files
        self._indexed_folders = indexed_folders

        self._checkpoint: CrawlCheckpoint | None = None
        self._closed = threading.Event()
        self._running = threading.Event()
        self._running.set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def processor(self) -> BulkProcessor:
        return self._processor

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def run(self, loop: int = 0) -> ScanStatistic | None:
        """Run `loop` scans (0 = until closed), waiting FS_UPDATE_RATE between them."""
        stats: ScanStatistic | None = None
        runs = 0
        while not self._closed.is_set():
            stats = self.run_once()
            runs += 1
            if loop and runs >= loop:
                break
            logger.debug("Sleeping %.1fs before next scan", self._settings.fs_update_rate)
            self._closed.wait(self._settings.fs_update_rate)
        return stats

    def run_once(self) -> ScanStatistic:
        """Run (or resume) one full scan of the crawl root.

        Raises:
            FileAbstractorError: The backend cannot be opened or the root is missing.
            CheckpointWriteError: Progress cannot be persisted.
        """
        root = self._abstractor.root_path
        stats = ScanStatistic(root_path=root, start_time=datetime.now(timezone.utc))
        set_job_context(self._job_name)
        try:
            self._abstractor.open()
            if not self._abstractor.exists(root):
                raise FileAbstractorError(f"Crawl root {root} does not exist")

            checkpoint = self._load_checkpoint(root)
            self._checkpoint = checkpoint
            set_job_context(self._job_name, checkpoint.scan_id)
            self._save(checkpoint)

            if checkpoint.scan_date is None and self._settings.fs_index_folders:
                self._index_root_folder(root, stats)

            self._walk(checkpoint, stats)

            if not checkpoint.has_pending_work() and not self._closed.is_set():
                self._processor.flush()
                checkpoint.state = CrawlerState.COMPLETED
                checkpoint.current_path = None
                checkpoint.scan_date = checkpoint.scan_start_time - SCAN_DATE_MARGIN
                self._save(checkpoint)
                logger.info("Scan completed: %s", checkpoint)
        except CheckpointWriteError:
            self._fail("checkpoint could not be saved")
            raise
        except BulkProcessorClosedError:
            logger.info("Bulk processor closed, stopping the scan")
        except Exception as e:
            self._fail(f"{type(e).__name__}: {e}")
            raise
        finally:
            self._abstractor.close()
            stats.end_time = datetime.now(timezone.utc)
            clear_context()

        logger.info(
            "Run done in %.1fs: %d indexed, %d deleted, %d failed",
            stats.duration_seconds, stats.files_indexed, stats.files_deleted,
            stats.files_failed,
        )
        return stats

    def pause(self) -> None:
        """Stop after the current directory until resume() is called."""
        logger.info("Pausing crawler [%s]", self._job_name)
        self._running.clear()

    def resume(self) -> None:
        logger.info("Resuming crawler [%s]", self._job_name)
        self._running.set()

    def restart(self) -> None:
        """Forget progress so that the next run is a full scan."""
        logger.info("Restarting crawler [%s] from scratch", self._job_name)
        self._checkpoint = None
        self._checkpoints.clean(self._job_name)

    def close(self) -> None:
        """Stop the crawl loop and drain the bulk processor."""
        logger.debug("Closing crawler [%s]", self._job_name)
        self._closed.set()
        self._running.set()
        self._processor.close()

    def status(self) -> CrawlCheckpoint | None:
        """Current checkpoint, read from disk when no scan ran in this process."""
        if self._checkpoint is not None:
            return self._checkpoint
        try:
            return self._checkpoints.read(self._job_name)
        except CheckpointReadError as e:
            logger.warning("Cannot read status: %s", e)
            return None

    # ------------------------------------------------------------------
    # Checkpoint handling
    # ------------------------------------------------------------------

    def _load_checkpoint(self, root: str) -> CrawlCheckpoint:
        try:
            previous = self._checkpoints.read(self._job_name)
        except CheckpointReadError as e:
            logger.warning("%s. Starting a fresh scan.", e)
            previous = None

        if previous is not None and previous.state.is_resumable:
            logger.info("Resuming interrupted scan: %s", previous)
            if previous.state is CrawlerState.PAUSED:
                previous.state = CrawlerState.RUNNING
            return previous

        checkpoint = CrawlCheckpoint.new_checkpoint(root)
        if previous is not None:
            # Files older than the previous scan are skipped.
            checkpoint.scan_date = previous.scan_date
        logger.info("Starting new scan %s of %s", checkpoint.scan_id, root)
        return checkpoint

    def _save(self, checkpoint: CrawlCheckpoint) -> None:
        self._checkpoints.write(self._job_name, checkpoint)

    def _fail(self, reason: str) -> None:
        checkpoint = self._checkpoint
        if checkpoint is None:
            return
        checkpoint.state = CrawlerState.FAILED
        checkpoint.last_error = reason
        try:
            self._save(checkpoint)
        except CheckpointWriteError as e:
            logger.error("Cannot record failed state: %s", e)

    @staticmethod
    def _next_path(checkpoint: CrawlCheckpoint) -> str | None:
        # A path being retried keeps its retry count.
        path = checkpoint.peek_next_path()
        if checkpoint.state is CrawlerState.RETRYING and path == checkpoint.current_path:
            retries = checkpoint.retry_count
            checkpoint.poll_next_path()
            checkpoint.retry_count = retries
            return path
        return checkpoint.poll_next_path()

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _wait_if_paused(self, checkpoint: CrawlCheckpoint) -> None:
        if self._running.is_set():
            return
        previous_state = checkpoint.state
        checkpoint.state = CrawlerState.PAUSED
        self._save(checkpoint)
        logger.info("Crawler paused")
        self._running.wait()
        if not self._closed.is_set():
            checkpoint.state = previous_state
            self._save(checkpoint)
            logger.info("Crawler resumed")

    def _walk(self, checkpoint: CrawlCheckpoint, stats: ScanStatistic) -> None:
        while checkpoint.has_pending_work():
            self._wait_if_paused(checkpoint)
            if self._closed.is_set():
                logger.info("Crawler closed with %d pending paths", len(checkpoint.pending_paths))
                return

            path = self._next_path(checkpoint)
            if path is None:
                break
            set_path_context(path)
            try:
                done = self._process_directory(path, checkpoint, stats)
            except TRANSIENT_ERRORS as e:
                self._handle_transient_error(path, checkpoint, stats, e)
                continue
            finally:
                set_path_context(None)

            if not done:
                # Interrupted: retried first on the next run.
                checkpoint.add_path_first(path)
                self._save(checkpoint)
                return

            checkpoint.mark_completed(path)
            if checkpoint.state is CrawlerState.RETRYING:
                checkpoint.state = CrawlerState.RUNNING
                checkpoint.last_error = None
            self._save(checkpoint)

    def _handle_transient_error(
        self,
        path: str,
        checkpoint: CrawlCheckpoint,
        stats: ScanStatistic,
        error: BaseException,
    ) -> None:
        max_retries = self._settings.fs_max_path_retries
        checkpoint.increment_retry_count()
        checkpoint.last_error = f"{type(error).__name__}: {error}"

        if checkpoint.retry_count > max_retries:
            logger.error(
                "Giving up on %s after %d retries: %s", path, max_retries, error,
            )
            checkpoint.reset_retry_count()
            checkpoint.state = CrawlerState.RUNNING
            stats.paths_abandoned += 1
            self._save(checkpoint)
            return

        logger.warning(
            "Error while crawling %s (attempt %d/%d): %s",
            path, checkpoint.retry_count, max_retries, error,
        )
        checkpoint.add_path_first(path)
        checkpoint.state = CrawlerState.RETRYING
        self._save(checkpoint)
        self._closed.wait(self._settings.fs_retry_delay)

    def _process_directory(
        self, path: str, checkpoint: CrawlCheckpoint, stats: ScanStatistic
    ) -> bool:
        """Index one directory. Returns False when interrupted by close()."""
        if self._abstractor.exists(compute_real_path_name(path, IGNORE_FILENAME)):
            logger.debug("%s found in %s, skipping directory", IGNORE_FILENAME, path)
            return True

        settings = self._settings
        includes = settings.fs_includes_list
        excludes = settings.fs_excludes_list
        since = checkpoint.scan_date
        files_on_disk: set[str] = set()
        folders_on_disk: set[str] = set()

        for entry in self._abstractor.get_files(path):
            if self._closed.is_set():
                return False
            if not is_indexable(entry.virtual_path, includes, excludes, entry.is_directory):
                logger.debug("Ignored: %s", entry.virtual_path)
                continue

            if entry.is_file:
                files_on_disk.add(entry.name)
                if _modified_since(entry, since):
                    self._index_file(entry, checkpoint, stats)
            else:
                folders_on_disk.add(entry.name)
                checkpoint.add_path(entry.full_path)
                if settings.fs_index_folders and _modified_since(entry, since):
                    self._index_folder(entry, stats)

        if settings.fs_remove_deleted:
            self._remove_vanished(path, files_on_disk, folders_on_disk, checkpoint, stats)
        return True

    def _index_file(
        self, entry: FileEntry, checkpoint: CrawlCheckpoint, stats: ScanStatistic
    ) -> None:
        settings = self._settings
        limit = settings.fs_ignore_above_bytes
        if not is_file_size_under_limit(limit, entry.size_bytes):
            logger.debug(
                "Skipping %s: %s is above FS_IGNORE_ABOVE (%s)",
                entry.full_path, format_byte_size(entry.size_bytes), format_byte_size(limit),
            )
            return

        try:
            content, checksum = None, None
            if settings.fs_index_content or settings.fs_checksum:
                content, checksum = self._read_content(entry)
            document = build_document(
                entry,
                content,
                url=self._abstractor.url_for(entry.full_path),
                checksum=checksum,
            )
        except Exception as e:
            stats.files_failed += 1
            if not settings.fs_continue_on_error:
                raise
            logger.warning("Unable to read %s, skipping: %s", entry.full_path, e)
            return

        self._processor.add(IndexOperation(
            index=settings.resolved_index_name,
            id=generate_id(entry.name, entry.parent_path, settings.fs_filename_as_id),
            document=document,
        ))
        checkpoint.increment_files_processed()
        stats.files_indexed += 1

    def _read_content(self, entry: FileEntry) -> tuple[str | None, str | None]:
        """Extract the text and, when FS_CHECKSUM is set, digest the raw bytes."""
        settings = self._settings
        stream = self._abstractor.get_input_stream(entry)
        try:
            checksum = None
            source: BinaryIO = stream
            if settings.fs_checksum:
                data = stream.read()
                checksum = hashlib.new(settings.fs_checksum, data).hexdigest()
                source = io.BytesIO(data)
            content = self._extractor(source, entry) if settings.fs_index_content else None
            return content, checksum
        finally:
            self._abstractor.close_input_stream(stream)

    def _index_folder(self, entry: FileEntry, stats: ScanStatistic) -> None:
        self._processor.add(IndexOperation(
            index=self._settings.resolved_index_folder_name,
            id=sign(entry.full_path),
            document=build_folder_document(entry),
        ))
        stats.folders_indexed += 1

    def _index_root_folder(self, root: str, stats: ScanStatistic) -> None:
        now = datetime.now(timezone.utc)
        parent, _, name = root.rpartition("/")
        entry = self._abstractor.build_entry(
            parent_path=parent or "/",
            name=name,
            is_file=False,
            last_modified=now,
        )
        self._index_folder(entry, stats)

    # ------------------------------------------------------------------
    # Removal of vanished files and folders
    # ------------------------------------------------------------------

    def _is_indexable_child(self, path: str, name: str, directory: bool) -> bool:
        virtual = compute_virtual_path_name(
            self._abstractor.root_path, compute_real_path_name(path, name),
        )
        return is_indexable(
            virtual,
            self._settings.fs_includes_list,
            self._settings.fs_excludes_list,
            directory,
        )

    def _remove_vanished(
        self,
        path: str,
        files_on_disk: set[str],
        folders_on_disk: set[str],
        checkpoint: CrawlCheckpoint,
        stats: ScanStatistic,
    ) -> None:
        # Stored names the filters reject are left alone.
        if self._indexed_files is not None:
            logger.debug("Looking for removed files in %s", path)
            for name in self._indexed_files(path):
                if name in files_on_disk or not self._is_indexable_child(path, name, False):
                    continue
                self._delete_file(path, name, checkpoint, stats)

        if self._indexed_folders is not None and self._settings.fs_index_folders:
            logger.debug("Looking for removed directories in %s", path)
            for name in self._indexed_folders(path):
                if name in folders_on_disk or not self._is_indexable_child(path, name, True):
                    continue
                self._remove_folder(compute_real_path_name(path, name), checkpoint, stats)

    def _delete_file(
        self, path: str, name: str, checkpoint: CrawlCheckpoint, stats: ScanStatistic
    ) -> None:
        logger.debug("%s/%s is gone, removing it from the index", path, name)
        self._processor.add(DeleteOperation(
            index=self._settings.resolved_index_name,
            id=generate_id(name, path, self._settings.fs_filename_as_id),
        ))
        checkpoint.increment_files_deleted()
        stats.files_deleted += 1

    def _remove_folder(
        self, path: str, checkpoint: CrawlCheckpoint, stats: ScanStatistic
    ) -> None:
        """Delete a vanished folder with all the files and subfolders stored under it."""
        logger.debug("Folder %s is gone, removing it from the index", path)
        if self._indexed_files is not None:
            for name in self._indexed_files(path):
                self._delete_file(path, name, checkpoint, stats)
        if self._indexed_folders is not None:
            for name in self._indexed_folders(path):
                self._remove_folder(compute_real_path_name(path, name), checkpoint, stats)
        self._processor.add(DeleteOperation(
            index=self._settings.resolved_index_folder_name,
            id=sign(path),
        ))


def _modified_since(entry: FileEntry, since: datetime | None) -> bool:
    if since is None:
        return True
    if entry.last_modified > since:
        return True
    return entry.created_at is not None and entry.created_at > since
