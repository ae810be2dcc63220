"""
Single background worker that decodes windows ahead of the viewport.

Requests are fire-and-forget. The worker goes through the same page cache as
the foreground, so a page it is decoding is never decoded twice: whoever
asks second waits on the in-flight entry.
"""

import logging
import queue
import threading

from .errors import ParquetScopeError


class Prefetcher(object):
    logger = logging.getLogger(__qualname__)

    def __init__(self, reader, maxsize=16):
        self.reader = reader
        self._queue = queue.Queue(maxsize=max(1, maxsize))
        self._closed = False
        self._thread = threading.Thread(target=self._worker, name="prefetch", daemon=True)
        self._thread.start()

    def _worker(self):
        while True:
            item = self._queue.get()
            if item is None:
                self._queue.task_done()
                break
            row_group_index, column_index, start_row, count = item
            try:
                self.reader.read_window(row_group_index, column_index, start_row, count)
            except ParquetScopeError as e:
                # Left for the foreground to surface if the user gets there.
                self.logger.debug(f"Prefetch of {item} failed: {e}")
            finally:
                self._queue.task_done()

    def submit(self, row_group_index, column_index, start_row, count):
        """Queue one window; never blocks. A full queue drops its oldest request."""
        if self._closed:
            return
        item = (row_group_index, column_index, start_row, count)
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                try:
                    dropped = self._queue.get_nowait()
                except queue.Empty:
                    continue
                self._queue.task_done()
                self.logger.debug(f"Prefetch queue full, dropped {dropped}")

    def wait_idle(self):
        """Block until every queued request has been processed."""
        self._queue.join()

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._queue.put(None)
        self._thread.join()
