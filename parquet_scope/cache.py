"""
Bounded LRU cache shared by the foreground loop and the prefetch worker.

While a key is being computed it carries an in-flight marker: any other
thread asking for the same key waits for that result instead of decoding
the same page a second time.
"""

import logging
import threading
from collections import OrderedDict


class PageCache(object):
    logger = logging.getLogger(__qualname__)

    def __init__(self, capacity, name="pages"):
        if capacity < 1:
            raise ValueError(f"Cache capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.name = name
        self._entries = OrderedDict()
        self._in_flight = set()
        self._condition = threading.Condition()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get_or_compute(self, key, compute):
        """Return the cached value for ``key``, computing it at most once.

        If another thread is computing ``key`` this call blocks until it is
        done. If that computation fails, this call computes it itself.
        """
        with self._condition:
            while True:
                if key in self._entries:
                    self._entries.move_to_end(key)
                    self.hits += 1
                    return self._entries[key]
                if key not in self._in_flight:
                    break
                self._condition.wait()
            self._in_flight.add(key)
            self.misses += 1

        try:
            value = compute()
        except BaseException:
            with self._condition:
                self._in_flight.discard(key)
                self._condition.notify_all()
            raise

        with self._condition:
            self._in_flight.discard(key)
            self._store(key, value)
            self._condition.notify_all()
        return value

    def get(self, key, default=None):
        with self._condition:
            if key in self._entries:
                self._entries.move_to_end(key)
                return self._entries[key]
            return default

    def put(self, key, value):
        with self._condition:
            self._store(key, value)

    def is_in_flight(self, key):
        with self._condition:
            return key in self._in_flight

    def evict_all(self):
        with self._condition:
            self.evictions += len(self._entries)
            self._entries.clear()

    def _store(self, key, value):
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            self.evictions += 1
            self.logger.debug(f"Evicted {evicted} from {self.name} cache")

    def keys(self):
        with self._condition:
            return list(self._entries)

    def __contains__(self, key):
        with self._condition:
            return key in self._entries

    def __len__(self):
        with self._condition:
            return len(self._entries)
