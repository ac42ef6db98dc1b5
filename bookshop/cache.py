"""Keyed response cache on top of Flask-Caching.

Flask-Caching backends cannot enumerate their keys, so the keys written
through this wrapper are tracked locally to support pattern invalidation.
"""

import logging
import re
import threading

logger = logging.getLogger(__name__)


class cache_keys:
    @staticmethod
    def books(page, limit, search=None):
        return f'books:{page}:{limit}:{search or "all"}'

    @staticmethod
    def book(book_id):
        return f'book:{book_id}'

    @staticmethod
    def customer(customer_id):
        return f'customer:{customer_id}'

    @staticmethod
    def authors(search=None):
        return f'authors:{search or "all"}'


class ResponseCache:
    def __init__(self, cache):
        self._cache = cache
        self._keys = set()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key):
        value = self._cache.get(key)
        with self._lock:
            if value is None:
                self.misses += 1
                self._keys.discard(key)
            else:
                self.hits += 1
        return value

    def set(self, key, value, ttl=None):
        self._cache.set(key, value, timeout=ttl)
        with self._lock:
            self._keys.add(key)

    def delete(self, key):
        self._cache.delete(key)
        with self._lock:
            self._keys.discard(key)

    def clear_pattern(self, pattern):
        regex = re.compile(pattern)
        with self._lock:
            matched = [key for key in self._keys if regex.search(key)]
            self._keys.difference_update(matched)
        if matched:
            self._cache.delete_many(*matched)
            logger.debug('Cache invalidated %d key(s) matching %s', len(matched), pattern)

    def clear(self):
        self._cache.clear()
        with self._lock:
            self._keys.clear()
            self.hits = 0
            self.misses = 0

    def stats(self):
        with self._lock:
            total = self.hits + self.misses
            return {
                'size': len(self._keys),
                'keys': sorted(self._keys),
                'hits': self.hits,
                'misses': self.misses,
                'hitRate': (self.hits / total) * 100 if total else 0
            }
