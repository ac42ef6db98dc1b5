import threading
import time
from collections import deque

from sqlalchemy import event


class PerformanceMonitor:
    """Keeps the durations of the most recent SQL statements."""

    def __init__(self, max_metrics=1000):
        self._metrics = deque(maxlen=max_metrics)
        self._lock = threading.Lock()

    def record_query(self, query, duration_ms, cache_hit=False):
        with self._lock:
            self._metrics.append({
                'query': query,
                'duration': duration_ms,
                'timestamp': time.time(),
                'cacheHit': cache_hit
            })

    def get_slow_queries(self, threshold_ms=1000):
        with self._lock:
            slow = [m for m in self._metrics if m['duration'] > threshold_ms]
        return sorted(slow, key=lambda m: m['duration'], reverse=True)

    def get_stats(self, threshold_ms=1000):
        with self._lock:
            metrics = list(self._metrics)
        total = len(metrics)
        if not total:
            return {'totalQueries': 0, 'averageQueryTime': 0, 'cacheHitRate': 0, 'slowQueries': 0}
        hits = sum(1 for m in metrics if m['cacheHit'])
        return {
            'totalQueries': total,
            'averageQueryTime': sum(m['duration'] for m in metrics) / total,
            'cacheHitRate': hits / total * 100,
            'slowQueries': sum(1 for m in metrics if m['duration'] > threshold_ms)
        }

    def clear(self):
        with self._lock:
            self._metrics.clear()

    def instrument(self, engine):
        """Time every statement executed on ``engine``."""

        @event.listens_for(engine, 'before_cursor_execute')
        def _start_timer(conn, cursor, statement, parameters, context, executemany):
            conn.info['query_start'] = time.perf_counter()

        @event.listens_for(engine, 'after_cursor_execute')
        def _stop_timer(conn, cursor, statement, parameters, context, executemany):
            started = conn.info.pop('query_start', None)
            if started is None:
                return
            self.record_query(statement, (time.perf_counter() - started) * 1000)
