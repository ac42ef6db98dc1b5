# tests/test_metrics.py
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from bookshop.metrics import PerformanceMonitor


@pytest.fixture
def monitor():
    return PerformanceMonitor(max_metrics=5)


@pytest.fixture
def engine(monitor):
    """In-memory SQLite engine timed by the monitor"""
    engine = create_engine('sqlite://')
    monitor.instrument(engine)
    yield engine
    engine.dispose()


def test_statements_are_recorded(engine, monitor):
    with engine.connect() as conn:
        conn.execute(text('SELECT 1'))

    queries = [m['query'] for m in monitor.get_slow_queries(-1)]
    assert 'SELECT 1' in queries
    assert monitor.get_stats(-1)['slowQueries'] == len(queries)


def test_failed_statements_leave_no_timer_behind(engine, monitor):
    with engine.connect() as conn:
        for _ in range(3):
            with pytest.raises(OperationalError):
                conn.execute(text('SELECT * FROM missing_table'))
        conn.rollback()
        conn.execute(text('SELECT 1'))
        assert 'query_start' not in conn.info

    queries = [m['query'] for m in monitor.get_slow_queries(-1)]
    assert 'SELECT 1' in queries
    assert not any('missing_table' in q for q in queries)


def test_keeps_only_the_most_recent_metrics(monitor):
    for i in range(8):
        monitor.record_query(f'SELECT {i}', float(i))

    stats = monitor.get_stats()
    assert stats['totalQueries'] == 5
    assert stats['averageQueryTime'] == 5.0


def test_slow_queries_sorted_by_duration(monitor):
    monitor.record_query('fast', 2.0)
    monitor.record_query('slow', 1500.0)
    monitor.record_query('slower', 3000.0)

    assert [m['query'] for m in monitor.get_slow_queries(1000)] == ['slower', 'slow']
    monitor.clear()
    assert monitor.get_stats()['totalQueries'] == 0
