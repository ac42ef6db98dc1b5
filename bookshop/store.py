"""Transaction scope for multi-statement writes against the relational store."""

import logging
import time
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from .errors import BookshopError, Conflict, InternalFailure, TransientStoreFailure

logger = logging.getLogger(__name__)


@contextmanager
def transaction(session, name, timeout=None):
    """Run the block as one unit: commit on success, roll back on any error.

    Store errors are translated into the error taxonomy. Contention and lost
    connections become ``TransientStoreFailure``, as does a block that runs
    longer than ``timeout`` seconds.
    """
    started = time.monotonic()
    try:
        yield session
        elapsed = time.monotonic() - started
        if timeout is not None and elapsed > timeout:
            raise TransientStoreFailure(
                f'{name} exceeded its {timeout:g}s transaction timeout')
        session.commit()
    except BookshopError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        logger.warning('%s: integrity error, rolled back: %s', name, exc.orig)
        raise Conflict('The write conflicts with existing data') from exc
    except OperationalError as exc:
        session.rollback()
        logger.warning('%s: store contention, rolled back: %s', name, exc.orig)
        raise TransientStoreFailure() from exc
    except DBAPIError as exc:
        session.rollback()
        if exc.connection_invalidated:
            logger.warning('%s: connection lost, rolled back', name)
            raise TransientStoreFailure() from exc
        logger.exception('%s: database error, rolled back', name)
        raise InternalFailure(f'{name} failed') from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception('%s: store error, rolled back', name)
        raise InternalFailure(f'{name} failed') from exc
    except Exception:
        session.rollback()
        raise
