import logging
from contextlib import contextmanager
from gathermemorials.extensions import db

logger = logging.getLogger(__name__)


@contextmanager
def transactional():
    """
    Commits the session when the block finishes, rolls back and re-raises
    otherwise. Services return from inside the block to commit early.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        logger.debug("Transaction rolled back: %s: %s", type(exc).__name__, exc)
        raise
