from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from runvault.errors import StoreUnavailable


@contextmanager
def store_call(session, action: str):
    """Run a block of store work, mapping driver failures to StoreUnavailable.

    The session is rolled back on any failure so no partial write survives.
    The driver's own message is logged, never returned to the caller.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        session.rollback()
        current_app.logger.error(f"[store-error] action={action} error={exc}")
        raise StoreUnavailable() from exc
    except Exception:
        session.rollback()
        raise
