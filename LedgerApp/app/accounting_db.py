from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy.exc import SQLAlchemyError

from LedgerApp.app import common
from LedgerApp.app.errors import StoreError

db = SQLAlchemy()

# Flask-Migrate setup, bound to the app in __init__.py
migrate = Migrate()


def commit_or_raise(action: str) -> None:
    """Commit the session; on failure roll back and surface a StoreError."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        common.logger.error(f"Store failure while trying to {action}: {exc}")
        raise StoreError(f"Failed to {action}: {exc.__class__.__name__}") from exc
