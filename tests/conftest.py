"""
Shared pytest fixtures.

The Flask app reads its config from FLASK_* environment variables at import
time, so the in-memory database URI is set before the app is imported.
"""

import os

os.environ.setdefault("FLASK_SQLALCHEMY_DATABASE_URI", "sqlite://")
os.environ.setdefault("FLASK_LOG_LEVEL", "WARNING")

import pytest

from LedgerApp.app import app as flask_app
from LedgerApp.app.accounting_db import db
from LedgerApp.app.models.account_type import AccountType
from LedgerApp.app.models.opening_balance import OpeningBalance
from LedgerApp.app.services import accounts as account_service

STANDARD_TYPES = (
    ("Asset", "debit"),
    ("Liability", "credit"),
    ("Equity", "credit"),
    ("Revenue", "credit"),
    ("Expense", "debit"),
)


@pytest.fixture()
def app():
    flask_app.config.update(TESTING=True, LEDGER_ATOMIC_WRITES=True, API_TOKEN=None, API_DEBUG=False)
    with flask_app.app_context():
        db.create_all()
        for name, normal_balance in STANDARD_TYPES:
            db.session.add(AccountType(name=name, normal_balance=normal_balance, is_system=True, is_active=True))
        db.session.commit()

        yield flask_app

        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def types(app):
    """{type name: AccountType} for the seeded standard types."""
    return {t.name: t for t in db.session.query(AccountType).all()}


@pytest.fixture()
def make_account(types):
    def _make(code, name, type_name, parent=None, **kwargs):
        return account_service.create_account(
            name=name,
            account_type_id=types[type_name].id,
            code=code,
            parent_account_id=parent.id if parent is not None else None,
            **kwargs,
        )
    return _make


@pytest.fixture()
def set_opening(app):
    def _set(account, balance):
        db.session.add(OpeningBalance(account_id=account.id, balance=balance))
        db.session.commit()
    return _set


def line(account, debit=0.0, credit=0.0, description=None):
    return {
        "account_id": account.id,
        "debit_amount": debit,
        "credit_amount": credit,
        "description": description,
    }
