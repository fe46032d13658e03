import logging

from flask import Flask, jsonify

from LedgerApp.app import common
from LedgerApp.app.accounting_db import db, migrate
from LedgerApp.app.errors import LedgerError

app = Flask(__name__)
app.config.from_prefixed_env() #get config data from environment variables beginning with "FLASK_"

# SQLAlchemy config for accounting DB
app.config.setdefault('SQLALCHEMY_DATABASE_URI', 'sqlite:///accounting.db')
app.config.setdefault('SQLALCHEMY_TRACK_MODIFICATIONS', False)

# Ledger behaviour
app.config.setdefault('LEDGER_ATOMIC_WRITES', True)
app.config.setdefault('CASH_ACCOUNT_KEYWORDS', ('cash', 'bank'))
app.config.setdefault('API_DEBUG', False)
app.config.setdefault('API_TOKEN', None)
app.config.setdefault('LOG_LEVEL', 'DEBUG')

common.check_logging_initiate(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.DEBUG))

db.init_app(app)

# Flask-Migrate setup
migrate.init_app(app, db)

# Import models so Alembic sees them
from LedgerApp.app.models import account_type, account, journal_entry, journal_entry_line, opening_balance  # noqa: E402,F401

from LedgerApp.app.routes import accounts_api, journal_entries_api, reports_api  # noqa: E402

app.register_blueprint(accounts_api.bp)
app.register_blueprint(journal_entries_api.bp)
app.register_blueprint(reports_api.bp, url_prefix="/reports")


@app.errorhandler(LedgerError)
def handle_ledger_error(error):
    if error.status_code >= 500:
        common.logger.error(f"{type(error).__name__}: {error.message}")
    else:
        common.logger.debug(f"{type(error).__name__}: {error.message}")
    return jsonify(error.to_dict()), error.status_code


from LedgerApp.app import cli  # noqa: E402,F401

common.logger.debug(f"Ledger app configured with database {app.config['SQLALCHEMY_DATABASE_URI']}")

if __name__ == "__main__":
    app.run(debug=True)
