from datetime import datetime
from LedgerApp.app.accounting_db import db

class JournalEntryLine(db.Model):
    __tablename__ = 'journal_entry_lines'
    id = db.Column(db.Integer, primary_key=True)
    journal_entry_id = db.Column(db.Integer, db.ForeignKey('journal_entries.id'), nullable=False, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), nullable=False, index=True)

    # Both are >= 0; by convention only one of them is non-zero
    debit_amount = db.Column(db.Float, nullable=False, default=0.0)
    credit_amount = db.Column(db.Float, nullable=False, default=0.0)

    line_number = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
