# LedgerApp/app/models/journal_entry.py

from datetime import datetime, date
from LedgerApp.app.accounting_db import db


class JournalEntry(db.Model):
    __tablename__ = "journal_entries"
    __table_args__ = (
        db.UniqueConstraint("entry_number", name="uq_journal_entry_number"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # "JE-001", "JE-002", ... or a time-derived fallback on collision
    entry_number = db.Column(db.String(30), nullable=False, index=True)

    entry_date = db.Column(db.Date, default=date.today, nullable=False, index=True)
    description = db.Column(db.String(250), nullable=False)
    reference = db.Column(db.String(100))

    total_debit = db.Column(db.Float, nullable=False, default=0.0)
    total_credit = db.Column(db.Float, nullable=False, default=0.0)
    is_balanced = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    lines = db.relationship(
        "JournalEntryLine",
        backref="journal_entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_number",
        lazy=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "entry_number": self.entry_number,
            "entry_date": self.entry_date.isoformat() if self.entry_date else None,
            "description": self.description,
            "reference": self.reference,
            "total_debit": self.total_debit,
            "total_credit": self.total_credit,
            "is_balanced": self.is_balanced,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
