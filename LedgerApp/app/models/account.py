from datetime import datetime
from LedgerApp.app.accounting_db import db

EXPENSE_CATEGORIES = ("cogs", "interest", "tax", "operating")


class Account(db.Model):
    __tablename__ = 'accounts'

    id = db.Column(db.Integer, primary_key=True)

    # Lexically ordered; report rows sort on this string, never numerically
    code = db.Column(db.String(50), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(250))

    account_type_id = db.Column(db.Integer, db.ForeignKey('account_types.id'), nullable=True)
    parent_account_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), nullable=True, index=True)

    cash_flow_category = db.Column(db.String(20))  # operating / investing / financing / NULL
    expense_category = db.Column(db.String(20))    # cogs / interest / tax / operating / NULL

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("code", name="_account_code_uc"),
    )

    account_type = db.relationship(
        'AccountType',
        back_populates='accounts',
    )

    parent = db.relationship('Account', remote_side=[id], backref='children')

    entries = db.relationship('JournalEntryLine', backref='account', lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "account_type_id": self.account_type_id,
            "account_type": self.account_type.name if self.account_type else None,
            "parent_account_id": self.parent_account_id,
            "cash_flow_category": self.cash_flow_category,
            "expense_category": self.expense_category,
            "is_active": self.is_active,
        }
