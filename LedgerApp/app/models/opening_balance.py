from LedgerApp.app.accounting_db import db

class OpeningBalance(db.Model):
    """Balance carried in before the earliest recorded transaction (one per account)."""

    __tablename__ = 'opening_balances'
    __table_args__ = (
        db.UniqueConstraint("account_id", name="uq_opening_balance_account"),
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey('accounts.id'), nullable=False)
    balance = db.Column(db.Float, nullable=False, default=0.0)

    account = db.relationship('Account')
