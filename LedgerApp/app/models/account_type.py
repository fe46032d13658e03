# LedgerApp/app/models/account_type.py

from datetime import datetime
from LedgerApp.app.accounting_db import db

NORMAL_BALANCES = ("debit", "credit")
CASH_FLOW_CATEGORIES = ("operating", "investing", "financing")


class AccountType(db.Model):
    __tablename__ = "account_types"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_account_type_name"),
        db.CheckConstraint("normal_balance IN ('debit', 'credit')", name="ck_account_type_normal_balance"),
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False)  # Asset, Liability, Equity, Revenue, Expense
    description = db.Column(db.String(250))

    # Sign convention used to turn debit/credit totals into a balance
    normal_balance = db.Column(db.String(10), nullable=False, default="debit")
    cash_flow_category = db.Column(db.String(20))  # operating / investing / financing / NULL

    is_system = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    accounts = db.relationship("Account", back_populates="account_type", lazy=True)

    @property
    def is_debit_normal(self):
        return self.normal_balance == "debit"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "normal_balance": self.normal_balance,
            "cash_flow_category": self.cash_flow_category,
            "is_system": self.is_system,
            "is_active": self.is_active,
        }
