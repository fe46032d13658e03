"""Add accounts.expense_category and seed standard account types

Revision ID: 8a41f0c6d2b7
Revises: 3c7d1e9a2f40
Create Date: 2026-10-02 16:40:07.553129

"""

from alembic import op
import sqlalchemy as sa


revision = "8a41f0c6d2b7"
down_revision = "3c7d1e9a2f40"
branch_labels = None
depends_on = None


STANDARD_TYPES = [
    {"name": "Asset", "normal_balance": "debit", "cash_flow_category": None},
    {"name": "Liability", "normal_balance": "credit", "cash_flow_category": "financing"},
    {"name": "Equity", "normal_balance": "credit", "cash_flow_category": "financing"},
    {"name": "Revenue", "normal_balance": "credit", "cash_flow_category": "operating"},
    {"name": "Expense", "normal_balance": "debit", "cash_flow_category": "operating"},
]


def upgrade():
    # Batch mode so SQLite can add the column too
    with op.batch_alter_table("accounts", schema=None) as batch_op:
        batch_op.add_column(sa.Column("expense_category", sa.String(length=20), nullable=True))

    account_types = sa.table(
        "account_types",
        sa.column("name", sa.String),
        sa.column("normal_balance", sa.String),
        sa.column("cash_flow_category", sa.String),
        sa.column("is_system", sa.Boolean),
        sa.column("is_active", sa.Boolean),
    )
    op.bulk_insert(
        account_types,
        [dict(t, is_system=True, is_active=True) for t in STANDARD_TYPES],
    )


def downgrade():
    names = ", ".join(f"'{t['name']}'" for t in STANDARD_TYPES)
    op.execute(f"DELETE FROM account_types WHERE is_system AND name IN ({names})")

    with op.batch_alter_table("accounts", schema=None) as batch_op:
        batch_op.drop_column("expense_category")
