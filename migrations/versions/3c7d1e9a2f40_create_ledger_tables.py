"""Create ledger tables

Revision ID: 3c7d1e9a2f40
Revises: 
Create Date: 2026-09-14 10:12:41.208351

"""

from alembic import op
import sqlalchemy as sa


revision = "3c7d1e9a2f40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "account_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=250), nullable=True),
        sa.Column("normal_balance", sa.String(length=10), nullable=False, server_default="debit"),
        sa.Column("cash_flow_category", sa.String(length=20), nullable=True),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("name", name="uq_account_type_name"),
        sa.CheckConstraint("normal_balance IN ('debit', 'credit')", name="ck_account_type_normal_balance"),
    )

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=250), nullable=True),
        sa.Column("account_type_id", sa.Integer(), sa.ForeignKey("account_types.id"), nullable=True),
        sa.Column("parent_account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=True),
        sa.Column("cash_flow_category", sa.String(length=20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("code", name="_account_code_uc"),
    )
    op.create_index("ix_accounts_code", "accounts", ["code"], unique=False)
    op.create_index("ix_accounts_parent_account_id", "accounts", ["parent_account_id"], unique=False)

    op.create_table(
        "journal_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entry_number", sa.String(length=30), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(length=250), nullable=False),
        sa.Column("reference", sa.String(length=100), nullable=True),
        sa.Column("total_debit", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_credit", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_balanced", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("entry_number", name="uq_journal_entry_number"),
    )
    op.create_index("ix_journal_entries_entry_number", "journal_entries", ["entry_number"], unique=False)
    op.create_index("ix_journal_entries_entry_date", "journal_entries", ["entry_date"], unique=False)

    op.create_table(
        "journal_entry_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("journal_entry_id", sa.Integer(), sa.ForeignKey("journal_entries.id"), nullable=False),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("debit_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("credit_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("line_number", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
    )
    op.create_index("ix_journal_entry_lines_journal_entry_id", "journal_entry_lines", ["journal_entry_id"], unique=False)
    op.create_index("ix_journal_entry_lines_account_id", "journal_entry_lines", ["account_id"], unique=False)

    op.create_table(
        "opening_balances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("balance", sa.Float(), nullable=False, server_default="0"),
        sa.UniqueConstraint("account_id", name="uq_opening_balance_account"),
    )


def downgrade():
    op.drop_table("opening_balances")
    op.drop_index("ix_journal_entry_lines_account_id", table_name="journal_entry_lines")
    op.drop_index("ix_journal_entry_lines_journal_entry_id", table_name="journal_entry_lines")
    op.drop_table("journal_entry_lines")
    op.drop_index("ix_journal_entries_entry_date", table_name="journal_entries")
    op.drop_index("ix_journal_entries_entry_number", table_name="journal_entries")
    op.drop_table("journal_entries")
    op.drop_index("ix_accounts_parent_account_id", table_name="accounts")
    op.drop_index("ix_accounts_code", table_name="accounts")
    op.drop_table("accounts")
    op.drop_table("account_types")
