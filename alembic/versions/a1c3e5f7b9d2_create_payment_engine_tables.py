"""Create payment engine tables.

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "a1c3e5f7b9d2"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    setting_domain = sa.Enum("collections", "supply", "numbering", name="settingdomain")
    setting_value_type = sa.Enum(
        "string", "integer", "decimal", "boolean", "json", name="settingvaluetype"
    )
    approval_status = sa.Enum("pending", "approved", "rejected", name="approvalstatus")
    ledger_type = sa.Enum(
        "collection_payment", "supply_payment", name="ledgertransactiontype"
    )

    op.create_table(
        "domain_settings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("domain", setting_domain, nullable=False),
        sa.Column("key", sa.String(120), nullable=False),
        sa.Column("value_type", setting_value_type, nullable=True),
        sa.Column("value_text", sa.Text(), nullable=True),
        sa.Column("value_json", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("domain", "key", name="uq_domain_settings_domain_key"),
        sa.CheckConstraint(
            "(value_type = 'json' AND value_json IS NOT NULL AND value_text IS NULL) "
            "OR (value_type != 'json' AND value_text IS NOT NULL)",
            name="ck_domain_settings_value_alignment",
        ),
    )

    op.create_table(
        "document_sequences",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("key", sa.String(80), nullable=False),
        sa.Column("sequence", sa.String(60), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("next_value", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("key", name="uq_document_sequences_key"),
    )

    op.create_table(
        "collection_payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("payment_number", sa.String(50), nullable=False, unique=True),
        sa.Column("receipt_number", sa.String(50), nullable=True, unique=True),
        sa.Column("unit_contract_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("unit_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("late_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("due_date_start", sa.Date(), nullable=False),
        sa.Column("due_date_end", sa.Date(), nullable=False),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("collection_date", sa.Date(), nullable=True),
        sa.Column("collected_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("delay_duration", sa.Integer(), nullable=True),
        sa.Column("delay_reason", sa.Text(), nullable=True),
        sa.Column("late_payment_notes", sa.Text(), nullable=True),
        sa.Column("payment_reference", sa.String(100), nullable=True),
        sa.Column("month_year", sa.String(7), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_collection_payments_property_id", "collection_payments", ["property_id"]
    )
    op.create_index("ix_collection_payments_tenant_id", "collection_payments", ["tenant_id"])
    op.create_index(
        "ix_collection_payments_due_date_start", "collection_payments", ["due_date_start"]
    )
    op.create_index("ix_collection_payments_month_year", "collection_payments", ["month_year"])

    op.create_table(
        "supply_payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("payment_number", sa.String(50), nullable=False, unique=True),
        sa.Column("property_contract_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("gross_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("commission_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("maintenance_deduction", sa.Numeric(12, 2), nullable=True),
        sa.Column("other_deductions", sa.Numeric(12, 2), nullable=True),
        sa.Column("net_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("collected_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("approval_status", approval_status, nullable=True),
        sa.Column("approved_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bank_transfer_reference", sa.String(120), nullable=True),
        sa.Column("invoice_details", sa.JSON(), nullable=True),
        sa.Column("deduction_details", sa.JSON(), nullable=True),
        sa.Column("month_year", sa.String(7), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_supply_payments_property_contract_id", "supply_payments", ["property_contract_id"]
    )
    op.create_index("ix_supply_payments_owner_id", "supply_payments", ["owner_id"])
    op.create_index("ix_supply_payments_due_date", "supply_payments", ["due_date"])
    op.create_index("ix_supply_payments_month_year", "supply_payments", ["month_year"])

    op.create_table(
        "ledger_transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("transaction_number", sa.String(50), nullable=False, unique=True),
        sa.Column("transaction_type", ledger_type, nullable=False),
        sa.Column("source_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("debit_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("credit_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("balance", sa.Numeric(12, 2), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("meta_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_ledger_transactions_source_id", "ledger_transactions", ["source_id"])
    op.create_index(
        "ix_ledger_transactions_property_id", "ledger_transactions", ["property_id"]
    )


def downgrade() -> None:
    op.drop_table("ledger_transactions")
    op.drop_table("supply_payments")
    op.drop_table("collection_payments")
    op.drop_table("document_sequences")
    op.drop_table("domain_settings")
    bind = op.get_bind()
    for name in (
        "ledgertransactiontype",
        "approvalstatus",
        "settingvaluetype",
        "settingdomain",
    ):
        sa.Enum(name=name).drop(bind, checkfirst=True)
