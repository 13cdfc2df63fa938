"""create ledger tables

Revision ID: a1c3e5f70b21
Revises:
Create Date: 2026-10-19 10:12:41.503118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f70b21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by_uid', sa.String(), nullable=True),
        sa.Column('created_by_name', sa.String(), nullable=True),
        sa.Column('updated_by_uid', sa.String(), nullable=True),
        sa.Column('updated_by_name', sa.String(), nullable=True),
    ]


def _soft_delete():
    return [
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_by', sa.String(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'business_partners',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', 'BLOCKED', name='partnerstatus'), nullable=False),
        sa.Column('is_customer', sa.Boolean(), nullable=False),
        sa.Column('is_seller', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'name', name='_company_partner_name_uc'),
    )
    op.create_index('ix_business_partners_id', 'business_partners', ['id'])
    op.create_index('ix_business_partners_company_id', 'business_partners', ['company_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uid', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('role', sa.Enum('ADMIN', 'STORE_MANAGER', name='userrole'), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_uid', 'users', ['uid'], unique=True)
    op.create_index('ix_users_company_id', 'users', ['company_id'])

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('sku', sa.String(), nullable=False),
        sa.Column('numeric_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('unit_of_measure', sa.String(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'sku', name='_company_product_sku_uc'),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
    )
    op.create_index('ix_products_id', 'products', ['id'])
    op.create_index('ix_products_company_id', 'products', ['company_id'])

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('type', sa.Enum('SALE', 'PURCHASE', name='ledgerentrytype'), nullable=False),
        sa.Column('entry_purpose', sa.Enum('LEDGER_RECORD', 'PAYMENT_RECORD', name='entrypurpose'), nullable=False),
        sa.Column('entity_type', sa.Enum('CUSTOMER', 'SELLER', 'UNKNOWN_CUSTOMER', 'UNKNOWN_SELLER', name='entitytype'), nullable=False),
        sa.Column('entity_id', sa.Integer(), sa.ForeignKey('business_partners.id'), nullable=True),
        sa.Column('entity_name', sa.String(), nullable=False),
        sa.Column('apply_gst', sa.Boolean(), nullable=False),
        sa.Column('sub_total', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('grand_total', sa.Numeric(12, 2), nullable=False),
        sa.Column('payment_status', sa.Enum('PAID', 'PENDING', 'PARTIAL', name='paymentstatus'), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column('amount_paid_now', sa.Numeric(12, 2), nullable=False),
        sa.Column('remaining_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('associated_payment_record_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('remaining_amount >= 0', name='ck_ledger_entries_remaining_non_negative'),
    )
    op.create_index('ix_ledger_entries_id', 'ledger_entries', ['id'])
    op.create_index('ix_ledger_entries_company_id', 'ledger_entries', ['company_id'])
    op.create_index('ix_ledger_entries_associated_payment_record_id', 'ledger_entries', ['associated_payment_record_id'])
    op.create_index('ix_ledger_entries_company_date', 'ledger_entries', ['company_id', 'date'])
    op.create_index('ix_ledger_entries_company_date_type', 'ledger_entries', ['company_id', 'date', 'type'])
    op.create_index('ix_ledger_entries_entity_type_status', 'ledger_entries', ['company_id', 'entity_id', 'type', 'payment_status'])

    op.create_table(
        'ledger_entry_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ledger_entry_id', sa.Integer(), sa.ForeignKey('ledger_entries.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('product_name', sa.String(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('unit_of_measure', sa.String(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_ledger_entry_items_id', 'ledger_entry_items', ['id'])
    op.create_index('ix_ledger_entry_items_ledger_entry_id', 'ledger_entry_items', ['ledger_entry_id'])
    op.create_index('ix_ledger_entry_items_company_id', 'ledger_entry_items', ['company_id'])

    op.create_table(
        'product_stock_audit',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('ledger_entry_id', sa.Integer(), sa.ForeignKey('ledger_entries.id'), nullable=True),
        sa.Column('change_type', sa.String(), nullable=False),
        sa.Column('change_amount', sa.Integer(), nullable=False),
        sa.Column('old_quantity', sa.Integer(), nullable=False),
        sa.Column('new_quantity', sa.Integer(), nullable=False),
        sa.Column('changed_by', sa.String(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('note', sa.String(), nullable=True),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_stock_audit_id', 'product_stock_audit', ['id'])
    op.create_index('ix_product_stock_audit_product_id', 'product_stock_audit', ['product_id'])
    op.create_index('ix_product_stock_audit_company_id', 'product_stock_audit', ['company_id'])

    op.create_table(
        'payment_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('type', sa.Enum('CUSTOMER', 'SUPPLIER', name='paymentrecordtype'), nullable=False),
        sa.Column('related_entity_id', sa.Integer(), sa.ForeignKey('business_partners.id'), nullable=True),
        sa.Column('related_entity_name', sa.String(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('amount_paid', sa.Numeric(12, 2), nullable=False),
        sa.Column('method', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('COMPLETED', 'PENDING', 'PARTIAL', 'SENT', 'RECEIVED', name='paymentrecordstatus'), nullable=False),
        sa.Column('ledger_entry_id', sa.Integer(), sa.ForeignKey('ledger_entries.id'), nullable=True),
        sa.Column('original_invoice_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('remaining_balance_on_invoice', sa.Numeric(12, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_records_id', 'payment_records', ['id'])
    op.create_index('ix_payment_records_related_entity_id', 'payment_records', ['related_entity_id'])
    op.create_index('ix_payment_records_ledger_entry_id', 'payment_records', ['ledger_entry_id'])
    op.create_index('ix_payment_records_company_id', 'payment_records', ['company_id'])

    op.create_table(
        'payment_allocations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('payment_record_id', sa.Integer(), sa.ForeignKey('payment_records.id'), nullable=False),
        sa.Column('ledger_entry_id', sa.Integer(), sa.ForeignKey('ledger_entries.id'), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='ck_payment_allocations_amount_positive'),
    )
    op.create_index('ix_payment_allocations_id', 'payment_allocations', ['id'])
    op.create_index('ix_payment_allocations_payment_record_id', 'payment_allocations', ['payment_record_id'])
    op.create_index('ix_payment_allocations_ledger_entry_id', 'payment_allocations', ['ledger_entry_id'])
    op.create_index('ix_payment_allocations_company_id', 'payment_allocations', ['company_id'])

    op.create_table(
        'update_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_type', sa.Enum('UPDATE', 'DELETE', name='updaterequesttype'), nullable=False),
        sa.Column('original_ledger_entry_id', sa.Integer(), sa.ForeignKey('ledger_entries.id'), nullable=False),
        sa.Column('original_data', sa.JSON(), nullable=False),
        sa.Column('updated_data', sa.JSON(), nullable=True),
        sa.Column('requested_by_uid', sa.String(), nullable=False),
        sa.Column('requested_by_name', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='updaterequeststatus'), nullable=False),
        sa.Column('reviewed_by_uid', sa.String(), nullable=True),
        sa.Column('reviewed_by_name', sa.String(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_update_requests_id', 'update_requests', ['id'])
    op.create_index('ix_update_requests_status', 'update_requests', ['status'])
    op.create_index('ix_update_requests_company_id', 'update_requests', ['company_id'])
    op.create_index(
        'uq_update_requests_pending_entry',
        'update_requests',
        ['original_ledger_entry_id'],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('table_name', sa.String(), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('changed_by', sa.String(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('old_values', sa.JSON(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_id', 'audit_log', ['id'])
    op.create_index('ix_audit_log_record_id', 'audit_log', ['record_id'])
    op.create_index('ix_audit_log_company_id', 'audit_log', ['company_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipient_uid', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('link', sa.String(), nullable=True),
        sa.Column('type', sa.String(), nullable=True),
        sa.Column('related_doc_id', sa.Integer(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_recipient_uid', 'notifications', ['recipient_uid'])
    op.create_index('ix_notifications_company_id', 'notifications', ['company_id'])


def downgrade() -> None:
    for table in (
        'notifications', 'audit_log', 'update_requests', 'payment_allocations', 'payment_records',
        'product_stock_audit', 'ledger_entry_items', 'ledger_entries', 'products', 'users', 'business_partners',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum_name in (
        'updaterequeststatus', 'updaterequesttype', 'paymentrecordstatus', 'paymentrecordtype', 'paymentstatus',
        'entitytype', 'entrypurpose', 'ledgerentrytype', 'userrole', 'partnerstatus',
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
