"""initial procurement schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates all ProcureHub tables. Status columns are VARCHAR with CHECK
constraints rather than native enum types.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=True)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Sessions
    op.create_table('sessions',
        sa.Column('sid', sa.String(64), primary_key=True),
        sa.Column('sess', sa.JSON(), nullable=False),
        sa.Column('expire', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('IDX_session_expire', 'sessions', ['expire'])

    # Organizations
    op.create_table('organizations',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('gst_number', sa.String(50)),
        sa.Column('pan_number', sa.String(50)),
        sa.Column('address', sa.Text()),
        sa.Column('contact_person', sa.String(255)),
        sa.Column('contact_email', sa.String(255)),
        sa.Column('contact_phone', sa.String(50)),
        *_timestamps(),
    )

    # Users
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('email', sa.String(255), unique=True, index=True),
        sa.Column('hashed_password', sa.String(255), nullable=True),
        sa.Column('first_name', sa.String(255)),
        sa.Column('last_name', sa.String(255)),
        sa.Column('profile_image_url', sa.String(1024)),
        sa.Column('role', _enum('userrole', 'buyer_admin', 'buyer_user', 'sourcing_manager', 'vendor'),
                  nullable=False, server_default='buyer_user'),
        sa.Column('organization_id', sa.Integer(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    # Audit logs
    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(100), index=True),
        sa.Column('entity_id', sa.Integer()),
        sa.Column('details', sa.JSON()),
        sa.Column('ip_address', sa.String(50)),
    )

    # Vendors
    op.create_table('vendors',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('company_name', sa.String(255), nullable=False),
        sa.Column('contact_person', sa.String(255)),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('pan_number', sa.String(50)),
        sa.Column('gst_number', sa.String(50)),
        sa.Column('tan_number', sa.String(50)),
        sa.Column('bank_details', sa.JSON()),
        sa.Column('address', sa.Text()),
        sa.Column('categories', sa.JSON()),
        sa.Column('certifications', sa.JSON()),
        sa.Column('years_of_experience', sa.Integer()),
        sa.Column('office_locations', sa.JSON()),
        sa.Column('status', _enum('vendorstatus', 'pending', 'approved', 'rejected', 'suspended'),
                  server_default='pending', index=True),
        sa.Column('tags', sa.JSON()),
        sa.Column('performance_score', sa.Numeric(3, 2)),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    # Products
    op.create_table('products',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('internal_code', sa.String(100), index=True),
        sa.Column('external_code', sa.String(100)),
        sa.Column('description', sa.Text()),
        sa.Column('category', sa.String(255), index=True),
        sa.Column('sub_category', sa.String(255)),
        sa.Column('uom', sa.String(50)),
        sa.Column('base_price', sa.Numeric(10, 2)),
        sa.Column('specifications', sa.JSON()),
        sa.Column('tags', sa.JSON()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    # BOMs
    op.create_table('boms',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('version', sa.String(50), server_default='1.0'),
        sa.Column('description', sa.Text()),
        sa.Column('category', sa.String(255)),
        sa.Column('valid_from', sa.DateTime(timezone=True)),
        sa.Column('valid_to', sa.DateTime(timezone=True)),
        sa.Column('tags', sa.JSON()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    op.create_table('bom_items',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('bom_id', sa.Integer(), sa.ForeignKey('boms.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Numeric(10, 3), nullable=False),
        sa.Column('uom', sa.String(50)),
        sa.Column('unit_price', sa.Numeric(10, 2)),
        sa.Column('total_price', sa.Numeric(10, 2)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # RFx
    op.create_table('rfx_events',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('reference_no', sa.String(100), unique=True),
        sa.Column('type', _enum('rfxtype', 'rfi', 'rfp', 'rfq'), nullable=False),
        sa.Column('scope', sa.Text()),
        sa.Column('criteria', sa.Text()),
        sa.Column('due_date', sa.DateTime(timezone=True)),
        sa.Column('status', _enum('rfxstatus', 'draft', 'published', 'active', 'closed', 'cancelled'),
                  server_default='draft', index=True),
        sa.Column('evaluation_parameters', sa.JSON()),
        sa.Column('attachments', sa.JSON()),
        sa.Column('bom_id', sa.Integer(), sa.ForeignKey('boms.id'), nullable=True),
        sa.Column('contact_person', sa.String(255)),
        sa.Column('budget', sa.Numeric(12, 2)),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    op.create_table('rfx_invitations',
        sa.Column('rfx_id', sa.Integer(), sa.ForeignKey('rfx_events.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id'), primary_key=True),
        sa.Column('status', _enum('invitationstatus', 'invited', 'viewed', 'responded', 'declined'),
                  server_default='invited'),
        sa.Column('invited_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('responded_at', sa.DateTime(timezone=True)),
    )

    op.create_table('rfx_responses',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('rfx_id', sa.Integer(), sa.ForeignKey('rfx_events.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id'), nullable=False),
        sa.Column('response', sa.JSON()),
        sa.Column('quoted_price', sa.Numeric(12, 2)),
        sa.Column('delivery_terms', sa.Text()),
        sa.Column('payment_terms', sa.Text()),
        sa.Column('lead_time', sa.Integer()),
        sa.Column('attachments', sa.JSON()),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Auctions
    op.create_table('auctions',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('items', sa.JSON()),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reserve_price', sa.Numeric(12, 2)),
        sa.Column('current_bid', sa.Numeric(12, 2)),
        sa.Column('bid_rules', sa.JSON()),
        sa.Column('status', _enum('auctionstatus', 'scheduled', 'live', 'completed', 'cancelled'),
                  server_default='scheduled', index=True),
        sa.Column('winner_id', sa.Integer(), sa.ForeignKey('vendors.id'), nullable=True),
        sa.Column('winning_bid', sa.Numeric(12, 2)),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    op.create_table('auction_participants',
        sa.Column('auction_id', sa.Integer(), sa.ForeignKey('auctions.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id'), primary_key=True),
        sa.Column('registered_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table('bids',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('auction_id', sa.Integer(), sa.ForeignKey('auctions.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id'), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('is_winning', sa.Boolean(), server_default=sa.false()),
    )

    # Purchase orders
    op.create_table('purchase_orders',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('po_number', sa.String(100), unique=True, nullable=False),
        sa.Column('vendor_id', sa.Integer(), sa.ForeignKey('vendors.id'), nullable=False, index=True),
        sa.Column('rfx_id', sa.Integer(), sa.ForeignKey('rfx_events.id'), nullable=True),
        sa.Column('auction_id', sa.Integer(), sa.ForeignKey('auctions.id'), nullable=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', _enum('postatus', 'draft', 'issued', 'acknowledged', 'shipped', 'delivered',
                                  'invoiced', 'paid', 'cancelled'),
                  server_default='draft', index=True),
        sa.Column('terms_and_conditions', sa.Text()),
        sa.Column('delivery_schedule', sa.JSON()),
        sa.Column('payment_terms', sa.Text()),
        sa.Column('attachments', sa.JSON()),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True)),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    op.create_table('po_line_items',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('po_id', sa.Integer(), sa.ForeignKey('purchase_orders.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('quantity', sa.Numeric(10, 3), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('delivery_date', sa.DateTime(timezone=True)),
        sa.Column('status', _enum('lineitemstatus', 'pending', 'shipped', 'delivered'), server_default='pending'),
    )

    # Approvals & notifications
    op.create_table('approvals',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('entity_type', _enum('approvalentitytype', 'vendor', 'rfx', 'po', 'budget'), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('approver_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', _enum('approvalstatus', 'pending', 'approved', 'rejected'),
                  server_default='pending', index=True),
        sa.Column('comments', sa.Text()),
        sa.Column('approved_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_approvals_entity', 'approvals', ['entity_type', 'entity_id'])

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), primary_key=True, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text()),
        sa.Column('type', _enum('notificationtype', 'info', 'warning', 'success', 'error'), server_default='info'),
        sa.Column('is_read', sa.Boolean(), server_default=sa.false()),
        sa.Column('entity_type', sa.String(100)),
        sa.Column('entity_id', sa.Integer()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    for table in (
        'notifications', 'approvals', 'po_line_items', 'purchase_orders', 'bids',
        'auction_participants', 'auctions', 'rfx_responses', 'rfx_invitations',
        'rfx_events', 'bom_items', 'boms', 'products', 'vendors', 'audit_logs',
        'users', 'organizations', 'sessions',
    ):
        op.drop_table(table)
