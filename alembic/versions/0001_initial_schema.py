"""Initial schema for Admin Gateway

Revision ID: 0001_initial_schema
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Profiles: email -> uid index and subscription record
    op.create_table(
        'profiles',
        sa.Column('user_id', sa.String(64), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('phone_number', sa.String(32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('subscription_status', sa.String(20), nullable=False, server_default='none'),
        sa.Column('subscription_start_date', sa.Date(), nullable=True),
        sa.Column('subscription_end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)
    op.create_index('ix_profiles_phone_number', 'profiles', ['phone_number'], unique=True)

    # Outstanding email verification codes
    op.create_table(
        'verify_email',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('verification_code', sa.String(128), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_verify_email_email', 'verify_email', ['email'])
    op.create_index('ix_verify_email_email_code', 'verify_email', ['email', 'verification_code'])

    # Payment ids already applied to a subscription
    op.create_table(
        'processed_payments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('pf_payment_id', sa.String(64), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('payment_status', sa.String(32), nullable=False),
        sa.Column('amount_gross', sa.String(32), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_processed_payments_pf_payment_id', 'processed_payments', ['pf_payment_id'], unique=True)


def downgrade():
    op.drop_table('processed_payments')
    op.drop_table('verify_email')
    op.drop_table('profiles')
