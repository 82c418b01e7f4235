"""initial vault schema

Revision ID: 0001_initial_vault
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates the directory (groups, sites, users, permissions), the credential
store with its append-only history, and the security event trail.

All ids are uuid4 strings. credential_history.credential_id deliberately has
no foreign key: history outlives deleted credentials.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_vault'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # Directory
    # ============================================================================
    op.create_table(
        'groups',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'sites',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('group_id', sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('sites', schema=None) as batch_op:
        batch_op.create_index('ix_sites_group_id', ['group_id'], unique=False)

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('position', sa.String(length=255), nullable=False),
        sa.Column('group_id', sa.String(length=36), nullable=True),
        sa.Column('access_level', sa.String(length=16), nullable=False),
        sa.Column('avatar', sa.String(length=1024), nullable=True),
        sa.CheckConstraint(
            "access_level IN ('viewer', 'manager', 'admin')",
            name='ck_users_access_level',
        ),
        sa.ForeignKeyConstraint(['group_id'], ['groups.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_email', ['email'], unique=True)
        batch_op.create_index('ix_users_group_id', ['group_id'], unique=False)

    op.create_table(
        'permissions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('permissions', schema=None) as batch_op:
        batch_op.create_index('ix_permissions_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_permissions_site_id', ['site_id'], unique=False)
        batch_op.create_index('ix_permissions_user_site', ['user_id', 'site_id'], unique=False)

    # ============================================================================
    # Credentials: current row per credential, optimistic version counter
    # ============================================================================
    op.create_table(
        'credentials',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('encoded_secret', sa.Text(), nullable=False),
        sa.Column('category', sa.String(length=16), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.Column('last_edited', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_edited_by', sa.String(length=36), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint(
            "category IN ('Admin', 'WiFi', 'PMS', 'Vendor', 'Social', 'Other')",
            name='ck_credentials_category',
        ),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('credentials', schema=None) as batch_op:
        batch_op.create_index('ix_credentials_site_id', ['site_id'], unique=False)

    # ============================================================================
    # credential_history: append-only snapshots taken before each update
    # ============================================================================
    op.create_table(
        'credential_history',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('credential_id', sa.String(length=36), nullable=False),
        sa.Column('site_id', sa.String(length=36), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('encoded_secret', sa.Text(), nullable=False),
        sa.Column('changed_by', sa.String(length=36), nullable=True),
        sa.Column('change_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('credential_history', schema=None) as batch_op:
        batch_op.create_index('ix_credential_history_credential_id', ['credential_id'], unique=False)
        batch_op.create_index('ix_credential_history_site_id', ['site_id'], unique=False)
        batch_op.create_index(
            'ix_credential_history_credential_date', ['credential_id', 'change_date', 'version'], unique=False
        )

    # ============================================================================
    # security_events: audit trail
    # ============================================================================
    op.create_table(
        'security_events',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=255), nullable=True),
        sa.Column('action', sa.String(length=128), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('security_events', schema=None) as batch_op:
        batch_op.create_index('ix_security_events_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_security_events_event_type', ['event_type'], unique=False)
        batch_op.create_index('ix_security_events_success', ['success'], unique=False)
        batch_op.create_index('ix_security_events_occurred_at', ['occurred_at'], unique=False)
        batch_op.create_index('ix_security_events_user_type', ['user_id', 'event_type'], unique=False)
        batch_op.create_index('ix_security_events_occurred', ['occurred_at'], unique=False)


def downgrade():
    op.drop_table('security_events')
    op.drop_table('credential_history')
    op.drop_table('credentials')
    op.drop_table('permissions')
    op.drop_table('users')
    op.drop_table('sites')
    op.drop_table('groups')
