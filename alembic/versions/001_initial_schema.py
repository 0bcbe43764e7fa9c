"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Detect database type
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == 'sqlite'

    # Choose appropriate JSON type
    json_type = sa.JSON() if is_sqlite else postgresql.JSONB(astext_type=sa.Text())

    # Choose appropriate timestamp default
    timestamp_default = sa.text("(datetime('now'))") if is_sqlite else sa.text('now()')
    false_default = '0' if is_sqlite else 'false'

    # Create admins table
    op.create_table(
        'admins',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('admin_id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column('verification_token', sa.String(length=255), nullable=True),
        sa.Column('verification_token_expiry', sa.DateTime(), nullable=True),
        sa.Column('reset_password_token', sa.String(length=255), nullable=True),
        sa.Column('reset_password_token_expiry', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admins_admin_id', 'admins', ['admin_id'], unique=True)
    op.create_index('ix_admins_email', 'admins', ['email'], unique=True)

    # Create projects table
    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('owner_id', sa.String(length=50), nullable=False),
        sa.Column('app_name', sa.String(length=255), nullable=False),
        sa.Column('app_email', sa.String(length=255), nullable=False),
        sa.Column('project_key', sa.Text(), nullable=False),
        sa.Column('config', json_type, nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id', 'name', name='uq_projects_owner_name'),
    )
    op.create_index('ix_projects_id', 'projects', ['id'])
    op.create_index('ix_projects_project_id', 'projects', ['project_id'], unique=True)
    op.create_index('ix_projects_owner_id', 'projects', ['owner_id'])

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=False),
        sa.Column('project_id', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column('last_active_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('project_id', 'email', name='uq_users_project_email'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_user_id', 'users', ['user_id'], unique=True)
    op.create_index('ix_users_project_id', 'users', ['project_id'])
    op.create_index('ix_users_last_active_at', 'users', ['last_active_at'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # Create sessions table (admin and user sessions, discriminated by kind)
    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(length=50), nullable=False),
        sa.Column('kind', sa.String(length=10), nullable=False),
        sa.Column('admin_id', sa.String(length=50), nullable=True),
        sa.Column('user_id', sa.String(length=50), nullable=True),
        sa.Column('project_id', sa.String(length=50), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('access_token_expiry', sa.DateTime(), nullable=False),
        sa.Column('refresh_token', sa.Text(), nullable=False),
        sa.Column('refresh_token_expiry', sa.DateTime(), nullable=False),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sessions_id', 'sessions', ['id'])
    op.create_index('ix_sessions_session_id', 'sessions', ['session_id'], unique=True)
    op.create_index('ix_sessions_kind', 'sessions', ['kind'])
    op.create_index('ix_sessions_admin_id', 'sessions', ['admin_id'])
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])
    op.create_index('ix_sessions_project_id', 'sessions', ['project_id'])
    op.create_index('ix_sessions_refresh_token_expiry', 'sessions', ['refresh_token_expiry'])

    # Create security_logs table (append-only)
    op.create_table(
        'security_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('log_id', sa.String(length=36), nullable=False),
        sa.Column('project_id', sa.String(length=50), nullable=False),
        sa.Column('user_id', sa.String(length=50), nullable=True),
        sa.Column('event_code', sa.String(length=50), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=timestamp_default),
        sa.Column('metadata', json_type, nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_security_logs_id', 'security_logs', ['id'])
    op.create_index('ix_security_logs_log_id', 'security_logs', ['log_id'], unique=True)
    op.create_index('ix_security_logs_project_id', 'security_logs', ['project_id'])
    op.create_index(
        'ix_security_logs_project_user_timestamp',
        'security_logs',
        ['project_id', 'user_id', 'timestamp'],
    )
    op.create_index(
        'ix_security_logs_project_event_timestamp',
        'security_logs',
        ['project_id', 'event_code', 'timestamp'],
    )


def downgrade() -> None:
    op.drop_table('security_logs')
    op.drop_table('sessions')
    op.drop_table('users')
    op.drop_table('projects')
    op.drop_table('admins')
