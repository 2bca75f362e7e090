"""initial_schema

Revision ID: 4b7e1c9d2a60
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4b7e1c9d2a60'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLES = (
    "'administrador', 'presidente', 'vicepresidente', 'secretario_cam', "
    "'secretario_ampp', 'secretario_cf', 'intendente', 'cf_member'"
)
WORKSPACES = "'presidencia', 'intendencia', 'cam', 'ampp', 'comisiones_cf'"


def upgrade() -> None:
    """Create directory, document, notification and audit tables."""

    # --- users (directory) ---
    op.create_table('users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=30), nullable=False),
        sa.Column('workspace', sa.String(length=30), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=True,
                  server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True,
                  server_default=sa.text('NOW()')),
        sa.CheckConstraint(f"role IN ({ROLES})", name='ck_users_role'),
        sa.CheckConstraint(f"workspace IN ({WORKSPACES})",
                           name='ck_users_workspace'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_workspace', 'users', ['workspace'])

    # --- documents ---
    op.create_table('documents',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('workspace', sa.String(length=30), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False,
                  server_default='draft'),
        sa.Column('created_by', sa.UUID(), nullable=False),
        sa.Column('assigned_to', sa.UUID(), nullable=True),
        sa.Column('version', sa.String(length=20), nullable=False,
                  server_default='1.0.0'),
        sa.Column('revision', sa.Integer(), nullable=False,
                  server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=True,
                  server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True,
                  server_default=sa.text('NOW()')),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['assigned_to'], ['users.id'],
                                ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_documents_workspace', 'documents', ['workspace'])
    op.create_index('ix_documents_status', 'documents', ['status'])

    # --- notifications (one row per fan-out) ---
    op.create_table('notifications',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('priority', sa.String(length=10), nullable=False,
                  server_default='normal'),
        sa.Column('status', sa.String(length=20), nullable=False,
                  server_default='sent'),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('created_by', sa.UUID(), nullable=True),
        sa.Column('related_document_id', sa.UUID(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True,
                  server_default='{}'),
        sa.Column('recipient_count', sa.Integer(), nullable=False,
                  server_default='0'),
        sa.Column('read_count', sa.Integer(), nullable=False,
                  server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('NOW()')),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('scheduled_for', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'],
                                ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['related_document_id'], ['documents.id'],
                                ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_created_at', 'notifications',
                    ['created_at'])
    op.create_index('ix_notifications_expires_at', 'notifications',
                    ['expires_at'],
                    postgresql_where=sa.text('expires_at IS NOT NULL'))

    # --- notification_deliveries (per-user read state) ---
    op.create_table('notification_deliveries',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('notification_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('delivery_methods', postgresql.JSONB(), nullable=True,
                  server_default='["browser"]'),
        sa.Column('is_read', sa.Boolean(), nullable=False,
                  server_default='false'),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False,
                  server_default='false'),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('action_taken', sa.Boolean(), nullable=False,
                  server_default='false'),
        sa.Column('action_taken_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['notification_id'], ['notifications.id'],
                                ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('notification_id', 'user_id',
                            name='uq_delivery_notification_user'),
    )
    op.create_index('ix_delivery_user_read', 'notification_deliveries',
                    ['user_id', 'is_read', 'is_archived'])

    # --- notification_templates ---
    op.create_table('notification_templates',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False,
                  server_default='info'),
        sa.Column('priority', sa.String(length=10), nullable=False,
                  server_default='normal'),
        sa.Column('variables', postgresql.JSONB(), nullable=True,
                  server_default='[]'),
        sa.Column('is_active', sa.Boolean(), nullable=False,
                  server_default='true'),
        sa.Column('created_by', sa.UUID(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True,
                  server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(), nullable=True,
                  server_default=sa.text('NOW()')),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'],
                                ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    # --- audit_log (append-only) ---
    op.create_table('audit_log',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.UUID(), nullable=True),
        sa.Column('details', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False,
                  server_default=sa.text('NOW()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_log_user_id', 'audit_log', ['user_id'])
    op.create_index('ix_audit_log_created_at', 'audit_log', ['created_at'])
    op.create_index('ix_audit_log_entity', 'audit_log',
                    ['entity_type', 'entity_id'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('audit_log')
    op.drop_table('notification_templates')
    op.drop_index('ix_delivery_user_read',
                  table_name='notification_deliveries')
    op.drop_table('notification_deliveries')
    op.drop_table('notifications')
    op.drop_table('documents')
    op.drop_table('users')
