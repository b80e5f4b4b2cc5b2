"""Dialect helpers for Alembic migrations."""
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from alembic import op


def get_uuid_type():
    """UUID column type for the migrating dialect.

    PostgreSQL gets the native type (as Python UUID objects); SQLite and others get
    String(36), matching ``AdaptiveUUID`` in the models.
    """
    if op.get_bind().dialect.name == 'postgresql':
        return UUID(as_uuid=True)
    return sa.String(length=36)


def get_timestamp_default():
    """Server default for created/joined timestamps: NOW() on PostgreSQL, CURRENT_TIMESTAMP elsewhere."""
    if op.get_bind().dialect.name == 'postgresql':
        return sa.text('NOW()')
    return sa.text('CURRENT_TIMESTAMP')
