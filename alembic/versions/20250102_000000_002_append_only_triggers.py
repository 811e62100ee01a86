"""Make responses and audit events append-only at the database level.

Revision ID: 002_append_only
Revises: 001
Create Date: 2025-01-02 00:00:00.000000

PostgreSQL triggers reject UPDATE and DELETE on assessment_responses and
audit_events. Recorded answers and audit history cannot be altered after
the fact, even by a session that bypasses the services.
"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "002_append_only"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

APPEND_ONLY_TABLES = ("assessment_responses", "audit_events")


def upgrade() -> None:
    """Add append-only triggers."""

    op.execute("""
        CREATE OR REPLACE FUNCTION prevent_append_only_modification()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION '% rows are append-only and cannot be %d. Row ID: %',
                TG_TABLE_NAME, lower(TG_OP), OLD.id;
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql;
    """)

    for table in APPEND_ONLY_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS {table}_append_only_trigger ON {table}")
        op.execute(f"""
            CREATE TRIGGER {table}_append_only_trigger
            BEFORE UPDATE OR DELETE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION prevent_append_only_modification()
        """)


def downgrade() -> None:
    """Remove append-only triggers."""

    for table in APPEND_ONLY_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS {table}_append_only_trigger ON {table}")

    op.execute("DROP FUNCTION IF EXISTS prevent_append_only_modification()")
