"""exclude overlapping blocking bookings per vehicle

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op


revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    # Half-open ranges: back-to-back bookings ('[)') do not conflict
    op.execute(
        """
        ALTER TABLE bookings
        ADD CONSTRAINT ex_bookings_vehicle_no_overlap
        EXCLUDE USING gist (
            vehicle_id WITH =,
            tsrange(start_ts, end_ts, '[)') WITH &&
        )
        WHERE (status IN ('hold', 'confirmed', 'checked_out'))
        """
    )


def downgrade() -> None:
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_vehicle_no_overlap")
