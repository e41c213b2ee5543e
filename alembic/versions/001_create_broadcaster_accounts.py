"""001: create updated_at trigger function and broadcaster_accounts table

Revision ID: 001
Revises: 
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE broadcaster_accounts (
            user_id             VARCHAR(64)     PRIMARY KEY,
            email               VARCHAR(255),
            display_name        VARCHAR(255)    NOT NULL,
            external_account_id VARCHAR(255),
            activated           BOOLEAN         NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_broadcaster_accounts_external UNIQUE (external_account_id)
        );
    """)
    op.execute(
        "CREATE INDEX idx_broadcaster_accounts_email ON broadcaster_accounts (LOWER(email));"
    )
    op.execute("""
        CREATE TRIGGER trg_broadcaster_accounts_updated_at
            BEFORE UPDATE ON broadcaster_accounts
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute(
        "COMMENT ON TABLE broadcaster_accounts IS "
        "'Broadcaster payout link; only activated gates transfers';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS broadcaster_accounts CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
