"""002: create store_profiles table

Revision ID: 002
Revises: 001
Create Date: 2026-10-12
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE store_profiles (
            id                  VARCHAR(32)     PRIMARY KEY,
            user_id             BIGINT,
            namespace           VARCHAR(64)     NOT NULL DEFAULT 'default',
            display_name        VARCHAR(64)     NOT NULL,
            slug                VARCHAR(64)     NOT NULL,
            locale              VARCHAR(8)      NOT NULL,
            currency            CHAR(3)         NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'DRAFT',
            short_description   JSONB           NOT NULL DEFAULT '{}'::jsonb,
            country             CHAR(2),
            version             INT             NOT NULL DEFAULT 1,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_store_profiles_namespace_name UNIQUE (namespace, display_name),
            CONSTRAINT uq_store_profiles_slug           UNIQUE (slug),
            CONSTRAINT ck_store_profiles_version_gte_1  CHECK (version >= 1),
            CONSTRAINT ck_store_profiles_status CHECK (
                status IN ('DRAFT', 'MODERATING', 'PUBLISHED', 'BLOCKED')
            ),
            CONSTRAINT ck_store_profiles_description_object CHECK (
                jsonb_typeof(short_description) = 'object'
            )
        );
    """)
    op.execute("CREATE INDEX idx_store_profiles_user_id ON store_profiles (user_id);")
    op.execute("CREATE INDEX idx_store_profiles_status ON store_profiles (status);")
    op.execute("""
        CREATE TRIGGER trg_store_profiles_updated_at
            BEFORE UPDATE ON store_profiles
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE store_profiles IS "
        "'Store profiles. version is bumped by every successful UPDATE';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS store_profiles CASCADE;")
