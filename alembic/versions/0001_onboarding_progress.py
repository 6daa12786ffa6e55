"""Initial OnboardGate schema."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_onboarding_progress"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the onboarding progress table."""
    op.create_table(
        "onboarding_progress",
        sa.Column("user_id", sa.String(length=255), primary_key=True),
        sa.Column("role", sa.String(length=50), nullable=True),
        sa.Column("current_step", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "completed_steps",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "step_data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_onboarding_progress_completed",
        "onboarding_progress",
        ["is_completed", "updated_at"],
    )


def downgrade() -> None:
    """Drop the onboarding progress table."""
    op.drop_index("idx_onboarding_progress_completed", table_name="onboarding_progress")
    op.drop_table("onboarding_progress")
