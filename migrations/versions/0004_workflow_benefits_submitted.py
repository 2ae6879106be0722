"""Add benefits_submitted to registration_workflows"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0004_workflow_benefits_submitted"
down_revision = "0003_sacco_and_surveys"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "registration_workflows",
        sa.Column("benefits_submitted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )


def downgrade() -> None:
    op.drop_column("registration_workflows", "benefits_submitted")
