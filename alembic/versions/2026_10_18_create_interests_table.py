from alembic import op
import sqlalchemy as sa

revision = "8b2e6f4c1a57"
down_revision = "3f1c2a7d9b40"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "interests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id", ondelete="CASCADE")),
        sa.Column("property_id", sa.String(36), sa.ForeignKey("properties.id", ondelete="CASCADE")),
        sa.Column("message", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "project_id", name="uq_interest_user_project"),
        sa.UniqueConstraint("user_id", "property_id", name="uq_interest_user_property"),
    )


def downgrade():
    op.drop_table("interests")
