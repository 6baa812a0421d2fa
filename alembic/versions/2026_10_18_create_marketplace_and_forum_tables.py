from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "3f1c2a7d9b40"
down_revision = None
branch_labels = None
depends_on = None

property_type = sa.Enum(
    "SINGLE_FAMILY", "CONDO", "APARTMENT", "VILLA", "TOWNHOUSE", "COMMERCIAL", "LAND",
    name="propertytype",
)
listing_type = sa.Enum("SALE", "RENT", name="listingtype")
listing_status = sa.Enum("ACTIVE", "ARCHIVED", "SOLD", name="listingstatus")
user_role = sa.Enum("AGENT", "BUYER", name="userrole")
reaction_type = sa.Enum("THANKS", "LAUGH", "CONFUSED", "SAD", "ANGRY", "LOVE", name="reactiontype")
# Second table reuses the type created with post_reactions
reply_reaction_type = postgresql.ENUM(
    "THANKS", "LAUGH", "CONFUSED", "SAD", "ANGRY", "LOVE", name="reactiontype", create_type=False,
)


def _timestamps(updated=True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255)),
        sa.Column("username", sa.String(64), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("mobile_number", sa.String(20), unique=True),
        sa.Column("password_hash", sa.String(255)),
        sa.Column("is_agent", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("role", user_role, nullable=False, server_default="BUYER"),
        sa.Column("company_name", sa.String(255)),
        sa.Column("image_link", sa.String(1024)),
        sa.Column("email_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("mobile_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("city", sa.String(120)),
        sa.Column("state", sa.String(120)),
        sa.Column("country", sa.String(120), nullable=False, server_default="India"),
        sa.Column("zipcode", sa.String(20), server_default=""),
        sa.Column("locality", sa.String(255), server_default=""),
        sa.Column("neighborhood", sa.String(255)),
        sa.Column("latitude", sa.Float),
        sa.Column("longitude", sa.Float),
        sa.Column("formatted_address", sa.String(1024)),
        sa.Column("coord_bucket", sa.String(64), unique=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_locations_lat_lng", "locations", ["latitude", "longitude"])
    op.create_index("ix_locations_city_state", "locations", ["city", "state"])

    op.create_table(
        "builders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text),
        sa.Column("website", sa.String(1024)),
        sa.Column("logo_url", sa.String(1024)),
        sa.Column("address", sa.String(1024)),
        sa.Column("emails", sa.JSON, nullable=False),
        sa.Column("phones", sa.JSON, nullable=False),
        *_timestamps(updated=False),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("type", sa.String(30), nullable=False, server_default="RESIDENTIAL"),
        sa.Column("builder_id", sa.String(36), sa.ForeignKey("builders.id"), nullable=False),
        sa.Column("location_id", sa.String(36), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("posted_by_user_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("builder_website_link", sa.String(1024)),
        sa.Column("brochure_url", sa.String(1024)),
        sa.Column("banner_image_url", sa.String(1024)),
        sa.Column("thumbnail_url", sa.String(1024)),
        sa.Column("highlights", sa.JSON),
        sa.Column("amenities", sa.JSON),
        sa.Column("image_urls", sa.JSON, nullable=False),
        sa.Column("walkthrough_video_url", sa.String(1024)),
        sa.Column("is_archived", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("location_id", sa.String(36), sa.ForeignKey("locations.id"), nullable=False),
        sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id")),
        sa.Column("builder_id", sa.String(36), sa.ForeignKey("builders.id")),
        sa.Column("street_address", sa.String(1024), nullable=False),
        sa.Column("posted_by", sa.String(255), nullable=False),
        sa.Column("property_type", property_type, nullable=False),
        sa.Column("listing_type", listing_type, nullable=False, server_default="SALE"),
        sa.Column("listing_status", listing_status, nullable=False, server_default="ACTIVE"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("price", sa.Float),
        sa.Column("bedrooms", sa.Integer),
        sa.Column("bathrooms", sa.Integer),
        sa.Column("property_size", sa.Float),
        sa.Column("property_size_unit", sa.String(10)),
        sa.Column("plot_size", sa.Float),
        sa.Column("plot_size_unit", sa.String(10)),
        sa.Column("facing", sa.String(20)),
        sa.Column("sq_ft", sa.Float),
        sa.Column("thumbnail_url", sa.String(1024)),
        sa.Column("image_urls", sa.JSON, nullable=False),
        sa.Column("walkthrough_video_url", sa.String(1024)),
        sa.Column("sold_to", sa.String(255)),
        sa.Column("sold_to_user_id", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column("sold_date", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_properties_status_created", "properties", ["listing_status", "created_at"])
    op.create_index("ix_properties_user", "properties", ["user_id"])

    op.create_table(
        "saved_properties",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("property_id", sa.String(36), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("user_id", "property_id", name="uq_saved_property_user"),
    )

    op.create_table(
        "forum_categories",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text),
        sa.Column("city", sa.String(120)),
        sa.Column("state", sa.String(120)),
        sa.Column("property_type", sa.String(30)),
        sa.Column("parent_id", sa.String(36), sa.ForeignKey("forum_categories.id")),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(updated=False),
    )

    op.create_table(
        "forum_posts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("slug", sa.String(300), nullable=False, unique=True),
        sa.Column("category_id", sa.String(36), sa.ForeignKey("forum_categories.id"), nullable=False),
        sa.Column("author_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("is_sticky", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_locked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("reply_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_reply_at", sa.DateTime(timezone=True)),
        sa.Column("last_reply_by", sa.String(36), sa.ForeignKey("users.id")),
        *_timestamps(),
    )

    op.create_table(
        "forum_replies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("post_id", sa.String(36), sa.ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("parent_id", sa.String(36), sa.ForeignKey("forum_replies.id")),
        *_timestamps(updated=False),
    )

    op.create_table(
        "post_reactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("post_id", sa.String(36), sa.ForeignKey("forum_posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", reaction_type, nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("post_id", "user_id", "type", name="uq_post_reaction"),
    )

    op.create_table(
        "reply_reactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reply_id", sa.String(36), sa.ForeignKey("forum_replies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", reply_reaction_type, nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("reply_id", "user_id", "type", name="uq_reply_reaction"),
    )


def downgrade():
    op.drop_table("reply_reactions")
    op.drop_table("post_reactions")
    op.drop_table("forum_replies")
    op.drop_table("forum_posts")
    op.drop_table("forum_categories")
    op.drop_table("saved_properties")
    op.drop_table("properties")
    op.drop_table("projects")
    op.drop_table("builders")
    op.drop_table("locations")
    op.drop_table("users")
    bind = op.get_bind()
    for enum in (reaction_type, user_role, listing_status, listing_type, property_type):
        enum.drop(bind, checkfirst=True)
