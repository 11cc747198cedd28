"""initial schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar", sa.String(1024), nullable=True),
        sa.Column("discord_id", sa.String(64), nullable=True, unique=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "is_suspended", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_users_email_lower", "users", [sa.text("lower(email)")], unique=True
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(16), nullable=True),
        sa.Column("icon", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "creations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("overview", sa.Text(), nullable=True),
        sa.Column("icon_url", sa.String(2048), nullable=True),
        sa.Column("og_image", sa.String(2048), nullable=True),
        sa.Column("theme_color", sa.String(16), nullable=True),
        sa.Column("author", sa.String(255), nullable=True),
        sa.Column("screenshot_url", sa.String(2048), nullable=True),
        sa.Column("tags", sa.Text(), nullable=True),
        sa.Column(
            "category_id",
            sa.String(64),
            sa.ForeignKey("categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column(
            "is_featured", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("proxy_code", sa.String(32), nullable=True),
        sa.Column(
            "is_flagged", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("flag_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_creations_user_id", "creations", ["user_id"])
    op.create_index("ix_creations_status", "creations", ["status"])
    op.create_index("ix_creations_proxy_code", "creations", ["proxy_code"], unique=True)

    op.create_table(
        "creation_screenshots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "creation_id",
            sa.Integer(),
            sa.ForeignKey("creations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("is_main", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_creation_screenshots_creation_id", "creation_screenshots", ["creation_id"]
    )

    op.create_table(
        "creation_reviews",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "creation_id",
            sa.Integer(),
            sa.ForeignKey("creations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "creation_id", "user_id", name="uq_creation_reviews_creation_user"
        ),
        sa.CheckConstraint(
            "rating >= 1 AND rating <= 5", name="ck_creation_reviews_rating"
        ),
    )
    op.create_index(
        "ix_creation_reviews_creation_id", "creation_reviews", ["creation_id"]
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "creation_clicks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "creation_id",
            sa.Integer(),
            sa.ForeignKey("creations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("clicked_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_creation_clicks_creation_clicked",
        "creation_clicks",
        ["creation_id", "clicked_at"],
    )
    op.create_index(
        "ix_creation_clicks_creation_session",
        "creation_clicks",
        ["creation_id", "session_id"],
    )

    op.create_table(
        "creation_installs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "creation_id",
            sa.Integer(),
            sa.ForeignKey("creations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("installed_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "creation_id", "session_id", name="uq_creation_installs_creation_session"
        ),
    )

    op.create_table(
        "creation_views",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "creation_id",
            sa.Integer(),
            sa.ForeignKey("creations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("viewed_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_creation_views_creation_session",
        "creation_views",
        ["creation_id", "session_id"],
    )

    op.create_table(
        "creation_daily_stats",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "creation_id",
            sa.Integer(),
            sa.ForeignKey("creations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("clicks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unique_clicks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("installs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active_users", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint(
            "creation_id", "date", name="uq_creation_daily_stats_creation_date"
        ),
    )


def downgrade() -> None:
    op.drop_table("creation_daily_stats")
    op.drop_index("ix_creation_views_creation_session", table_name="creation_views")
    op.drop_table("creation_views")
    op.drop_table("creation_installs")
    op.drop_index("ix_creation_clicks_creation_session", table_name="creation_clicks")
    op.drop_index("ix_creation_clicks_creation_clicked", table_name="creation_clicks")
    op.drop_table("creation_clicks")
    op.drop_table("audit_logs")
    op.drop_index("ix_creation_reviews_creation_id", table_name="creation_reviews")
    op.drop_table("creation_reviews")
    op.drop_index(
        "ix_creation_screenshots_creation_id", table_name="creation_screenshots"
    )
    op.drop_table("creation_screenshots")
    op.drop_index("ix_creations_proxy_code", table_name="creations")
    op.drop_index("ix_creations_status", table_name="creations")
    op.drop_index("ix_creations_user_id", table_name="creations")
    op.drop_table("creations")
    op.drop_table("categories")
    op.drop_index("ix_users_email_lower", table_name="users")
    op.drop_table("users")
