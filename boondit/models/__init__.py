from __future__ import annotations

import uuid

from sqlalchemy.orm import validates

from ..app import db
from ..shared.passwords import hash_password, verify_password


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_new_user_id)
    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255))
    bio = db.Column(db.Text)
    avatar = db.Column(db.String(1024))
    discord_id = db.Column(db.String(64), unique=True)
    is_admin = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    is_suspended = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )
    __table_args__ = (
        db.Index("ix_users_email_lower", db.func.lower(email), unique=True),
    )

    creations = db.relationship("Creation", back_populates="user")

    @validates("email")
    def lower_email(self, key, value):  # pragma: no cover - simple normalizer
        return (value or "").strip().lower()

    def set_password(self, plain: str) -> None:
        self.password_hash = hash_password(plain)

    def check_password(self, plain: str) -> bool:
        return verify_password(plain, self.password_hash)


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    slug = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text)
    color = db.Column(db.String(16))
    icon = db.Column(db.String(32))
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, onupdate=db.func.now())

    creations = db.relationship("Creation", back_populates="category")


class Creation(db.Model):
    __tablename__ = "creations"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False)
    url = db.Column(db.String(2048), nullable=False)
    description = db.Column(db.Text)
    overview = db.Column(db.Text)
    icon_url = db.Column(db.String(2048))
    og_image = db.Column(db.String(2048))
    theme_color = db.Column(db.String(16))
    author = db.Column(db.String(255))
    screenshot_url = db.Column(db.String(2048))
    tags = db.Column(db.Text)
    category_id = db.Column(
        db.String(64), db.ForeignKey("categories.id", ondelete="SET NULL")
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    status = db.Column(
        db.String(16), nullable=False, default="draft", server_default="draft"
    )
    is_featured = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    views = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    proxy_code = db.Column(db.String(32), unique=True, index=True)
    is_flagged = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    flag_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )
    __table_args__ = (db.Index("ix_creations_status", "status"),)

    user = db.relationship("User", back_populates="creations")
    category = db.relationship("Category", back_populates="creations")
    screenshots = db.relationship(
        "CreationScreenshot",
        back_populates="creation",
        cascade="all, delete-orphan",
        order_by="CreationScreenshot.sort_order",
    )
    reviews = db.relationship(
        "CreationReview", back_populates="creation", cascade="all, delete-orphan"
    )

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @property
    def path(self) -> str:
        return f"/{self.id}-{self.slug}"

    @property
    def display_icon(self) -> str | None:
        return self.icon_url or self.og_image

    @property
    def tag_list(self) -> list[str]:
        return [t.strip() for t in (self.tags or "").split(",") if t.strip()]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "url": self.url,
            "description": self.description,
            "overview": self.overview,
            "iconUrl": self.icon_url,
            "ogImage": self.og_image,
            "themeColor": self.theme_color,
            "author": self.author,
            "screenshotUrl": self.screenshot_url,
            "tags": self.tag_list,
            "categoryId": self.category_id,
            "userId": self.user_id,
            "status": self.status,
            "isFeatured": self.is_featured,
            "views": self.views,
            "proxyCode": self.proxy_code,
            "isFlagged": self.is_flagged,
            "flagReason": self.flag_reason,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class CreationScreenshot(db.Model):
    __tablename__ = "creation_screenshots"

    id = db.Column(db.Integer, primary_key=True)
    creation_id = db.Column(
        db.Integer,
        db.ForeignKey("creations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = db.Column(db.String(2048), nullable=False)
    is_main = db.Column(
        db.Boolean, nullable=False, default=False, server_default=db.text("false")
    )
    sort_order = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    creation = db.relationship("Creation", back_populates="screenshots")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "isMain": self.is_main,
            "sortOrder": self.sort_order,
        }


class CreationReview(db.Model):
    __tablename__ = "creation_reviews"

    id = db.Column(db.Integer, primary_key=True)
    creation_id = db.Column(
        db.Integer,
        db.ForeignKey("creations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime, server_default=db.func.now(), onupdate=db.func.now()
    )
    __table_args__ = (
        db.UniqueConstraint(
            "creation_id", "user_id", name="uq_creation_reviews_creation_user"
        ),
        db.CheckConstraint(
            "rating >= 1 AND rating <= 5", name="ck_creation_reviews_rating"
        ),
    )

    creation = db.relationship("Creation", back_populates="reviews")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "creationId": self.creation_id,
            "userId": self.user_id,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "user": {
                "id": self.user.id,
                "name": self.user.name,
                "avatar": self.user.avatar,
            }
            if self.user
            else None,
        }


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))
    action = db.Column(db.String(64), nullable=False)
    details = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now())


from .analytics import (  # noqa: E402,F401
    CreationClick,
    CreationDailyStat,
    CreationInstall,
    CreationView,
)
