"""Timestamped tracking events and their daily rollup."""

from __future__ import annotations

from ..app import db
from ..shared.time import utcnow_naive


class CreationClick(db.Model):
    __tablename__ = "creation_clicks"

    id = db.Column(db.Integer, primary_key=True)
    creation_id = db.Column(
        db.Integer, db.ForeignKey("creations.id", ondelete="CASCADE"), nullable=False
    )
    session_id = db.Column(db.String(255), nullable=False)
    user_agent = db.Column(db.Text)
    referrer = db.Column(db.Text)
    clicked_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    __table_args__ = (
        db.Index("ix_creation_clicks_creation_clicked", "creation_id", "clicked_at"),
        db.Index("ix_creation_clicks_creation_session", "creation_id", "session_id"),
    )


class CreationInstall(db.Model):
    __tablename__ = "creation_installs"

    id = db.Column(db.Integer, primary_key=True)
    creation_id = db.Column(
        db.Integer, db.ForeignKey("creations.id", ondelete="CASCADE"), nullable=False
    )
    session_id = db.Column(db.String(255), nullable=False)
    user_agent = db.Column(db.Text)
    installed_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    __table_args__ = (
        db.UniqueConstraint(
            "creation_id", "session_id", name="uq_creation_installs_creation_session"
        ),
    )


class CreationView(db.Model):
    __tablename__ = "creation_views"

    id = db.Column(db.Integer, primary_key=True)
    creation_id = db.Column(
        db.Integer, db.ForeignKey("creations.id", ondelete="CASCADE"), nullable=False
    )
    session_id = db.Column(db.String(255), nullable=False)
    viewed_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    __table_args__ = (
        db.Index("ix_creation_views_creation_session", "creation_id", "session_id"),
    )


class CreationDailyStat(db.Model):
    __tablename__ = "creation_daily_stats"

    id = db.Column(db.Integer, primary_key=True)
    creation_id = db.Column(
        db.Integer, db.ForeignKey("creations.id", ondelete="CASCADE"), nullable=False
    )
    date = db.Column(db.Date, nullable=False)
    clicks = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    unique_clicks = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    installs = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    active_users = db.Column(db.Integer, nullable=False, default=0, server_default="0")
    __table_args__ = (
        db.UniqueConstraint(
            "creation_id", "date", name="uq_creation_daily_stats_creation_date"
        ),
    )

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "clicks": self.clicks,
            "uniqueClicks": self.unique_clicks,
            "installs": self.installs,
            "activeUsers": self.active_users,
        }
