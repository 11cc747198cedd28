"""Click/install analytics for creations.

Raw events live in ``creation_clicks`` and ``creation_installs``; a visitor is
identified by the tracking session id (anonymized IP + device family).
``aggregate_daily_stats`` rolls raw clicks up into ``creation_daily_stats``
and is meant to be run once a day from the CLI.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..app import db
from ..models import (
    Creation,
    CreationClick,
    CreationDailyStat,
    CreationInstall,
)
from ..shared.constants import ANALYTICS_ROLLUP_DAYS, TOP_REFERRER_LIMIT
from ..shared.time import day_bounds, seconds_ago, utcnow_naive
from ..shared.tracking import detect_device


def _round1(value: float) -> float:
    return round(value, 1)


def _clicks_for(creation_id: int):
    return CreationClick.query.filter(CreationClick.creation_id == creation_id)


def get_creation_by_proxy_code(proxy_code: str) -> Creation | None:
    if not proxy_code:
        return None
    return Creation.query.filter_by(proxy_code=proxy_code).one_or_none()


def should_count_click(creation_id: int, session_id: str, window: int) -> bool:
    """True when ``session_id`` has not clicked the creation in the last ``window`` seconds."""
    recent = (
        db.session.query(CreationClick.id)
        .filter(
            CreationClick.creation_id == creation_id,
            CreationClick.session_id == session_id,
            CreationClick.clicked_at >= seconds_ago(window),
        )
        .first()
    )
    return recent is None


def record_click(
    creation: Creation,
    session_id: str,
    user_agent: str | None,
    referrer: str | None,
    window: int | None = None,
) -> bool:
    """Store a proxy click unless the session already clicked within the window."""
    if window is None:
        window = current_app.config.get("CLICK_RATE_LIMIT_SECONDS", 3600)
    if not should_count_click(creation.id, session_id, window):
        return False
    db.session.add(
        CreationClick(
            creation_id=creation.id,
            session_id=session_id,
            user_agent=user_agent,
            referrer=referrer or None,
            clicked_at=utcnow_naive(),
        )
    )
    db.session.commit()
    return True


def record_install(
    proxy_code: str, session_id: str, user_agent: str | None = None
) -> bool:
    """Record an install once per session. False only for an unknown proxy code."""
    creation = get_creation_by_proxy_code(proxy_code)
    if creation is None:
        return False
    existing = CreationInstall.query.filter_by(
        creation_id=creation.id, session_id=session_id
    ).first()
    if existing:
        return True
    db.session.add(
        CreationInstall(
            creation_id=creation.id,
            session_id=session_id,
            user_agent=user_agent or None,
            installed_at=utcnow_naive(),
        )
    )
    db.session.commit()
    return True


def get_active_users(creation_id: int, since: datetime) -> int:
    return (
        db.session.query(func.count(func.distinct(CreationClick.session_id)))
        .filter(
            CreationClick.creation_id == creation_id,
            CreationClick.clicked_at >= since,
        )
        .scalar()
        or 0
    )


def calculate_retention_rate(creation_id: int, days: int) -> float:
    """Percentage of sessions seen before the cutoff that came back after it."""
    cutoff = utcnow_naive() - timedelta(days=days)
    earlier = (
        db.session.query(CreationClick.session_id)
        .filter(
            CreationClick.creation_id == creation_id,
            CreationClick.clicked_at <= cutoff,
        )
        .distinct()
        .subquery()
    )
    first_clickers = db.session.query(func.count()).select_from(earlier).scalar() or 0
    if first_clickers == 0:
        return 0.0
    returned = (
        db.session.query(func.count(func.distinct(CreationClick.session_id)))
        .filter(
            CreationClick.creation_id == creation_id,
            CreationClick.clicked_at >= cutoff,
            CreationClick.session_id.in_(db.select(earlier.c.session_id)),
        )
        .scalar()
        or 0
    )
    return returned / first_clickers * 100


def get_creation_analytics(creation_id: int) -> dict:
    total_clicks = _clicks_for(creation_id).count()
    unique_clicks = (
        db.session.query(func.count(func.distinct(CreationClick.session_id)))
        .filter(CreationClick.creation_id == creation_id)
        .scalar()
        or 0
    )
    total_installs = CreationInstall.query.filter_by(creation_id=creation_id).count()
    install_rate = total_installs / total_clicks * 100 if total_clicks else 0.0

    rollups = (
        CreationDailyStat.query.filter_by(creation_id=creation_id)
        .order_by(CreationDailyStat.date.desc())
        .limit(ANALYTICS_ROLLUP_DAYS)
        .all()
    )
    if rollups:
        avg_daily_clicks = sum(r.clicks for r in rollups) / len(rollups)
        avg_daily_installs = sum(r.installs for r in rollups) / len(rollups)
    else:
        avg_daily_clicks = avg_daily_installs = 0.0

    now = utcnow_naive()
    return {
        "totalClicks": total_clicks,
        "uniqueClicks": unique_clicks,
        "totalInstalls": total_installs,
        "installRate": _round1(install_rate),
        "avgDailyClicks": _round1(avg_daily_clicks),
        "avgDailyInstalls": _round1(avg_daily_installs),
        "retention7Day": _round1(calculate_retention_rate(creation_id, 7)),
        "retention30Day": _round1(calculate_retention_rate(creation_id, 30)),
        "activeUsers7Day": get_active_users(creation_id, now - timedelta(days=7)),
        "activeUsers30Day": get_active_users(creation_id, now - timedelta(days=30)),
    }


def get_creation_daily_stats(creation_id: int, days: int = 30) -> list[dict]:
    """Rollup rows for the last ``days`` days, newest first.

    Falls back to grouping raw clicks when no rollup exists yet; that path
    cannot tell installs or active users and reports them as 0.
    """
    start = utcnow_naive() - timedelta(days=days)
    rollups = (
        CreationDailyStat.query.filter(
            CreationDailyStat.creation_id == creation_id,
            CreationDailyStat.date >= start.date(),
        )
        .order_by(CreationDailyStat.date.desc())
        .all()
    )
    if rollups:
        return [r.to_dict() for r in rollups]

    day = func.date(CreationClick.clicked_at)
    rows = (
        db.session.query(
            day.label("day"),
            func.count().label("clicks"),
            func.count(func.distinct(CreationClick.session_id)).label("unique_clicks"),
        )
        .filter(
            CreationClick.creation_id == creation_id,
            CreationClick.clicked_at >= start,
        )
        .group_by(day)
        .order_by(day.desc())
        .all()
    )
    return [
        {
            "date": str(row.day),
            "clicks": row.clicks,
            "uniqueClicks": row.unique_clicks,
            "installs": 0,
            "activeUsers": 0,
        }
        for row in rows
    ]


def get_top_referrers(creation_id: int, limit: int = TOP_REFERRER_LIMIT) -> list[dict]:
    count = func.count(CreationClick.id)
    rows = (
        db.session.query(CreationClick.referrer, count.label("clicks"))
        .filter(CreationClick.creation_id == creation_id)
        .group_by(CreationClick.referrer)
        .order_by(count.desc())
        .limit(limit)
        .all()
    )
    total = sum(r.clicks for r in rows)
    return [
        {
            "referrer": r.referrer or "Direct",
            "clicks": r.clicks,
            "percentage": r.clicks / total * 100 if total else 0.0,
        }
        for r in rows
    ]


def get_device_breakdown(creation_id: int) -> list[dict]:
    user_agents = (
        db.session.query(CreationClick.user_agent)
        .filter(CreationClick.creation_id == creation_id)
        .all()
    )
    counts = Counter(detect_device(ua) for (ua,) in user_agents)
    total = sum(counts.values())
    return [
        {
            "device": device,
            "clicks": clicks,
            "percentage": clicks / total * 100 if total else 0.0,
        }
        for device, clicks in counts.most_common()
    ]


def aggregate_daily_stats(day: date) -> int:
    """Upsert one rollup row per creation clicked on ``day`` (UTC)."""
    start, end = day_bounds(day)
    in_day = (CreationClick.clicked_at >= start, CreationClick.clicked_at < end)
    creation_ids = [
        row.creation_id
        for row in db.session.query(CreationClick.creation_id)
        .filter(*in_day)
        .group_by(CreationClick.creation_id)
        .all()
    ]
    for creation_id in creation_ids:
        clicks, unique_clicks = (
            db.session.query(
                func.count(CreationClick.id),
                func.count(func.distinct(CreationClick.session_id)),
            )
            .filter(CreationClick.creation_id == creation_id, *in_day)
            .one()
        )
        installs = CreationInstall.query.filter(
            CreationInstall.creation_id == creation_id,
            CreationInstall.installed_at >= start,
            CreationInstall.installed_at < end,
        ).count()
        active_users = get_active_users(creation_id, start)

        row = CreationDailyStat.query.filter_by(
            creation_id=creation_id, date=day
        ).one_or_none()
        if row is None:
            row = CreationDailyStat(creation_id=creation_id, date=day)
            db.session.add(row)
        row.clicks = clicks
        row.unique_clicks = unique_clicks
        row.installs = installs
        row.active_users = active_users
    db.session.commit()
    current_app.logger.info(
        f"[STATS] aggregated day={day.isoformat()} creations={len(creation_ids)}"
    )
    return len(creation_ids)
