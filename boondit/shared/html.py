from __future__ import annotations

import bleach
from bleach.callbacks import nofollow, target_blank
from markupsafe import Markup
import mistune

ALLOWED_TAGS = [
    "p",
    "br",
    "strong",
    "em",
    "code",
    "pre",
    "ul",
    "ol",
    "li",
    "a",
    "h2",
    "h3",
    "h4",
    "blockquote",
]

ALLOWED_ATTRS = {"a": ["href", "title", "rel"]}


def sanitize_html(raw: str | None) -> str:
    """Sanitize HTML based on a small whitelist."""
    cleaner = bleach.Cleaner(
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRS,
        protocols=["http", "https", "mailto"],
        strip=True,
    )
    return cleaner.clean(raw or "")


def render_markdown(text: str | None) -> Markup:
    """Render a creation description (markdown) to safe HTML for templates."""
    if not text:
        return Markup("")
    html = mistune.html(text)
    cleaned = sanitize_html(html)
    cleaned = bleach.linkify(
        cleaned, callbacks=[nofollow, target_blank]
    )
    return Markup(cleaned)
