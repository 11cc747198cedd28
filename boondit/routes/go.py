from __future__ import annotations

from flask import (
    Blueprint,
    current_app,
    redirect,
    render_template,
    request,
    url_for,
)

from ..services import analytics
from ..shared.tracking import tracking_session_id

bp = Blueprint("go", __name__, url_prefix="/go")

DEFAULT_FLAG_REASON = "This creation has been flagged"


@bp.get("/<code>")
def proxy(code: str):
    creation = analytics.get_creation_by_proxy_code(code)
    if creation is None:
        return redirect(url_for("catalog.index", error="invalid-link"))
    if creation.is_flagged:
        return redirect(
            url_for(
                "go.warning",
                code=code,
                reason=creation.flag_reason or DEFAULT_FLAG_REASON,
            )
        )
    session_id = tracking_session_id(request)
    counted = analytics.record_click(
        creation,
        session_id,
        request.headers.get("User-Agent") or "Unknown",
        request.headers.get("Referer"),
    )
    current_app.logger.info(
        f"[CLICK] creation={creation.id} session={session_id} counted={counted}"
    )
    return redirect(creation.url)


@bp.get("/<code>/warning")
def warning(code: str):
    creation = analytics.get_creation_by_proxy_code(code)
    if creation is None:
        return redirect(url_for("catalog.index", error="invalid-link"))
    return render_template(
        "go/warning.html",
        creation=creation,
        reason=request.args.get("reason") or creation.flag_reason,
    )
