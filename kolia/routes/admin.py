"""Admin dashboard endpoints."""

from __future__ import annotations

from flask import Blueprint

from .helpers import components, ok, require_auth


admin_bp = Blueprint("kolia_admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/stats")
@require_auth("admin")
def dashboard_stats():
    return ok(components()["user_service"].dashboard_stats())
