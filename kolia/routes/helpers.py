"""Shared helpers for the JSON API blueprints."""

from __future__ import annotations

from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app, g, jsonify, request

from ..common.errors import ForbiddenError, ValidationError
from ..common.services.auth_service import Actor


def components() -> Dict[str, Any]:
    return current_app.extensions["kolia_components"]


def config():
    return current_app.config["KOLIA_CONFIG"]


def ok(data: Any = None, message: Optional[str] = None, status: int = 200, **extra):
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict() if request.form else {}
    if not isinstance(data, dict):
        raise ValidationError("Le corps de la requête doit être un objet JSON")
    return data


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def current_actor() -> Actor:
    return g.actor


def require_auth(*roles: str):
    """Resolve the bearer token into ``g.actor``; restrict to ``roles`` when given."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = components()["auth_service"].authenticate(_bearer_token())
            if roles and actor.role not in roles:
                raise ForbiddenError(f"Le rôle {actor.role} n'est pas autorisé à accéder à cette ressource")
            g.actor = actor
            return view(*args, **kwargs)

        return wrapper

    return decorator
