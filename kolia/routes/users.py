"""User administration endpoints."""

from __future__ import annotations

from flask import Blueprint, request

from ..common.utils.pagination import parse_paging_args
from .helpers import components, current_actor, ok, payload, require_auth


users_bp = Blueprint("kolia_users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth("admin")
def list_users():
    limit, offset = parse_paging_args(request.args)
    users = components()["user_service"].list_users(role=request.args.get("role"), limit=limit, offset=offset)
    return ok(users, count=len(users))


@users_bp.get("/<int:user_id>")
@require_auth()
def get_user(user_id: int):
    return ok(components()["user_service"].get_user(user_id, current_actor()))


@users_bp.put("/<int:user_id>")
@require_auth()
def update_user(user_id: int):
    user = components()["user_service"].update_user(user_id, current_actor(), payload())
    return ok(user, "Utilisateur mis à jour avec succès")


@users_bp.delete("/<int:user_id>")
@require_auth("admin")
def delete_user(user_id: int):
    components()["user_service"].delete_user(user_id, current_actor())
    return ok(message="Utilisateur supprimé avec succès")
