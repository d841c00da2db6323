"""Registration, login and profile endpoints."""

from __future__ import annotations

from flask import Blueprint

from .helpers import components, current_actor, ok, payload, require_auth


auth_bp = Blueprint("kolia_auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register():
    result = components()["auth_service"].register(payload())
    return ok(result, "Utilisateur créé avec succès", status=201)


@auth_bp.post("/login")
def login():
    body = payload()
    result = components()["auth_service"].login(body.get("email"), body.get("password"))
    return ok(result, "Connexion réussie")


@auth_bp.get("/me")
@require_auth()
def me():
    return ok(components()["user_service"].get_user(current_actor().id, current_actor()))


@auth_bp.put("/profile")
@require_auth()
def update_profile():
    user = components()["auth_service"].update_profile(current_actor(), payload())
    return ok(user, "Profil mis à jour avec succès")
