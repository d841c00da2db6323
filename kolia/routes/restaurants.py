"""Restaurant catalog endpoints."""

from __future__ import annotations

from flask import Blueprint, request

from .helpers import components, current_actor, ok, payload, require_auth


restaurants_bp = Blueprint("kolia_restaurants", __name__, url_prefix="/api/restaurants")


@restaurants_bp.get("")
def list_restaurants():
    status = request.args.get("status", "active")
    restaurants = components()["catalog_service"].list_restaurants(
        commune=request.args.get("commune"),
        category=request.args.get("category"),
        status=None if status == "all" else status,
        query=request.args.get("q"),
    )
    return ok(restaurants, count=len(restaurants))


@restaurants_bp.get("/owner/me")
@require_auth("restaurant")
def owner_restaurant():
    return ok(components()["catalog_service"].get_owner_restaurant(current_actor()))


@restaurants_bp.get("/<int:restaurant_id>")
def get_restaurant(restaurant_id: int):
    return ok(components()["catalog_service"].get_restaurant(restaurant_id))


@restaurants_bp.get("/<int:restaurant_id>/dishes")
def restaurant_dishes(restaurant_id: int):
    dishes = components()["catalog_service"].list_dishes(restaurant_id, category=request.args.get("category"))
    return ok(dishes, count=len(dishes))


@restaurants_bp.post("")
@require_auth("restaurant")
def create_restaurant():
    restaurant = components()["catalog_service"].create_restaurant(current_actor(), payload())
    return ok(restaurant, "Restaurant créé avec succès", status=201)


@restaurants_bp.put("/<int:restaurant_id>")
@require_auth("restaurant", "admin")
def update_restaurant(restaurant_id: int):
    restaurant = components()["catalog_service"].update_restaurant(current_actor(), restaurant_id, payload())
    return ok(restaurant, "Restaurant mis à jour avec succès")


@restaurants_bp.patch("/<int:restaurant_id>/status")
@require_auth("admin")
def set_restaurant_status(restaurant_id: int):
    restaurant = components()["catalog_service"].set_restaurant_status(restaurant_id, payload().get("status"))
    return ok(restaurant, "Statut du restaurant mis à jour")


@restaurants_bp.delete("/<int:restaurant_id>")
@require_auth("restaurant", "admin")
def delete_restaurant(restaurant_id: int):
    components()["catalog_service"].delete_restaurant(current_actor(), restaurant_id)
    return ok(message="Restaurant supprimé avec succès")
