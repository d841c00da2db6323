"""Dish endpoints."""

from __future__ import annotations

from flask import Blueprint, request

from .helpers import components, current_actor, ok, payload, require_auth


dishes_bp = Blueprint("kolia_dishes", __name__, url_prefix="/api/dishes")


@dishes_bp.get("/restaurant/<int:restaurant_id>")
def dishes_by_restaurant(restaurant_id: int):
    available_only = request.args.get("available", "true").lower() != "false"
    dishes = components()["catalog_service"].list_dishes(
        restaurant_id, category=request.args.get("category"), available_only=available_only
    )
    return ok(dishes, count=len(dishes))


@dishes_bp.get("/<int:dish_id>")
def get_dish(dish_id: int):
    return ok(components()["catalog_service"].get_dish(dish_id))


@dishes_bp.post("")
@require_auth("restaurant")
def create_dish():
    dish = components()["catalog_service"].create_dish(current_actor(), payload())
    return ok(dish, "Plat créé avec succès", status=201)


@dishes_bp.put("/<int:dish_id>")
@require_auth("restaurant", "admin")
def update_dish(dish_id: int):
    dish = components()["catalog_service"].update_dish(current_actor(), dish_id, payload())
    return ok(dish, "Plat mis à jour avec succès")


@dishes_bp.delete("/<int:dish_id>")
@require_auth("restaurant", "admin")
def delete_dish(dish_id: int):
    components()["catalog_service"].delete_dish(current_actor(), dish_id)
    return ok(message="Plat supprimé avec succès")
