"""Order endpoints: creation, queries and the status workflow."""

from __future__ import annotations

from flask import Blueprint, request

from ..common.utils.pagination import parse_paging_args
from ..common.utils.validators import field
from .helpers import components, current_actor, ok, payload, require_auth


orders_bp = Blueprint("kolia_orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth("admin")
def list_orders():
    limit, offset = parse_paging_args(request.args)
    orders = components()["order_service"].list_orders(
        status=request.args.get("status"),
        restaurant_id=request.args.get("restaurant_id", type=int),
        limit=limit,
        offset=offset,
    )
    return ok(orders, count=len(orders))


@orders_bp.get("/my-orders")
@require_auth("client")
def my_orders():
    limit, offset = parse_paging_args(request.args, default_limit=20)
    orders = components()["order_service"].list_user_orders(
        current_actor(), status=request.args.get("status"), limit=limit, offset=offset
    )
    return ok(orders, count=len(orders))


@orders_bp.get("/my-deliveries")
@require_auth("livreur")
def my_deliveries():
    limit, offset = parse_paging_args(request.args, default_limit=20)
    orders = components()["order_service"].list_driver_orders(
        current_actor(), status=request.args.get("status"), limit=limit, offset=offset
    )
    return ok(orders, count=len(orders))


@orders_bp.get("/restaurant/<int:restaurant_id>")
@require_auth("restaurant", "admin")
def restaurant_orders(restaurant_id: int):
    limit, offset = parse_paging_args(request.args)
    orders = components()["order_service"].list_restaurant_orders(
        current_actor(), restaurant_id, status=request.args.get("status"), limit=limit, offset=offset
    )
    return ok(orders, count=len(orders))


@orders_bp.get("/<int:order_id>")
@require_auth()
def get_order(order_id: int):
    return ok(components()["order_service"].get_order(order_id, current_actor()))


@orders_bp.post("")
@require_auth("client")
def create_order():
    order = components()["order_service"].create_order(current_actor(), payload())
    return ok(order, "Commande créée avec succès", status=201)


@orders_bp.patch("/<int:order_id>/status")
@require_auth("restaurant", "livreur", "admin")
def update_status(order_id: int):
    body = payload()
    order = components()["status_machine"].update_status(
        order_id,
        current_actor(),
        body.get("status"),
        expected_status=field(body, "expectedStatus", "expected_status"),
        expected_version=field(body, "expectedVersion", "expected_version"),
    )
    return ok(order, "Statut mis à jour avec succès")


@orders_bp.patch("/<int:order_id>/cancel")
@require_auth("client", "admin")
def cancel_order(order_id: int):
    body = payload()
    order = components()["status_machine"].cancel_order(
        order_id, current_actor(), expected_version=field(body, "expectedVersion", "expected_version")
    )
    return ok(order, "Commande annulée avec succès")


@orders_bp.patch("/<int:order_id>/assign-driver")
@require_auth("restaurant", "admin")
def assign_driver(order_id: int):
    body = payload()
    order = components()["status_machine"].assign_driver(
        order_id, current_actor(), field(body, "driverId", "driver_id")
    )
    return ok(order, "Livreur assigné avec succès")
