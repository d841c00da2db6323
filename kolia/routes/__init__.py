"""Route table of the KOLIA API.

Every blueprint is registered from ``ROUTE_TABLE`` and nowhere else, and
``check_route_conflicts`` refuses to start an app where two views claim the
same rule and method.
"""

import re
from collections import defaultdict
from typing import Dict, List, Set, Tuple

from flask import Flask

from .admin import admin_bp
from .auth import auth_bp
from .dishes import dishes_bp
from .orders import orders_bp
from .payments import payments_bp
from .restaurants import restaurants_bp
from .users import users_bp


ROUTE_TABLE = (
    auth_bp,
    users_bp,
    restaurants_bp,
    dishes_bp,
    orders_bp,
    payments_bp,
    admin_bp,
)


_VARIABLE_RE = re.compile(r"<(?:(\w+)(?:\([^)]*\))?:)?\w+>")


class RouteConflictError(RuntimeError):
    pass


def register_routes(app: Flask) -> None:
    for blueprint in ROUTE_TABLE:
        app.register_blueprint(blueprint)
    check_route_conflicts(app)


def check_route_conflicts(app: Flask) -> None:
    """Raise RouteConflictError if a method on one URL shape has two views."""
    seen: Dict[str, List[Tuple[str, Set[str]]]] = defaultdict(list)
    ignored = {"HEAD", "OPTIONS"}
    for rule in app.url_map.iter_rules():
        methods = set(rule.methods or ()) - ignored
        shape = _VARIABLE_RE.sub(lambda m: f"<{m.group(1) or 'default'}>", rule.rule)
        for endpoint, other in seen[shape]:
            clash = methods & other
            if clash:
                raise RouteConflictError(
                    f"{sorted(clash)} {rule.rule} is served by both {endpoint} and {rule.endpoint}"
                )
        seen[shape].append((rule.endpoint, methods))


__all__ = ["ROUTE_TABLE", "RouteConflictError", "check_route_conflicts", "register_routes"]
