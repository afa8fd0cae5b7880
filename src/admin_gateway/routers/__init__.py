from . import admin_user_routes, payment_routes, verification_routes

__all__ = ["admin_user_routes", "payment_routes", "verification_routes"]
