"""
API routers, one module per resource.
"""

from food_delivery.routers import admin, auth, driver, orders, public, search

all_routers = [
    auth.router,
    public.router,
    search.router,
    orders.router,
    driver.router,
    admin.router,
]

__all__ = ["all_routers"]
