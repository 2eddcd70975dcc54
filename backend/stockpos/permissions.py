# Overview: Action codes and the default role -> capability table.

from .models.auth import ROLE_ADMIN, ROLE_SALES, ROLE_VIEWER


COMMIT_SALE = "commit_sale"
VIEW_SALES = "view_sales"
REGISTER_MOVEMENT = "register_movement"
VIEW_MOVEMENTS = "view_movements"
VIEW_PRODUCTS = "view_products"
VIEW_DASHBOARD = "view_dashboard"

ACTION_DEFINITIONS = {
    COMMIT_SALE: "Commit a sale from the point-of-sale screen",
    VIEW_SALES: "View sales history and print receipts",
    REGISTER_MOVEMENT: "Register manual stock in/out movements",
    VIEW_MOVEMENTS: "View the stock movement log",
    VIEW_PRODUCTS: "View products and stock levels",
    VIEW_DASHBOARD: "View the dashboard and activity feed",
}

ROLE_CAPABILITIES = {
    ROLE_ADMIN: frozenset(ACTION_DEFINITIONS),
    ROLE_SALES: frozenset({
        COMMIT_SALE,
        VIEW_SALES,
        REGISTER_MOVEMENT,
        VIEW_MOVEMENTS,
        VIEW_PRODUCTS,
        VIEW_DASHBOARD,
    }),
    ROLE_VIEWER: frozenset({
        VIEW_PRODUCTS,
        VIEW_DASHBOARD,
    }),
}
