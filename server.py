"""
Back-Office HTTP Server
=======================
FastAPI surface over the restaurant controller.

NO BUSINESS LOGIC - request parsing and error mapping only.

Error mapping:
- guard rejection (checkout, booking) -> 409
- unknown product / table / user      -> 404
- invalid credentials                 -> 401
- account pending or rejected         -> 403
- duplicate e-mail                    -> 409
- invalid values                      -> 400
"""

import logging
from typing import Optional
from datetime import date

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
import uvicorn

from catalog import UnknownProductError
from config import get_config, validate_configuration
from restaurant import RestaurantController
from schemas import (
    BookingCreate,
    CartItemAdd,
    CartQuantityChange,
    ExpenseCreate,
    OrderTypeSelect,
    PaymentSelect,
    ProductCreate,
    ProductUpdate,
    TableSelect,
    TableStatusUpdate,
    UserApprove,
    UserLogin,
    UserRegister,
)
from tables import TableStatus, UnknownTableError
from users import (
    AccountNotActiveError,
    DuplicateEmailError,
    InvalidCredentialsError,
    UnknownUserError,
    UserStatus,
)


# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _key_detail(exc: KeyError) -> str:
    return str(exc.args[0]) if exc.args else "Not found"


def _rejected(action: str, controller: RestaurantController) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=f"{action} not allowed in state {controller.checkout.state.value}"
    )


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

def create_app(controller: Optional[RestaurantController] = None) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        controller: Controller to serve; built from configuration if omitted

    Returns:
        FastAPI app with the controller on ``app.state.controller``
    """
    config = get_config()
    controller = controller or RestaurantController.from_config(config)

    app = FastAPI(title=f"{config.core.restaurant_name} Back Office")
    app.state.controller = controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    @app.exception_handler(UnknownUserError)
    @app.exception_handler(UnknownProductError)
    @app.exception_handler(UnknownTableError)
    async def not_found_handler(request: Request, exc: KeyError):
        return JSONResponse(status_code=404, content={"detail": _key_detail(exc)})

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(request: Request, exc: InvalidCredentialsError):
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(AccountNotActiveError)
    async def inactive_account_handler(request: Request, exc: AccountNotActiveError):
        return JSONResponse(
            status_code=403,
            content={"detail": str(exc), "status": exc.status.value}
        )

    @app.exception_handler(DuplicateEmailError)
    async def duplicate_email_handler(request: Request, exc: DuplicateEmailError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "restaurant": config.core.restaurant_name,
            "currency": controller.currency,
            "checkout_state": controller.checkout.state.value,
        }

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @app.get("/products")
    async def list_products(category: Optional[str] = None, q: str = "", include_deleted: bool = False):
        catalog = controller.state.catalog
        products = catalog.all() if include_deleted else catalog.selectable(category, q)
        return [product.to_dict() for product in products]

    @app.get("/products/low-stock")
    async def low_stock_products():
        products = controller.state.catalog.low_stock(controller.low_stock_threshold)
        return [product.to_dict() for product in products]

    @app.post("/products", status_code=201)
    async def add_product(payload: ProductCreate):
        product = controller.add_product(
            payload.name, payload.price, payload.category, payload.stock, payload.image
        )
        return product.to_dict()

    @app.patch("/products/{product_id}")
    async def update_product(product_id: str, payload: ProductUpdate):
        changes = payload.model_dump(exclude_none=True)
        return controller.update_product(product_id, **changes).to_dict()

    @app.delete("/products/{product_id}")
    async def delete_product(product_id: str):
        return controller.delete_product(product_id).to_dict()

    # ------------------------------------------------------------------
    # Tables & bookings
    # ------------------------------------------------------------------

    @app.get("/tables")
    async def list_tables(status: Optional[TableStatus] = None):
        tables = controller.state.tables
        selected = tables.with_status(status) if status else tables.all()
        return [table.to_dict() for table in selected]

    @app.post("/tables/{table_id}/status")
    async def update_table_status(table_id: str, payload: TableStatusUpdate):
        return controller.update_table_status(table_id, payload.status).to_dict()

    @app.get("/bookings")
    async def list_bookings():
        return [booking.to_dict() for booking in controller.state.bookings]

    @app.post("/bookings", status_code=201)
    async def create_booking(payload: BookingCreate):
        booking = controller.create_booking(
            payload.customer_name,
            payload.table_id,
            payload.booking_date,
            payload.booking_time,
            payload.party_size
        )
        if booking is None:
            raise HTTPException(status_code=409, detail="Booking rejected")
        return booking.to_dict()

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    @app.get("/expenses")
    async def list_expenses():
        return [expense.to_dict() for expense in controller.state.expenses]

    @app.post("/expenses", status_code=201)
    async def record_expense(payload: ExpenseCreate):
        expense = controller.record_expense(
            payload.category, payload.amount, payload.description, payload.expense_date
        )
        if expense is None:
            raise HTTPException(status_code=400, detail="Expense rejected")
        return expense.to_dict()

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    @app.get("/checkout")
    async def checkout_status():
        return controller.checkout.to_dict()

    @app.post("/checkout/items")
    async def add_cart_item(payload: CartItemAdd):
        if not controller.add_to_cart(payload.product_id):
            raise _rejected("add_item", controller)
        return controller.checkout.to_dict()

    @app.patch("/checkout/items/{product_id}")
    async def change_cart_quantity(product_id: str, payload: CartQuantityChange):
        if not controller.checkout.set_quantity(product_id, payload.delta):
            raise _rejected("set_quantity", controller)
        return controller.checkout.to_dict()

    @app.delete("/checkout/items/{product_id}")
    async def remove_cart_item(product_id: str):
        if not controller.checkout.remove_item(product_id):
            raise _rejected("remove_item", controller)
        return controller.checkout.to_dict()

    @app.post("/checkout/order-type")
    async def set_order_type(payload: OrderTypeSelect):
        if not controller.checkout.set_order_type(payload.order_type):
            raise _rejected("set_order_type", controller)
        return controller.checkout.to_dict()

    @app.post("/checkout/table")
    async def select_table(payload: TableSelect):
        if not controller.checkout.select_table(payload.table_id):
            raise _rejected("select_table", controller)
        return controller.checkout.to_dict()

    @app.post("/checkout/start")
    async def start_checkout():
        if not controller.checkout.start_checkout():
            raise _rejected("start_checkout", controller)
        return controller.checkout.to_dict()

    @app.post("/checkout/cancel")
    async def cancel_payment():
        if not controller.checkout.cancel_payment():
            raise _rejected("cancel_payment", controller)
        return controller.checkout.to_dict()

    @app.post("/checkout/pay")
    async def pay(payload: PaymentSelect):
        order = await controller.pay(payload.method)
        if order is None:
            raise _rejected("select_payment_method", controller)
        return order.to_dict()

    @app.post("/checkout/reset")
    async def reset_checkout():
        if not controller.checkout.reset():
            raise _rejected("reset", controller)
        return controller.checkout.to_dict()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    @app.get("/orders")
    async def list_orders():
        return [order.to_dict() for order in controller.state.orders]

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str):
        order = controller.state.orders.get(order_id)
        if order is None:
            raise HTTPException(status_code=404, detail="Order not found")
        return order.to_dict()

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    @app.get("/reports/stats")
    async def stats():
        return controller.stats().to_dict()

    @app.get("/reports/pnl")
    async def profit_and_loss(start: Optional[date] = None, end: Optional[date] = None):
        return controller.period_report(start, end).to_dict()

    @app.get("/reports/ledger")
    async def general_ledger(start: Optional[date] = None, end: Optional[date] = None):
        return [row.to_dict() for row in controller.ledger_view(start, end)]

    @app.get("/reports/balance-sheet")
    async def balance_sheet(start: Optional[date] = None, end: Optional[date] = None):
        return controller.balance_sheet(start, end)

    @app.get("/reports/dashboard")
    async def dashboard():
        return controller.dashboard()

    @app.get("/reports/advice")
    async def financial_advice(start: Optional[date] = None, end: Optional[date] = None):
        return {"advice": await controller.financial_advice(start, end)}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @app.get("/users")
    async def list_users(status: Optional[UserStatus] = None):
        users = controller.state.users.all()
        if status:
            users = [user for user in users if user.status == status]
        return [user.to_dict() for user in users]

    @app.post("/users/register", status_code=201)
    async def register_user(payload: UserRegister):
        return controller.register_user(payload.name, payload.email, payload.password).to_dict()

    @app.post("/users/login")
    async def login(payload: UserLogin):
        return controller.login(payload.email, payload.password).to_dict()

    @app.post("/users/{user_id}/approve")
    async def approve_user(user_id: str, payload: UserApprove):
        return controller.approve_user(user_id, payload.role).to_dict()

    @app.post("/users/{user_id}/reject")
    async def reject_user(user_id: str):
        return controller.reject_user(user_id).to_dict()

    @app.on_event("startup")
    async def startup_event():
        logger.info("Back-office server starting...")
        for warning in config.validate_runtime_dependencies():
            logger.warning(warning)

    return app


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def main():
    """Run the back-office server."""
    validate_configuration()
    config = get_config()

    logging.getLogger().setLevel(config.server.log_level)

    logger.info(f"Starting server on {config.server.host}:{config.server.port}")

    uvicorn.run(
        create_app(),
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
