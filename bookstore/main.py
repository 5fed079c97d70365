import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from bookstore.config import settings
from bookstore.database import create_db_and_tables
from bookstore.exceptions import StoreError
from bookstore.routes import (
    admin_books,
    admin_categories,
    admin_orders,
    admin_reviews,
    admin_users,
    auth,
    books_public,
    cart,
    categories_public,
    health,
    orders,
    review,
    users,
    wishlist,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local; other environments use alembic
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Bookstore API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# signed cookie holding the guest cart; max_age is refreshed on every response
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key or settings.secret_key,
    session_cookie=settings.session_cookie_name,
    max_age=settings.session_max_age,
    same_site="lax",
    https_only=settings.env not in ("local", "test"),
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(books_public.router, prefix="/books", tags=["Public Books"])
app.include_router(categories_public.router, prefix="/categories", tags=["Public Categories"])
app.include_router(review.router, prefix="/reviews", tags=["Reviews"])
app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(wishlist.router, prefix="/wishlist", tags=["Wishlist"])
app.include_router(admin_books.router, prefix="/admin/books", tags=["Admin Books"])
app.include_router(admin_categories.router, prefix="/admin/categories", tags=["Admin Categories"])
app.include_router(admin_orders.router, prefix="/admin/orders", tags=["Admin Orders"])
app.include_router(admin_users.router, prefix="/admin/users", tags=["Admin Users"])
app.include_router(admin_reviews.router, prefix="/admin/reviews", tags=["Admin Reviews"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "auth_endpoints": ["/auth/register", "/auth/login", "/auth/logout"],
        "user_endpoints": ["/users/me"],
        "public_books": ["/books", "/books/search/suggest", "/books/{book_id}", "/books/slug/{slug}"],
        "public_categories": ["/categories", "/categories/{category_id}"],
        "reviews": ["/reviews/books/{book_id}", "/reviews/{review_id}"],
        "cart": [
            "/cart", "/cart/count", "/cart/add", "/cart/update",
            "/cart/remove/{book_id}", "/cart/clear"
        ],
        "orders": [
            "/orders", "/orders/checkout", "/orders/{order_id}",
            "/orders/{order_id}/cancel", "/orders/{order_id}/reorder"
        ],
        "wishlist": ["/wishlist", "/wishlist/toggle/{book_id}", "/wishlist/move-to-cart/{book_id}"],
        "admin": [
            "/admin/books", "/admin/categories", "/admin/orders",
            "/admin/users", "/admin/reviews"
        ],
    }
