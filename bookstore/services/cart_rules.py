"""Stock, quantity-cap and pricing rules shared by both cart variants.

Nothing in here touches the database; callers pass in the book rows they
already loaded (and, for the persistent cart, locked).
"""
from typing import Iterable, Optional

from bookstore.config import settings
from bookstore.models.book import Book
from bookstore.schemas.cart_schemas import CartLine, CartView
from bookstore.services.outcomes import CartError, CartOutcome


def check_purchasable(book: Optional[Book], book_id: int) -> Optional[CartOutcome]:
    if book is None:
        return CartOutcome.fail(CartError.BOOK_NOT_FOUND, "Book not found", book_id=book_id)

    if not book.is_active:
        return CartOutcome.fail(
            CartError.BOOK_INACTIVE, "This book is no longer for sale", book_id=book_id
        )

    if not book.in_stock:
        return CartOutcome.fail(
            CartError.OUT_OF_STOCK,
            "This book is out of stock",
            book_id=book_id,
            available_stock=0,
        )

    return None


def check_quantity(
    book: Book,
    current_in_cart: int,
    requested_total: int,
    mention_current: bool = True,
) -> Optional[CartOutcome]:
    """Validate the quantity a cart line would end up with.

    ``current_in_cart`` is reported back to the caller and, for increments,
    quoted in the message; the checks run against ``requested_total``.
    Stock is checked before the per-item cap.
    """
    max_quantity = settings.max_quantity_per_item
    mention_current = mention_current and current_in_cart > 0

    if requested_total > book.stock:
        message = f"Only {book.stock} left in stock."
        if mention_current:
            message += f" You already have {current_in_cart} in your cart."
        return CartOutcome.fail(
            CartError.INSUFFICIENT_STOCK,
            message,
            book_id=book.id,
            available_stock=book.stock,
            current_in_cart=current_in_cart,
        )

    if requested_total > max_quantity:
        message = f"You can buy at most {max_quantity} copies of this book."
        if mention_current:
            message += f" You already have {current_in_cart} in your cart."
        return CartOutcome.fail(
            CartError.QUANTITY_LIMIT_EXCEEDED,
            message,
            book_id=book.id,
            max_quantity=max_quantity,
            current_in_cart=current_in_cart,
        )

    return None


def calculate_totals(subtotal: float) -> dict:
    subtotal = round(subtotal, 2)
    tax = round(subtotal * settings.tax_rate, 2)

    # SHIPPING RULE
    if subtotal <= 0:
        shipping = 0
    elif subtotal >= settings.free_shipping_threshold:
        shipping = 0
    else:
        shipping = settings.shipping_fee

    return {
        "subtotal": subtotal,
        "tax": tax,
        "shipping": shipping,
        "total": round(subtotal + tax + shipping, 2),
    }


def build_line(book: Book, quantity: int, item_id=None, created_at=None) -> CartLine:
    unit_price = book.display_price
    return CartLine(
        item_id=item_id,
        book_id=book.id,
        title=book.title,
        author=book.author,
        slug=book.slug,
        cover_image=book.cover_image,
        price=book.price,
        discount_price=book.discount_price,
        unit_price=unit_price,
        quantity=quantity,
        line_total=round(unit_price * quantity, 2),
        stock=book.stock,
        in_stock=book.in_stock,
        is_active=book.is_active,
        max_quantity=max(0, min(book.stock, settings.max_quantity_per_item)),
        created_at=created_at,
    )


def build_cart_view(lines: Iterable[CartLine]) -> CartView:
    lines = list(lines)
    totals = calculate_totals(sum(line.line_total for line in lines))
    threshold = settings.free_shipping_threshold

    return CartView(
        items=lines,
        item_count=sum(line.quantity for line in lines),
        is_empty=not lines,
        qualifies_for_free_shipping=totals["subtotal"] >= threshold,
        amount_for_free_shipping=round(max(0, threshold - totals["subtotal"]), 2),
        **totals,
    )
