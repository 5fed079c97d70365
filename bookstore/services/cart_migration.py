import logging
from typing import MutableMapping

from bookstore.exceptions import StoreError
from bookstore.services.cart_service import CartService
from bookstore.services.session_cart_service import SessionCartService

logger = logging.getLogger(__name__)


def migrate_guest_cart(
    guest_cart: SessionCartService,
    guest_owner: MutableMapping,
    user_cart: CartService,
    user_id: int,
) -> int:
    """Move a guest's session cart into the user's saved cart at login.

    Each line goes through the normal add-to-cart rules on its own; a line
    that no longer fits (stock dropped, book withdrawn, cap reached) is logged
    and skipped. The guest cart is emptied afterwards in every case.
    Returns the number of lines migrated.
    """
    items = guest_cart.get_items(guest_owner)
    migrated = 0

    try:
        for item in items:
            try:
                outcome = user_cart.add_item(user_id, item["book_id"], item["quantity"])
            except StoreError:
                logger.error(
                    f"Error migrating cart item {item['book_id']} for user {user_id}"
                )
                continue

            if outcome.success:
                migrated += 1
            else:
                logger.warning(
                    f"Skipped guest cart item {item['book_id']} for user {user_id}: "
                    f"{outcome.error_code.value} {outcome.message}"
                )
    finally:
        guest_cart.clear(guest_owner)

    if items:
        logger.info(f"Migrated {migrated}/{len(items)} guest cart items to user {user_id}")
    return migrated
