from fastapi import HTTPException, status

from bookstore.services.outcomes import NOT_FOUND_ERRORS


def raise_for_outcome(outcome):
    """Turn a failed cart/order outcome into an HTTP error carrying its details."""
    if outcome.success:
        return outcome

    status_code = (
        status.HTTP_404_NOT_FOUND
        if outcome.error_code in NOT_FOUND_ERRORS
        else status.HTTP_400_BAD_REQUEST
    )
    raise HTTPException(
        status_code=status_code,
        detail=outcome.model_dump(mode="json", exclude_none=True, exclude={"cart", "order"}),
    )
