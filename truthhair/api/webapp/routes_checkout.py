from typing import Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request

from truthhair.api.rate_limit import CHECKOUT_RATE_LIMIT, limiter
from truthhair.core.async_db import AsyncDBProxy
from truthhair.core.exceptions import (
    CartStorageException,
    OrderPersistenceException,
    PriceMismatchException,
    ValidationException,
)
from truthhair.core.sentry_integration import capture_exception
from truthhair.domain.checkout import CheckoutResponse
from truthhair.integrations.redis_cart import CartStoreFactory
from truthhair.services.checkout_service import CheckoutService

from .common import get_cart_factory, get_checkout_service, get_user_id, logger

router = APIRouter()


@router.post("/checkout", response_model=CheckoutResponse)
@limiter.limit(CHECKOUT_RATE_LIMIT)
async def create_checkout(
    request: Request,
    payload: Any = Body(None),
    service: CheckoutService = Depends(get_checkout_service),
    cart_factory: CartStoreFactory = Depends(get_cart_factory),
    user_id: str | None = Depends(get_user_id),
    x_cart_session: str | None = Header(None, alias="X-Cart-Session"),
):
    """Turn a cart snapshot and customer details into a pending order.

    When the request names a cart session, that cart is cleared once the
    order is stored.
    """
    try:
        result = await AsyncDBProxy(service).checkout(payload, user_id=user_id)
    except PriceMismatchException as e:
        logger.warning("Checkout rejected: %s", e.message)
        raise HTTPException(status_code=409, detail=e.message) from e
    except ValidationException as e:
        logger.warning("Checkout rejected: %s", e.message)
        raise HTTPException(status_code=400, detail=e.message) from e
    except OrderPersistenceException as e:
        logger.exception("Checkout persistence failed for %s: %s", e.order_number, e.cause)
        capture_exception(e, order_number=e.order_number)
        raise HTTPException(status_code=500, detail="Failed to process checkout") from e
    except Exception as e:
        logger.exception("Checkout failed: %s", e)
        capture_exception(e)
        raise HTTPException(status_code=500, detail="Failed to process checkout") from e

    session_id = (x_cart_session or "").strip()
    if session_id:
        try:
            store = await AsyncDBProxy(cart_factory).open(session_id)
            await AsyncDBProxy(store).clear_cart()
        except CartStorageException as e:
            logger.warning(
                "Order %s placed but cart %s was not cleared: %s",
                result.order_number,
                session_id,
                e.reason,
            )

    return result
