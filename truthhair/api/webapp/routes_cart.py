from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from truthhair.integrations.redis_cart import RedisCartStore, VariantDescriptor

from .common import (
    AddCartItemRequest,
    CartResponse,
    UpdateQuantityRequest,
    build_cart_response,
    get_cart_store,
    logger,
)

router = APIRouter()


@router.get("/cart", response_model=CartResponse)
def get_cart(store: RedisCartStore = Depends(get_cart_store)):
    """Current cart contents with derived totals."""
    return build_cart_response(store)


@router.post("/cart/items", response_model=CartResponse)
def add_cart_item(body: AddCartItemRequest, store: RedisCartStore = Depends(get_cart_store)):
    """Add one unit of a product variant; repeated adds merge into one line."""
    variant = VariantDescriptor(**body.variant.model_dump()) if body.variant else None
    try:
        store.add_item(
            product_id=body.product_id,
            name=body.name,
            unit_price=body.price,
            image=body.image,
            variant_id=body.variant_id,
            variant=variant,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return build_cart_response(store)


@router.patch("/cart/items/{item_id}", response_model=CartResponse)
def update_cart_item(
    item_id: str,
    body: UpdateQuantityRequest,
    store: RedisCartStore = Depends(get_cart_store),
):
    # quantity <= 0 removes the line; an unknown id is a no-op
    if not store.update_quantity(item_id, body.quantity):
        logger.debug("Cart %s: no line %s to update", store.session_id, item_id)
    return build_cart_response(store)


@router.delete("/cart/items/{item_id}", response_model=CartResponse)
def remove_cart_item(item_id: str, store: RedisCartStore = Depends(get_cart_store)):
    store.remove_item(item_id)
    return build_cart_response(store)


@router.delete("/cart", response_model=CartResponse)
def clear_cart(store: RedisCartStore = Depends(get_cart_store)):
    store.clear_cart()
    return build_cart_response(store)


@router.post("/cart/open", response_model=CartResponse)
def open_cart(store: RedisCartStore = Depends(get_cart_store)):
    store.open_cart()
    return build_cart_response(store)


@router.post("/cart/close", response_model=CartResponse)
def close_cart(store: RedisCartStore = Depends(get_cart_store)):
    store.close_cart()
    return build_cart_response(store)


@router.post("/cart/toggle", response_model=CartResponse)
def toggle_cart(store: RedisCartStore = Depends(get_cart_store)):
    store.toggle_cart()
    return build_cart_response(store)
