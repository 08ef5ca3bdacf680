"""Storefront client: API access, persisted cart and the ordering flow."""

from luna_dine.storefront.api_client import StorefrontApiClient, StorefrontApiError
from luna_dine.storefront.cart import Cart, CartLine
from luna_dine.storefront.controller import Step, StorefrontController
from luna_dine.storefront.storage import ClientStorage

__all__ = [
    "Cart",
    "CartLine",
    "ClientStorage",
    "Step",
    "StorefrontApiClient",
    "StorefrontApiError",
    "StorefrontController",
]
