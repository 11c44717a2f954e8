"""Importer package housing the Shopify Admin API integration."""

from .shopify_client import ShopifyAdminClient, ShopifyAPIError
from .shopify_refunds import ShopifyRefundService

__all__ = ["ShopifyAdminClient", "ShopifyAPIError", "ShopifyRefundService"]
