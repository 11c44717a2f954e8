"""Thin Shopify Admin GraphQL client built on ``requests``."""

from __future__ import annotations

import logging
from typing import Any

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class ShopifyAPIError(Exception):
    """Raised when the Shopify Admin API cannot be reached or answers with an error status."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def normalize_store_domain(value: str | None) -> str:
    """Strip scheme and trailing slashes from a myshopify domain."""

    domain = (value or "").strip()
    if domain.startswith("https://"):
        domain = domain[len("https://") :]
    if domain.startswith("http://"):
        domain = domain[len("http://") :]
    return domain.rstrip("/")


class ShopifyAdminClient:
    """POST GraphQL documents to a store's Admin API."""

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        *,
        api_version: str | None = None,
        timeout: int | None = None,
        session: requests.Session | None = None,
    ):
        self.store_domain = normalize_store_domain(store_domain)
        self.access_token = access_token or ""
        self.api_version = api_version or getattr(settings, "SHOPIFY_API_VERSION", "2024-10")
        self.timeout = timeout or getattr(settings, "SHOPIFY_REQUEST_TIMEOUT", 30)
        self.session = session or requests.Session()

    @classmethod
    def for_shop(cls, shop, **kwargs) -> "ShopifyAdminClient":
        """Build a client for a persisted shop, falling back to the configured token."""
        token = shop.access_token or getattr(settings, "SHOPIFY_ACCESS_TOKEN", "")
        return cls(shop.shopify_domain, token, **kwargs)

    @classmethod
    def from_settings(cls, **kwargs) -> "ShopifyAdminClient":
        return cls(
            getattr(settings, "SHOPIFY_STORE_DOMAIN", ""),
            getattr(settings, "SHOPIFY_ACCESS_TOKEN", ""),
            **kwargs,
        )

    @property
    def endpoint(self) -> str:
        return f"https://{self.store_domain}/admin/api/{self.api_version}/graphql.json"

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a GraphQL document and return the decoded JSON payload.

        GraphQL-level ``errors`` are left in the payload for the caller to
        inspect; only transport and HTTP failures raise.
        """
        if not self.store_domain:
            raise ShopifyAPIError("SHOPIFY_STORE_DOMAIN is not configured")
        if not self.access_token:
            raise ShopifyAPIError(f"No access token configured for {self.store_domain}")

        headers = {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        body = {"query": query, "variables": variables or {}}

        try:
            response = self.session.post(self.endpoint, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Shopify request to %s failed: %s", self.store_domain, exc)
            raise ShopifyAPIError(f"Network error talking to Shopify: {exc}") from exc

        if response.status_code == 401:
            raise ShopifyAPIError("Unauthorized. Check the access token and app scopes.", status_code=401)
        if response.status_code == 403:
            raise ShopifyAPIError("Forbidden. The token lacks the required access scopes.", status_code=403)
        if response.status_code >= 400:
            raise ShopifyAPIError(
                f"Shopify returned {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ShopifyAPIError("Could not parse JSON response from Shopify.") from exc
