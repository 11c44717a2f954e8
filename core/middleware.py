"""Middleware enforcing login and attaching the merchant's shop domain."""
from django.conf import settings
from django.contrib.auth.views import redirect_to_login
from django.http import JsonResponse

from importers.shopify_client import normalize_store_domain

SESSION_SHOP_KEY = "shopify_domain"


class ShopSessionMiddleware:
    """Require an authenticated user and expose ``request.shop_domain``.

    Anonymous requests are redirected to ``LOGIN_URL``; anonymous API requests
    get a 401 JSON body instead so fetch() callers can react to it.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.exempt_paths = {
            self._normalize(value)
            for value in getattr(settings, "LOGIN_EXEMPT_PATHS", [])
        }
        self.exempt_prefixes = tuple(
            self._normalize(prefix)
            for prefix in getattr(settings, "LOGIN_EXEMPT_PREFIXES", ())
            if prefix
        )
        self.api_prefix = self._normalize(getattr(settings, "API_PATH_PREFIX", "/api/"))

    def __call__(self, request):
        request.shop_domain = ""
        if self._should_skip(request):
            return self.get_response(request)

        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            if request.path.startswith(self.api_prefix):
                return JsonResponse({"error": "Authentication required"}, status=401)
            return redirect_to_login(request.get_full_path(), settings.LOGIN_URL)

        request.shop_domain = self._resolve_shop_domain(request)
        return self.get_response(request)

    def _resolve_shop_domain(self, request) -> str:
        session_domain = request.session.get(SESSION_SHOP_KEY) if hasattr(request, "session") else None
        return normalize_store_domain(
            session_domain or getattr(settings, "SHOPIFY_STORE_DOMAIN", "")
        )

    def _should_skip(self, request) -> bool:
        path = self._normalize(request.path)
        if path in self.exempt_paths:
            return True
        for prefix in self.exempt_prefixes:
            if path.startswith(prefix):
                return True
        return False

    @staticmethod
    def _normalize(value: str) -> str:
        if not value:
            return ""
        return value if value.startswith("/") else f"/{value}"
