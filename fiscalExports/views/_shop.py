from django.conf import settings
from django.core.exceptions import PermissionDenied

from fiscalExports.models import Shop, get_or_create_shop


def get_current_shop(request) -> Shop:
    """Return the shop attached to the request session, creating it on first visit."""
    domain = getattr(request, "shop_domain", "")
    if not domain:
        raise PermissionDenied("No Shopify store is associated with this session.")
    return get_or_create_shop(domain, getattr(settings, "SHOPIFY_ACCESS_TOKEN", ""))
