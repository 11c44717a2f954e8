# core/context_processors.py
from django.urls import reverse, NoReverseMatch
from django.utils.translation import gettext as _


def navigation_links(request):
    """
    Returns the navigation items for authenticated merchants.
    Skips any that can't be reversed, so missing routes don't break templates.
    """
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return {"nav_links": [], "nav_links_admin": [], "shop_domain": ""}

    nav_items = [
        {"name": _("Dashboard"), "url_name": "dashboard"},
        {"name": _("Reports"), "url_name": "reports_list"},
        {"name": _("Settings"), "url_name": "company_fiscal_regime"},
    ]

    admin_items = []
    if user.is_staff:
        admin_items.append({"name": _("Admin"), "url_name": "admin:index"})

    def build_links(items):
        links = []
        for item in items:
            try:
                links.append({
                    "name": item["name"],
                    "url": reverse(item["url_name"]),
                })
            except NoReverseMatch:
                continue
        return links

    return {
        "nav_links": build_links(nav_items),
        "nav_links_admin": build_links(admin_items),
        "shop_domain": getattr(request, "shop_domain", ""),
    }
