import os
import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core.settings")

# Only initialize once
if not django.apps.apps.ready:
    django.setup()

import pytest
from django.contrib.auth import get_user_model

from core.middleware import SESSION_SHOP_KEY
from tests.factories import ShopFactory
from tests.payloads import make_orders_payload, make_refund_node


@pytest.fixture(autouse=True)
def reports_dir(settings, tmp_path):
    settings.REPORTS_DIR = tmp_path / "reports"
    settings.SHOPIFY_STORE_DOMAIN = ""
    settings.SHOPIFY_ACCESS_TOKEN = "shpat_settings_token"
    settings.REPORT_TIMEZONE = "UTC"
    return settings.REPORTS_DIR


@pytest.fixture
def shop(db):
    return ShopFactory(shopify_domain="demo-store.myshopify.com")


@pytest.fixture
def merchant_client(client, shop):
    """Logged-in test client whose session points at ``shop``."""
    user = get_user_model().objects.create_user("merchant", password="pw")
    client.force_login(user)
    session = client.session
    session[SESSION_SHOP_KEY] = shop.shopify_domain
    session.save()
    return client


@pytest.fixture
def refund_payload():
    return make_orders_payload([
        ("gid://shopify/Order/1001", "#1001", [make_refund_node()]),
    ])
