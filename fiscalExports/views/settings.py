"""Company and fiscal regime settings screen."""

import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.shortcuts import redirect, render
from django.utils.translation import gettext as _
from django.views.decorators.http import require_http_methods

from fiscalExports.forms import CompanySettingsForm, FiscalRegimeForm
from fiscalExports.models import FiscalConfiguration
from fiscalExports.utils.regimes import DEFAULT_REGIME_CODE, get_regime, load_currencies, load_regimes
from fiscalExports.utils.reports import get_fiscal_config

from ._shop import get_current_shop

logger = logging.getLogger(__name__)


def _render_settings(request, shop, config, *, company_form=None, fiscal_form=None, errors=None, status=200):
    selected_code = config.code if config and config.code else DEFAULT_REGIME_CODE
    if company_form is None:
        company_form = CompanySettingsForm(
            initial=CompanySettingsForm.initial_from_config(config, DEFAULT_REGIME_CODE),
            existing_config=config,
        )
    if fiscal_form is None:
        fiscal_form = FiscalRegimeForm(initial={"fiscalRegime": selected_code})

    context = {
        "shop": shop,
        "config": config,
        "company_form": company_form,
        "fiscal_form": fiscal_form,
        "regimes": load_regimes(),
        "currencies": load_currencies(),
        "selected_regime": get_regime(selected_code),
        "errors": errors or [],
    }
    return render(request, "settings/company_fiscal_regime.html", context, status=status)


def _save_company_settings(shop, config, cleaned) -> FiscalConfiguration:
    if config is None:
        config = FiscalConfiguration(shop=shop)

    config.company_name = cleaned.get("companyName") or ""
    config.country = cleaned.get("country") or ""
    config.currency = cleaned.get("currency") or "EUR"
    config.vat_rate = cleaned.get("vatRate")
    config.default_format = cleaned.get("defaultExportFormat") or config.default_format
    config.sales_account = cleaned.get("salesAccount") or "701"

    regime = cleaned.get("regime")
    if regime is not None:
        config.apply_regime(regime)
    config.save()
    return config


def _save_fiscal_regime(shop, config, cleaned) -> FiscalConfiguration:
    if config is None:
        config = FiscalConfiguration(shop=shop)

    config.apply_regime(get_regime(cleaned["fiscalRegime"]))
    if cleaned.get("currency"):
        config.currency = cleaned["currency"]
    config.save()
    return config


@login_required
@require_http_methods(["GET", "POST"])
def company_fiscal_regime_view(request):
    """Show the settings form (GET) or apply a ``company``/``fiscal`` action (POST)."""
    shop = get_current_shop(request)
    config = get_fiscal_config(shop)

    if request.method == "GET":
        return _render_settings(request, shop, config)

    action_type = request.POST.get("actionType")

    if action_type == "company":
        form = CompanySettingsForm(request.POST, existing_config=config)
        if not form.is_valid():
            return _render_settings(
                request, shop, config,
                company_form=form,
                errors=form.non_field_errors(),
                status=400,
            )
        config = _save_company_settings(shop, config, form.cleaned_data)
        logger.info("Saved company settings for %s (regime %s)", shop.shopify_domain, config.code)
        messages.success(request, _("Company settings saved."))
        return redirect("dashboard")

    if action_type == "fiscal":
        form = FiscalRegimeForm(request.POST)
        if not form.is_valid():
            return _render_settings(
                request, shop, config,
                fiscal_form=form,
                errors=[error for errors in form.errors.values() for error in errors],
                status=400,
            )
        config = _save_fiscal_regime(shop, config, form.cleaned_data)
        logger.info("Switched %s to fiscal regime %s", shop.shopify_domain, config.code)
        messages.success(request, _("Fiscal regime updated to %(name)s.") % {"name": config.name})
        return redirect("dashboard")

    return _render_settings(request, shop, config, errors=[_("Unknown action.")], status=400)
