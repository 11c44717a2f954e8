from __future__ import annotations

from django import forms
from django.utils.translation import gettext_lazy as _

from fiscalExports.models import ExportFormat, FiscalConfiguration, Report, ReportFormat
from fiscalExports.utils.regimes import currency_choices, get_regime, regime_choices


class _StyledFormMixin:
    """Apply the Bootstrap classes used across the admin screens."""

    def _style_fields(self):
        for field_name, field in self.fields.items():
            css = "form-select" if isinstance(field.widget, forms.Select) else "form-control"
            existing = field.widget.attrs.get("class", "")
            field.widget.attrs["class"] = (existing + f" {css}").strip()
            field.widget.attrs.setdefault("autocomplete", "off")

            if self.is_bound and field_name in self.errors:
                field.widget.attrs["class"] = f"{field.widget.attrs['class']} is-invalid"


class CompanySettingsForm(_StyledFormMixin, forms.Form):
    """Company details plus an optional regime switch (``actionType=company``)."""

    # Free text: codes no longer in the presets fall back to the stored regime.
    fiscalRegime = forms.CharField(required=False, widget=forms.Select, label=_("Fiscal regime"))
    companyName = forms.CharField(max_length=255, required=False, label=_("Company name"))
    country = forms.CharField(max_length=100, required=False, label=_("Country"))
    currency = forms.ChoiceField(required=False, label=_("Currency"))
    vatRate = forms.DecimalField(
        required=False,
        min_value=0,
        max_value=100,
        max_digits=5,
        decimal_places=2,
        label=_("VAT rate (%)"),
    )
    defaultExportFormat = forms.ChoiceField(
        choices=ExportFormat.choices,
        initial=ExportFormat.CSV,
        label=_("Default export format"),
    )
    salesAccount = forms.CharField(
        max_length=32,
        required=False,
        initial="701",
        label=_("Sales account"),
        help_text=_("Sales account code in your chart of accounts (e.g. 701)"),
    )

    def __init__(self, *args, existing_config: FiscalConfiguration | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.existing_config = existing_config
        self.fields["fiscalRegime"].widget.choices = [("", "---------")] + list(regime_choices())
        self.fields["currency"].choices = list(currency_choices())
        self._style_fields()

    @classmethod
    def initial_from_config(cls, config: FiscalConfiguration | None, default_regime: str) -> dict:
        if config is None:
            return {
                "fiscalRegime": default_regime,
                "currency": "EUR",
                "defaultExportFormat": ExportFormat.CSV,
                "salesAccount": "701",
            }
        return {
            "fiscalRegime": config.code or default_regime,
            "companyName": config.company_name,
            "country": config.country,
            "currency": config.currency or "EUR",
            "vatRate": config.vat_rate,
            "defaultExportFormat": config.default_format or ExportFormat.CSV,
            "salesAccount": config.sales_account or "701",
        }

    def clean(self):
        cleaned = super().clean()
        code = cleaned.get("fiscalRegime")
        regime = get_regime(code) if code else None
        if regime is None and self.existing_config is None:
            raise forms.ValidationError(_("A regime must be selected at least once."))
        cleaned["regime"] = regime
        return cleaned


class FiscalRegimeForm(_StyledFormMixin, forms.Form):
    """Regime-only switch (``actionType=fiscal``)."""

    fiscalRegime = forms.ChoiceField(
        label=_("Fiscal regime"),
        error_messages={
            "required": _("Invalid fiscal regime selected"),
            "invalid_choice": _("Invalid fiscal regime selected"),
        },
    )
    currency = forms.ChoiceField(required=False, label=_("Currency"))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["fiscalRegime"].choices = list(regime_choices())
        self.fields["currency"].choices = [("", "---------")] + list(currency_choices())
        self._style_fields()

    def clean_fiscalRegime(self):
        code = self.cleaned_data["fiscalRegime"]
        if get_regime(code) is None:
            raise forms.ValidationError(_("Invalid fiscal regime selected"))
        return code


class ReportRequestForm(_StyledFormMixin, forms.Form):
    data_type = forms.ChoiceField(choices=Report.DATA_TYPE_CHOICES, label=_("Data"))
    format = forms.ChoiceField(choices=ReportFormat.choices, label=_("Format"))
    start_date = forms.DateField(label=_("Start date"), widget=forms.DateInput(attrs={"type": "date"}))
    end_date = forms.DateField(label=_("End date"), widget=forms.DateInput(attrs={"type": "date"}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._style_fields()

    def clean(self):
        cleaned = super().clean()
        start = cleaned.get("start_date")
        end = cleaned.get("end_date")
        if start and end and end < start:
            self.add_error("end_date", _("End date must be on or after the start date."))
        return cleaned
