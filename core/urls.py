"""
URL configuration for core project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/4.2/topics/http/urls/
"""
from django.conf import settings
from django.contrib import admin
from django.urls import include, path
from django.views.generic import RedirectView

from fiscalExports.views.dashboard import dashboard_view
from fiscalExports.views.reports import report_file_view, reports_list_view
from fiscalExports.views.settings import company_fiscal_regime_view


urlpatterns = [
    path('admin/', admin.site.urls),
    path("accounts/", include("django.contrib.auth.urls")),
    path("", RedirectView.as_view(pattern_name="dashboard", permanent=False)),

    # main dashboard
    path("app/", dashboard_view, name="dashboard"),

    # settings
    path(
        "settings/company-fiscal-regime/",
        company_fiscal_regime_view,
        name="company_fiscal_regime",
    ),

    # reports
    path("reports/", reports_list_view, name="reports_list"),
    path("api/reports/<str:report_id>/", report_file_view, name="report_file"),
]

if settings.DEBUG:
    urlpatterns.append(path("__reload__/", include("django_browser_reload.urls")))
