from django.contrib import admin
from django.urls import include, path

from issues.views import HomeView, ReportExportView, SignUpView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", HomeView.as_view(), name="home"),
    path("accounts/signup/", SignUpView.as_view(), name="signup"),
    path("accounts/", include("django.contrib.auth.urls")),
    path("api/reports/export", ReportExportView.as_view(), name="report_export"),
    path("", include("issues.urls")),
]
