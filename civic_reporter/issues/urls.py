from django.urls import path

from .views import (
    AnalyticsView,
    DashboardView,
    IssueCreateView,
    IssueDetailView,
    IssueListView,
    IssueMapView,
    IssueThreadStreamView,
    NotificationDeleteView,
    NotificationListView,
    NotificationMarkAllReadView,
    NotificationMarkReadView,
    NotificationStreamView,
    ReportsView,
    StaffDashboardView,
    StaffIssueDetailView,
    StaffIssueListView,
    StaffIssueUpdateView,
    StatusStreamView,
)

app_name = "issues"

urlpatterns = [
    path("dashboard/", DashboardView.as_view(), name="dashboard"),
    path("report/", IssueCreateView.as_view(), name="issue_report"),
    path("issues/", IssueListView.as_view(), name="issue_list"),
    path("issues/<int:pk>/", IssueDetailView.as_view(), name="issue_detail"),
    path("issues/<int:pk>/stream/", IssueThreadStreamView.as_view(), name="issue_thread_stream"),
    path("map/", IssueMapView.as_view(), name="issue_map"),
    path("staff/", StaffDashboardView.as_view(), name="staff_dashboard"),
    path("staff/issues/", StaffIssueListView.as_view(), name="staff_issue_list"),
    path("staff/issues/<int:pk>/", StaffIssueDetailView.as_view(), name="staff_issue_detail"),
    path("staff/issues/<int:pk>/update/", StaffIssueUpdateView.as_view(), name="staff_issue_update"),
    path("staff/analytics/", AnalyticsView.as_view(), name="analytics"),
    path("staff/reports/", ReportsView.as_view(), name="reports"),
    path("staff/stream/stats/", StatusStreamView.as_view(), name="status_stream"),
    path("notifications/", NotificationListView.as_view(), name="notification_list"),
    path("notifications/read-all/", NotificationMarkAllReadView.as_view(), name="notification_read_all"),
    path("notifications/stream/", NotificationStreamView.as_view(), name="notification_stream"),
    path("notifications/<int:pk>/read/", NotificationMarkReadView.as_view(), name="notification_read"),
    path("notifications/<int:pk>/delete/", NotificationDeleteView.as_view(), name="notification_delete"),
]
