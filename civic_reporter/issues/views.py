import logging
from dataclasses import asdict

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin, UserPassesTestMixin
from django.core.exceptions import PermissionDenied
from django.db.models import Q
from django.http import HttpResponse, JsonResponse, StreamingHttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse_lazy
from django.views import View
from django.views.generic import CreateView, ListView, TemplateView

from .analytics import DEFAULT_PERIOD, PERIODS, build_analytics
from .emails import send_submission_email
from .exceptions import IssueUpdateFailed
from .forms import IssueReportForm, SignUpForm, StaffIssueUpdateForm, staff_users
from .lifecycle import apply_staff_update
from .models import Issue, Notification, is_staff_member
from .realtime.consumer import NotificationConsumer
from .realtime.screens import IssueThreadScreen, StatusCountsScreen, count_statuses, thread_entry
from .realtime.stream import stream_screen
from .reports import REPORT_FORMATS, REPORT_TYPES, InvalidReportType, build_report, issues_to_csv

logger = logging.getLogger(__name__)

FILTER_PARAMS = ("search", "category", "status", "priority")


def apply_issue_filters(queryset, params):
    search = params.get("search", "").strip()
    category = params.get("category", "").strip()
    status = params.get("status", "").strip()
    priority = params.get("priority", "").strip()

    if search:
        queryset = queryset.filter(
            Q(title__icontains=search)
            | Q(description__icontains=search)
            | Q(address__icontains=search)
        )
    if category:
        queryset = queryset.filter(category=category)
    if status:
        queryset = queryset.filter(status=status)
    if priority:
        queryset = queryset.filter(priority=priority)
    return queryset


def apply_assignment_filter(queryset, assigned):
    assigned = (assigned or "").strip()
    if not assigned:
        return queryset
    if assigned == "unassigned":
        return queryset.filter(assigned_to__isnull=True)
    if assigned.isdigit():
        return queryset.filter(assigned_to_id=int(assigned))
    return queryset.none()


def filter_context(params, names=FILTER_PARAMS):
    return {
        "categories": Issue.Category.choices,
        "statuses": Issue.Status.choices,
        "priorities": Issue.Priority.choices,
        "filters": {name: params.get(name, "") for name in names},
    }


class StaffRequiredMixin(LoginRequiredMixin, UserPassesTestMixin):
    def test_func(self):
        return is_staff_member(self.request.user)

    def handle_no_permission(self):
        if self.request.user.is_authenticated:
            raise PermissionDenied("Staff access required.")
        return super().handle_no_permission()


def event_stream_response(generator):
    response = StreamingHttpResponse(generator, content_type="text/event-stream")
    response["Cache-Control"] = "no-cache"
    response["X-Accel-Buffering"] = "no"
    return response


class HomeView(TemplateView):
    template_name = "home.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["stats"] = count_statuses(Issue.objects.all())
        context["recent_issues"] = Issue.objects.select_related("reporter")[:5]
        return context


class SignUpView(CreateView):
    form_class = SignUpForm
    template_name = "registration/signup.html"
    success_url = reverse_lazy("login")

    def form_valid(self, form):
        messages.success(self.request, "Account created successfully. Please log in.")
        return super().form_valid(form)


class DashboardView(LoginRequiredMixin, TemplateView):
    template_name = "issues/dashboard.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        issues = Issue.objects.filter(reporter=self.request.user).select_related("assigned_to__profile")
        context["issues"] = issues
        context["stats"] = count_statuses(issues)
        context["notifications"] = Notification.objects.filter(user=self.request.user)[:10]
        return context


class IssueListView(ListView):
    model = Issue
    template_name = "issues/issue_list.html"
    context_object_name = "issues"
    paginate_by = 10

    def get_queryset(self):
        queryset = Issue.objects.select_related("reporter__profile", "assigned_to__profile")
        queryset = apply_issue_filters(queryset, self.request.GET)
        return queryset.order_by("-created_at")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.update(filter_context(self.request.GET))
        return context


class IssueCreateView(LoginRequiredMixin, View):
    template_name = "issues/issue_report.html"

    def get(self, request):
        return render(request, self.template_name, {"form": IssueReportForm()})

    def post(self, request):
        form = IssueReportForm(request.POST)
        if form.is_valid():
            issue = form.save(commit=False)
            issue.reporter = request.user
            issue.save()
            send_submission_email(issue)
            logger.info("Issue %s reported by user %s", issue.pk, request.user.pk)
            messages.success(
                request,
                "Issue reported successfully. Your report will be reviewed by local authorities.",
            )
            return redirect("issues:dashboard")
        return render(request, self.template_name, {"form": form})


class IssueDetailView(TemplateView):
    template_name = "issues/issue_detail.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        issue = get_object_or_404(
            Issue.objects.select_related("reporter__profile", "assigned_to__profile"),
            pk=self.kwargs["pk"],
        )
        context["issue"] = issue
        context["updates"] = [
            thread_entry(update) for update in issue.updates.select_related("user__profile")
        ]
        return context


class IssueMapView(TemplateView):
    template_name = "issues/issue_map.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        issues = apply_issue_filters(
            Issue.objects.filter(location_lat__isnull=False, location_lng__isnull=False),
            self.request.GET,
        )
        context["markers"] = [
            {
                "id": issue.pk,
                "title": issue.title,
                "category": issue.category,
                "status": issue.status,
                "priority": issue.priority,
                "lat": issue.location_lat,
                "lng": issue.location_lng,
                "address": issue.address,
            }
            for issue in issues
        ]
        context.update(filter_context(self.request.GET))
        return context


class StaffDashboardView(StaffRequiredMixin, TemplateView):
    template_name = "staff/dashboard.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["stats"] = count_statuses(Issue.objects.all())
        context["recent_issues"] = Issue.objects.select_related(
            "reporter__profile", "assigned_to__profile"
        )[:10]
        context["staff_count"] = staff_users().count()
        context["notifications"] = Notification.objects.filter(user=self.request.user)[:10]
        return context


class StaffIssueListView(StaffRequiredMixin, ListView):
    model = Issue
    template_name = "staff/issue_list.html"
    context_object_name = "issues"
    paginate_by = 10

    def get_queryset(self):
        queryset = Issue.objects.select_related("reporter__profile", "assigned_to__profile")
        queryset = apply_issue_filters(queryset, self.request.GET)
        queryset = apply_assignment_filter(queryset, self.request.GET.get("assigned"))
        return queryset.order_by("-created_at")

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.update(filter_context(self.request.GET, FILTER_PARAMS + ("assigned",)))
        context["staff_members"] = staff_users().select_related("profile")
        return context


class StaffIssueDetailView(StaffRequiredMixin, TemplateView):
    template_name = "staff/issue_detail.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        issue = get_object_or_404(
            Issue.objects.select_related("reporter__profile", "assigned_to__profile"),
            pk=self.kwargs["pk"],
        )
        context["issue"] = issue
        context["form"] = StaffIssueUpdateForm(issue=issue)
        context["updates"] = [
            thread_entry(update) for update in issue.updates.select_related("user__profile")
        ]
        return context


class StaffIssueUpdateView(StaffRequiredMixin, View):
    def post(self, request, pk):
        issue = get_object_or_404(Issue, pk=pk)
        form = StaffIssueUpdateForm(request.POST, issue=issue)

        if form.is_valid():
            try:
                apply_staff_update(
                    issue,
                    author=request.user,
                    status=form.cleaned_data["status"],
                    assigned_to=form.cleaned_data["assigned_to"],
                    message=form.cleaned_data["message"],
                )
            except IssueUpdateFailed as error:
                messages.error(request, f"Failed to update issue: {error.reason}")
            else:
                messages.success(request, "Issue updated successfully.")
        else:
            for field, field_errors in form.errors.items():
                for error in field_errors:
                    messages.error(request, error if field == "__all__" else f"{field}: {error}")

        return redirect("issues:staff_issue_detail", pk=pk)

    def get(self, request, pk):
        return redirect("issues:staff_issue_detail", pk=pk)


class AnalyticsView(StaffRequiredMixin, TemplateView):
    template_name = "staff/analytics.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        period = self.request.GET.get("period", DEFAULT_PERIOD)
        context["analytics"] = build_analytics(period)
        context["periods"] = [(value, label) for value, (label, _days) in PERIODS.items()]
        return context


class ReportsView(StaffRequiredMixin, TemplateView):
    template_name = "staff/reports.html"

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context["report_types"] = [(value, title) for value, (title, _days) in REPORT_TYPES.items()]
        return context


class ReportExportView(View):
    """Report download for staff; errors are returned as JSON bodies."""

    def get(self, request):
        report_type = request.GET.get("type")
        export_format = request.GET.get("format", "").lower()
        if export_format not in REPORT_FORMATS:
            export_format = "json"

        if not request.user.is_authenticated:
            return JsonResponse({"error": "Unauthorized"}, status=401)
        if not is_staff_member(request.user):
            return JsonResponse({"error": "Insufficient permissions"}, status=403)

        try:
            report = build_report(report_type)
            if export_format == "csv":
                response = HttpResponse(issues_to_csv(report["issues"]), content_type="text/csv")
                response["Content-Disposition"] = f'attachment; filename="{report_type}-report.csv"'
                return response
            return JsonResponse(report)
        except InvalidReportType:
            return JsonResponse({"error": "Invalid report type"}, status=400)
        except Exception:
            logger.exception("Error generating %s report", report_type)
            return JsonResponse({"error": "Failed to generate report"}, status=500)


class NotificationListView(LoginRequiredMixin, ListView):
    model = Notification
    template_name = "notifications/notification_list.html"
    context_object_name = "notifications"
    paginate_by = 20

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user).select_related("issue")


class NotificationMarkReadView(LoginRequiredMixin, View):
    def post(self, request, pk):
        notification = get_object_or_404(Notification, pk=pk, user=request.user)
        if not notification.read:
            notification.read = True
            notification.save(update_fields=["read"])
        return redirect("issues:notification_list")


class NotificationMarkAllReadView(LoginRequiredMixin, View):
    def post(self, request):
        # Saved one by one so each row reaches the change feed.
        for notification in Notification.objects.filter(user=request.user, read=False):
            notification.read = True
            notification.save(update_fields=["read"])
        messages.success(request, "All notifications marked as read.")
        return redirect("issues:notification_list")


class NotificationDeleteView(LoginRequiredMixin, View):
    def post(self, request, pk):
        notification = get_object_or_404(Notification, pk=pk, user=request.user)
        notification.delete()
        return redirect("issues:notification_list")


class NotificationStreamView(LoginRequiredMixin, View):
    def get(self, request):
        consumer = NotificationConsumer(request.user.pk)

        def serialize(state, event):
            alert = consumer.last_alert if event is not None else None
            return {
                "unread_count": state.unread_count,
                "notifications": list(state.notifications),
                "alert": asdict(alert) if alert else None,
            }

        return event_stream_response(
            stream_screen(consumer, serialize, keepalive=settings.REALTIME_KEEPALIVE_SECONDS)
        )


class StatusStreamView(StaffRequiredMixin, View):
    def get(self, request):
        def serialize(state, event):
            return dict(state.as_dict(), resolution_rate=state.resolution_rate)

        return event_stream_response(
            stream_screen(StatusCountsScreen(), serialize, keepalive=settings.REALTIME_KEEPALIVE_SECONDS)
        )


class IssueThreadStreamView(View):
    def get(self, request, pk):
        issue = get_object_or_404(Issue, pk=pk)

        def serialize(state, event):
            return {"updates": list(state.updates)}

        return event_stream_response(
            stream_screen(IssueThreadScreen(issue.pk), serialize, keepalive=settings.REALTIME_KEEPALIVE_SECONDS)
        )
