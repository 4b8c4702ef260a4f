import csv
import io
from datetime import timedelta

from django.utils import timezone

from .models import Issue
from .realtime.rows import row_image

# report type -> (title, days covered; None means all time)
REPORT_TYPES = {
    "weekly": ("Weekly Summary Report", 7),
    "monthly": ("Monthly Performance Report", 30),
    "comprehensive": ("Comprehensive Audit Report", None),
}
REPORT_FORMATS = ("json", "csv")

CSV_HEADERS = [
    "ID",
    "Title",
    "Description",
    "Category",
    "Priority",
    "Status",
    "Reporter",
    "Assigned Staff",
    "Address",
    "Created At",
    "Resolved At",
]


class InvalidReportType(ValueError):
    pass


def _format_day(value) -> str:
    return f"{value.month}/{value.day}/{value.year}"


def _person(user):
    if user is None:
        return None
    profile = getattr(user, "profile", None)
    return {
        "full_name": profile.full_name if profile else "",
        "email": user.email,
    }


def serialize_issue(issue) -> dict:
    data = row_image(issue)
    data["reporter"] = _person(issue.reporter)
    data["assigned_staff"] = _person(issue.assigned_to)
    return data


def summarize(issues) -> dict:
    statuses = [issue["status"] for issue in issues]
    return {
        "total": len(statuses),
        "resolved": statuses.count(Issue.Status.RESOLVED),
        "pending": statuses.count(Issue.Status.PENDING),
        "inProgress": statuses.count(Issue.Status.IN_PROGRESS),
    }


def build_report(report_type, now=None) -> dict:
    if report_type not in REPORT_TYPES:
        raise InvalidReportType(report_type)
    title, days = REPORT_TYPES[report_type]
    now = now or timezone.now()

    queryset = Issue.objects.select_related("reporter__profile", "assigned_to__profile")
    if days is None:
        period = "All Time"
    else:
        start = now - timedelta(days=days)
        queryset = queryset.filter(created_at__gte=start)
        period = f"{_format_day(start)} - {_format_day(now)}"

    issues = [serialize_issue(issue) for issue in queryset]
    return {
        "title": title,
        "period": period,
        "issues": issues,
        "summary": summarize(issues),
    }


def issues_to_csv(issues) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(CSV_HEADERS)
    # Non-numeric values are quoted so free text may contain commas and quotes.
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    for issue in issues:
        reporter = issue.get("reporter") or {}
        assigned = issue.get("assigned_staff") or {}
        writer.writerow(
            [
                issue["id"],
                issue["title"],
                issue["description"],
                issue["category"],
                issue["priority"],
                issue["status"],
                reporter.get("full_name") or "Anonymous",
                assigned.get("full_name") or "Unassigned",
                issue.get("address") or "",
                issue["created_at"],
                issue.get("resolved_at") or "",
            ]
        )
    return buffer.getvalue()
