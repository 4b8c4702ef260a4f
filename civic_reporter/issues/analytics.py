"""Aggregations behind the staff analytics page."""

from collections import Counter, OrderedDict
from datetime import timedelta

from django.utils import timezone

from .models import Issue

PERIODS = OrderedDict(
    [
        ("7d", ("Last 7 days", 7)),
        ("30d", ("Last 30 days", 30)),
        ("90d", ("Last 90 days", 90)),
        ("1y", ("Last year", 365)),
    ]
)
DEFAULT_PERIOD = "30d"


def period_start(period, now=None):
    if period not in PERIODS:
        period = DEFAULT_PERIOD
    now = now or timezone.now()
    return now - timedelta(days=PERIODS[period][1])


def average_resolution_days(issues) -> float:
    durations = [
        (issue.resolved_at - issue.created_at).total_seconds()
        for issue in issues
        if issue.resolved_at is not None
    ]
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations) / 86400, 1)


def category_breakdown(issues) -> dict:
    counts = Counter(issue.category for issue in issues)
    return {label: counts[value] for value, label in Issue.Category.choices if counts[value]}


def staff_performance(issues) -> list:
    stats = {}
    for issue in issues:
        if issue.assigned_to_id is None:
            continue
        profile = getattr(issue.assigned_to, "profile", None)
        name = (profile.full_name if profile else "") or issue.assigned_to.get_username()
        entry = stats.setdefault(name, {"name": name, "total": 0, "resolved": 0})
        entry["total"] += 1
        if issue.status == Issue.Status.RESOLVED:
            entry["resolved"] += 1
    for entry in stats.values():
        entry["rate"] = round(entry["resolved"] / entry["total"] * 100)
    return sorted(stats.values(), key=lambda entry: (-entry["total"], entry["name"]))


def time_series(issues) -> list:
    """Issues reported and resolved per day, oldest day first."""
    days = OrderedDict()
    for issue in sorted(issues, key=lambda issue: issue.created_at):
        day = timezone.localdate(issue.created_at)
        days.setdefault(day, {"date": day, "reported": 0, "resolved": 0})["reported"] += 1
    for issue in issues:
        if issue.status == Issue.Status.RESOLVED and issue.resolved_at is not None:
            day = timezone.localdate(issue.resolved_at)
            if day in days:
                days[day]["resolved"] += 1
    return list(days.values())


def build_analytics(period=DEFAULT_PERIOD, now=None) -> dict:
    if period not in PERIODS:
        period = DEFAULT_PERIOD
    start = period_start(period, now)
    period_issues = list(
        Issue.objects.filter(created_at__gte=start).select_related("assigned_to__profile")
    )
    resolved = [issue for issue in period_issues if issue.status == Issue.Status.RESOLVED]
    period_count = len(period_issues)
    return {
        "period": period,
        "period_label": PERIODS[period][0],
        "total_issues": Issue.objects.count(),
        "period_issues": period_count,
        "resolved_count": len(resolved),
        "resolution_rate": round(len(resolved) / period_count * 100) if period_count else 0,
        "avg_resolution_days": average_resolution_days(resolved),
        "category_breakdown": category_breakdown(period_issues),
        "staff_performance": staff_performance(period_issues),
        "time_series": time_series(period_issues),
    }
