from django.conf import settings
from django.db import models


class Profile(models.Model):
    class Role(models.TextChoices):
        CITIZEN = "citizen", "Citizen"
        STAFF = "staff", "Staff"
        ADMIN = "admin", "Admin"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    email = models.EmailField(blank=True)
    full_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    department = models.CharField(max_length=120, blank=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CITIZEN)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "profiles"

    def __str__(self):
        return self.display_name

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or self.user.get_username()

    @property
    def is_staff_member(self) -> bool:
        return self.role in {self.Role.STAFF, self.Role.ADMIN}


def get_role(user) -> str | None:
    """Role of an authenticated user, or None for anonymous callers."""
    if not user.is_authenticated:
        return None
    try:
        return user.profile.role
    except Profile.DoesNotExist:
        return None


def is_staff_member(user) -> bool:
    return get_role(user) in {Profile.Role.STAFF, Profile.Role.ADMIN}


class Issue(models.Model):
    class Category(models.TextChoices):
        POTHOLE = "pothole", "Pothole"
        STREETLIGHT = "streetlight", "Street Light"
        TRAFFIC_SIGNAL = "traffic_signal", "Traffic Signal"
        SIDEWALK = "sidewalk", "Sidewalk"
        GRAFFITI = "graffiti", "Graffiti"
        GARBAGE = "garbage", "Garbage/Litter"
        WATER_LEAK = "water_leak", "Water Leak"
        OTHER = "other", "Other"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        MEDIUM = "medium", "Medium"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"

    # Lifecycle order: pending -> in_progress -> resolved -> closed.
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In Progress"
        RESOLVED = "resolved", "Resolved"
        CLOSED = "closed", "Closed"

    title = models.CharField(max_length=255)
    description = models.TextField()
    category = models.CharField(max_length=50, choices=Category.choices)
    priority = models.CharField(
        max_length=20,
        choices=Priority.choices,
        default=Priority.MEDIUM,
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    location_lat = models.FloatField(null=True, blank=True)
    location_lng = models.FloatField(null=True, blank=True)
    address = models.CharField(max_length=255, blank=True)
    reporter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reported_issues",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="assigned_issues",
        null=True,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "issues"
        ordering = ["-created_at"]

    def __str__(self):
        return self.title

    @property
    def has_location(self) -> bool:
        return self.location_lat is not None and self.location_lng is not None


class IssueUpdate(models.Model):
    issue = models.ForeignKey(
        Issue,
        on_delete=models.CASCADE,
        related_name="updates",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="issue_updates",
    )
    message = models.TextField()
    # Status the issue moved to with this update; blank for plain comments.
    status = models.CharField(max_length=20, choices=Issue.Status.choices, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "issue_updates"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.user.get_username()} - {self.issue_id}"


class Notification(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    issue = models.ForeignKey(
        Issue,
        on_delete=models.SET_NULL,
        related_name="notifications",
        null=True,
        blank=True,
    )
    title = models.CharField(max_length=200)
    message = models.TextField()
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "notifications"
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.title
