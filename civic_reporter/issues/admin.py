from django.contrib import admin

from .models import Issue, IssueUpdate, Notification, Profile


class IssueUpdateInline(admin.TabularInline):
    model = IssueUpdate
    extra = 0
    readonly_fields = ("created_at",)


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "email", "full_name", "role", "department")
    list_filter = ("role",)
    search_fields = ("user__username", "email", "full_name", "department")


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "category",
        "status",
        "priority",
        "reporter",
        "assigned_to",
        "created_at",
    )
    list_filter = ("status", "category", "priority", "created_at")
    search_fields = ("title", "description", "address", "reporter__username")
    readonly_fields = ("created_at", "updated_at", "resolved_at")
    inlines = [IssueUpdateInline]


@admin.register(IssueUpdate)
class IssueUpdateAdmin(admin.ModelAdmin):
    list_display = ("id", "issue", "user", "status", "created_at")
    search_fields = ("issue__title", "user__username", "message")
    readonly_fields = ("created_at",)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "title", "read", "created_at")
    list_filter = ("read",)
    search_fields = ("user__username", "title", "message")
    readonly_fields = ("created_at",)
