from .models import Notification, is_staff_member


def notification_badge(request):
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return {"unread_notification_count": 0, "is_staff_member": False}
    return {
        "unread_notification_count": Notification.objects.filter(user=user, read=False).count(),
        "is_staff_member": is_staff_member(user),
    }
