from django.conf import settings
from django.core.mail import send_mail

from .models import Issue


def status_label(status) -> str:
    return Issue.Status(status).label if status in Issue.Status.values else str(status)


def _greeting(user) -> str:
    profile = getattr(user, "profile", None)
    return profile.display_name if profile else user.get_username()


def send_submission_email(issue):
    if not issue.reporter.email:
        return
    send_mail(
        subject=f"Issue Reported: {issue.title}",
        message=(
            f"Dear {_greeting(issue.reporter)},\n\n"
            f"Your report has been submitted and will be reviewed by local authorities.\n"
            f"Issue #{issue.pk}: {issue.title}\n"
            f"Status: {issue.get_status_display()}\n\n"
            "We will notify you when there is an update."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[issue.reporter.email],
        fail_silently=True,
    )


def send_status_change_email(issue, old_status, new_status):
    if not issue.reporter.email:
        return
    send_mail(
        subject=f"Issue Status Updated: #{issue.pk}",
        message=(
            f"Dear {_greeting(issue.reporter)},\n\n"
            f"Your issue \"{issue.title}\" changed from "
            f"{status_label(old_status)} to {status_label(new_status)}.\n\n"
            "Thank you."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[issue.reporter.email],
        fail_silently=True,
    )
