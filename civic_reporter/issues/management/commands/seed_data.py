from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from issues.models import Issue, IssueUpdate, Profile

User = get_user_model()


class Command(BaseCommand):
    help = "Seed the database with sample users and issues."

    def handle(self, *args, **options):
        staff_user, created_staff = User.objects.get_or_create(
            username="staff_admin",
            defaults={
                "email": "staff_admin@example.com",
                "is_staff": True,
                "is_superuser": False,
            },
        )
        if created_staff:
            staff_user.set_password("StaffPass123!")
            staff_user.save()
        Profile.objects.filter(user=staff_user).update(
            role=Profile.Role.STAFF,
            full_name="Public Works Desk",
            department="Public Works",
        )

        citizen_user, created_citizen = User.objects.get_or_create(
            username="citizen_user",
            defaults={"email": "citizen_user@example.com"},
        )
        if created_citizen:
            citizen_user.set_password("CitizenPass123!")
            citizen_user.save()

        sample_definitions = [
            {
                "title": "Overflowing garbage bins",
                "description": "Bins on Main Street have not been emptied for a week.",
                "category": Issue.Category.GARBAGE,
                "priority": Issue.Priority.HIGH,
                "address": "Main Street & 2nd Ave",
                "status": Issue.Status.PENDING,
            },
            {
                "title": "Deep pothole on Ring Road",
                "description": "Large pothole causing cars to swerve into the next lane.",
                "category": Issue.Category.POTHOLE,
                "priority": Issue.Priority.URGENT,
                "address": "Ring Road, Block A",
                "location_lat": 40.7128,
                "location_lng": -74.0060,
                "status": Issue.Status.IN_PROGRESS,
            },
            {
                "title": "Streetlight out near the park",
                "description": "Streetlight stays off at night at the park entrance.",
                "category": Issue.Category.STREETLIGHT,
                "priority": Issue.Priority.MEDIUM,
                "address": "Public Park Road",
                "status": Issue.Status.RESOLVED,
            },
        ]

        created_count = 0
        for item in sample_definitions:
            status = item.pop("status")
            issue, created = Issue.objects.get_or_create(
                reporter=citizen_user,
                title=item["title"],
                defaults={
                    **item,
                    "status": status,
                    "assigned_to": staff_user if status != Issue.Status.PENDING else None,
                    "resolved_at": timezone.now() if status == Issue.Status.RESOLVED else None,
                },
            )
            if created:
                created_count += 1
                if issue.status != Issue.Status.PENDING:
                    IssueUpdate.objects.get_or_create(
                        issue=issue,
                        user=staff_user,
                        message="Issue has been reviewed by staff.",
                        defaults={"status": issue.status},
                    )

        self.stdout.write(self.style.SUCCESS("Seed complete."))
        self.stdout.write(
            self.style.WARNING(
                "Credentials: citizen_user / CitizenPass123!, "
                "staff_admin / StaffPass123!"
            )
        )
        self.stdout.write(self.style.SUCCESS(f"New issues created: {created_count}"))
