from django.contrib.auth import get_user_model

from issues.models import Issue, Profile

User = get_user_model()

PASSWORD = "StrongPass123!"


def create_user(username, role=Profile.Role.CITIZEN, full_name="", **kwargs):
    user = User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password=PASSWORD,
        **kwargs,
    )
    Profile.objects.filter(user=user).update(role=role, full_name=full_name)
    user.refresh_from_db()
    return user


def create_issue(reporter, **kwargs):
    data = {
        "title": "Street light issue",
        "description": "Street light has been out for 3 days.",
        "category": Issue.Category.STREETLIGHT,
        "priority": Issue.Priority.MEDIUM,
        "address": "Ward 7",
        "reporter": reporter,
    }
    data.update(kwargs)
    return Issue.objects.create(**data)
