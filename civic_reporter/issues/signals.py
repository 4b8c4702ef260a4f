import logging

from django.conf import settings
from django.db import transaction
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from .models import Issue, IssueUpdate, Notification, Profile
from .realtime.feed import DELETE, INSERT, UPDATE, ChangeEvent, change_feed
from .realtime.rows import row_image, table_name

logger = logging.getLogger(__name__)


def _publish_on_commit(event):
    transaction.on_commit(lambda: change_feed.publish(event))


@receiver(pre_save, sender=Issue)
@receiver(pre_save, sender=IssueUpdate)
@receiver(pre_save, sender=Notification)
def capture_previous_row(sender, instance, raw=False, **kwargs):
    if raw or instance._state.adding or instance.pk is None:
        return
    previous = sender._default_manager.filter(pk=instance.pk).first()
    instance._previous_row = row_image(previous) if previous is not None else None


@receiver(post_save, sender=Issue)
@receiver(post_save, sender=IssueUpdate)
@receiver(post_save, sender=Notification)
def publish_saved_row(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    if created:
        event = ChangeEvent(INSERT, table_name(sender), new=row_image(instance))
    else:
        event = ChangeEvent(
            UPDATE,
            table_name(sender),
            new=row_image(instance),
            old=getattr(instance, "_previous_row", None),
        )
    _publish_on_commit(event)


@receiver(post_delete, sender=Issue)
@receiver(post_delete, sender=IssueUpdate)
@receiver(post_delete, sender=Notification)
def publish_deleted_row(sender, instance, **kwargs):
    _publish_on_commit(ChangeEvent(DELETE, table_name(sender), old=row_image(instance)))


def default_role_for(user) -> str:
    if user.is_superuser:
        return Profile.Role.ADMIN
    if user.is_staff:
        return Profile.Role.STAFF
    return Profile.Role.CITIZEN


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_profile(sender, instance, created, raw=False, **kwargs):
    if not created or raw:
        return
    Profile.objects.get_or_create(
        user=instance,
        defaults={"email": instance.email, "role": default_role_for(instance)},
    )
    logger.info("Created %s profile for user %s", default_role_for(instance), instance.pk)
