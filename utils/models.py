from typing import ClassVar

from django.db import models
from django.db.models.options import Options
from django.utils.timezone import now


class BaseModel(models.Model):  # noqa: R0903
    """Base model with integer primary key and audit timestamps."""

    _meta: ClassVar[Options]

    id = models.BigAutoField(primary_key=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:  # noqa: R0903
        abstract = True


class SoftDeleteManager(models.Manager):  # noqa: R0903
    """Manager to retrieve only non-deleted objects."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class SoftDeleteModel(BaseModel):  # noqa: R0903
    """Catalog rows are hidden instead of removed so cart lines keep resolving."""

    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()  # Only shows active objects
    all_objects = models.Manager()  # Shows all objects, including deleted ones

    @property
    def is_deleted(self):
        """Determines if the instance is considered deleted."""
        return self.deleted_at is not None

    def delete(self, using=None, keep_parents=False):  # noqa: A003
        """Marks the object as deleted."""
        if self.is_deleted:
            return
        self.deleted_at = now()
        self.save(update_fields=['deleted_at', 'updated_at'])

    def restore(self):
        """Restores the deleted object."""
        if not self.is_deleted:
            return
        self.deleted_at = None
        self.save(update_fields=['deleted_at', 'updated_at'])

    class Meta:  # noqa: R0903
        abstract = True
