"""Key/value system settings."""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class SystemSetting(models.Model):
    """Operator-editable setting, e.g. ``deposit_percentage``."""

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.CharField(max_length=255, blank=True)
    is_public = models.BooleanField(
        default=False,
        help_text=_("Visible to unauthenticated clients."),
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("System setting")
        verbose_name_plural = _("System settings")
        ordering = ["key"]

    def __str__(self) -> str:
        return f"{self.key}={self.value}"
