"""Readers for operator-controlled settings."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from shared.domain.exceptions import ConfigurationError

from .models import SystemSetting

logger = logging.getLogger(__name__)

DEPOSIT_PERCENTAGE_KEY = "deposit_percentage"
DEFAULT_OPERATING_HOURS_KEY = "default_operating_hours"


class SettingsReader(ABC):
    """Read-only access to ``SystemSetting`` values."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the raw value for ``key`` or None when it is not set."""

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get(key)
        if raw is None or raw == "":
            return default
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Setting '{key}' is not valid JSON") from exc


class DjangoSettingsReader(SettingsReader):
    def get(self, key: str) -> str | None:
        value = SystemSetting.objects.filter(key=key).values_list("value", flat=True).first()
        if value is None:
            logger.debug("System setting %s is not set", key)
        return value


class StaticSettingsReader(SettingsReader):
    """Settings from a plain mapping. Used by tests and scripts."""

    def __init__(self, values: dict[str, Any] | None = None):
        self._values = dict(values or {})

    def get(self, key: str) -> str | None:
        value = self._values.get(key)
        return None if value is None else str(value)
