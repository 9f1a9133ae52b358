"""Key/value access to domain settings.

Reads go cache -> database -> environment -> default and are coerced to the
declared type on every read. A value loaded from the database only fills an
empty cache key. Writes validate first, then upsert and overwrite the cached
value before returning, so a reader still holding the old row cannot replace
the new value.
"""

import logging
import os
from typing import Any

from sqlalchemy.orm import Session

from app.config import settings
from app.models.domain_settings import SettingDomain
from app.schemas.settings import DomainSettingUpdate
from app.services.domain_settings import DOMAIN_SETTINGS_SERVICE
from app.services.errors import InvalidConfiguration
from app.services.settings_cache import SettingsCache
from app.services.settings_spec import (
    SettingSpec,
    coerce_value,
    extract_db_value,
    get_spec,
    normalize_for_db,
)

logger = logging.getLogger(__name__)

_MISSING = object()


class ConfigStore:
    def __init__(self, domain: SettingDomain) -> None:
        self.domain = domain

    def _qualified(self, key: str) -> str:
        return f"{self.domain.value}.{key}"

    def _spec(self, key: str) -> SettingSpec:
        spec = get_spec(self.domain, key)
        if not spec:
            raise InvalidConfiguration(self._qualified(key), "unknown setting")
        return spec

    def _load_raw(self, db: Session, key: str) -> object | None:
        cached = SettingsCache.get(self.domain.value, key)
        if cached is not None:
            return cached
        setting = DOMAIN_SETTINGS_SERVICE[self.domain].find_by_key(db, key)
        raw = extract_db_value(setting)
        if raw is not None:
            SettingsCache.prime(self.domain.value, key, raw)
        return raw

    def get(self, db: Session, key: str, default: Any = _MISSING) -> Any:
        spec = self._spec(key)
        raw = self._load_raw(db, key)
        if raw is None and spec.env_var:
            raw = os.getenv(spec.env_var)
        if raw is None:
            if default is not _MISSING:
                return default
            return spec.default
        value, error = coerce_value(spec, raw)
        if error:
            raise InvalidConfiguration(self._qualified(key), error, raw)
        return value

    def get_many(self, db: Session, keys: list[str]) -> dict[str, Any]:
        for key in keys:
            self._spec(key)
        cached = SettingsCache.get_multi(self.domain.value, keys)
        result: dict[str, Any] = {}
        for key in keys:
            if key in cached:
                value, error = coerce_value(self._spec(key), cached[key])
                if error:
                    raise InvalidConfiguration(self._qualified(key), error, cached[key])
                result[key] = value
            else:
                result[key] = self.get(db, key)
        return result

    def set(self, db: Session, key: str, value: Any) -> Any:
        spec = self._spec(key)
        coerced, error = coerce_value(spec, value)
        if error or coerced is None:
            raise InvalidConfiguration(self._qualified(key), error or "value required", value)
        value_text, value_json = normalize_for_db(spec, coerced)
        DOMAIN_SETTINGS_SERVICE[self.domain].upsert_by_key(
            db,
            key,
            DomainSettingUpdate(
                value_type=spec.value_type,
                value_text=value_text,
                value_json=value_json,
                is_active=True,
            ),
        )
        raw = value_text if value_text is not None else value_json
        if not SettingsCache.set(self.domain.value, key, raw):
            logger.warning(
                "Settings cache not updated for %s; a cached value may be served for up to %ss",
                self._qualified(key),
                settings.settings_cache_ttl_seconds,
            )
        logger.info("Setting %s updated to %s", self._qualified(key), value_text)
        return coerced

    def forget(self, db: Session, key: str) -> bool:
        self._spec(key)
        service = DOMAIN_SETTINGS_SERVICE[self.domain]
        setting = service.find_by_key(db, key)
        if not setting or not setting.is_active:
            return False
        service.delete(db, str(setting.id))
        return True


collections_config = ConfigStore(SettingDomain.collections)
supply_config = ConfigStore(SettingDomain.supply)
numbering_config = ConfigStore(SettingDomain.numbering)

CONFIG_STORES = {
    SettingDomain.collections: collections_config,
    SettingDomain.supply: supply_config,
    SettingDomain.numbering: numbering_config,
}


def grace_period_days(db: Session) -> int:
    """Days after ``due_date_start`` before an installment counts as overdue."""
    return collections_config.get(db, "payment_due_days")
