"""Row-level storage for payment engine settings.

``ConfigStore`` in ``app.services.config_store`` is the typed entry point;
this module only persists ``DomainSetting`` rows and keeps the cache
consistent with them.
"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.domain_settings import DomainSetting, SettingDomain, SettingValueType
from app.schemas.settings import DomainSettingCreate, DomainSettingUpdate
from app.services.common import apply_ordering, apply_pagination, get_or_404
from app.services.response import ListResponseMixin
from app.services.settings_cache import SettingsCache

logger = logging.getLogger(__name__)


class DomainSettings(ListResponseMixin):
    def __init__(self, domain: SettingDomain) -> None:
        self.domain = domain

    def _commit(self, db: Session, setting: DomainSetting) -> DomainSetting:
        # Evict on both sides of the commit: a reader that repopulates the key
        # from the pre-commit row is cleared by the second eviction.
        SettingsCache.invalidate(self.domain.value, setting.key)
        db.commit()
        db.refresh(setting)
        SettingsCache.invalidate(self.domain.value, setting.key)
        return setting

    def create(self, db: Session, payload: DomainSettingCreate) -> DomainSetting:
        if payload.domain and payload.domain != self.domain:
            raise HTTPException(status_code=400, detail="Setting domain mismatch")
        data = payload.model_dump()
        data["domain"] = self.domain
        setting = DomainSetting(**data)
        db.add(setting)
        return self._commit(db, setting)

    def get(self, db: Session, setting_id: str) -> DomainSetting:
        setting = get_or_404(db, DomainSetting, setting_id, detail="Setting not found")
        if setting.domain != self.domain:
            raise HTTPException(status_code=404, detail="Setting not found")
        return setting

    def list(
        self,
        db: Session,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ):
        query = db.query(DomainSetting).filter(DomainSetting.domain == self.domain)
        if is_active is None:
            query = query.filter(DomainSetting.is_active.is_(True))
        else:
            query = query.filter(DomainSetting.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": DomainSetting.created_at, "key": DomainSetting.key},
        )
        return apply_pagination(query, limit, offset).all()

    def update(self, db: Session, setting_id: str, payload: DomainSettingUpdate) -> DomainSetting:
        setting = self.get(db, setting_id)
        data = payload.model_dump(exclude_unset=True)
        if data.pop("domain", setting.domain) != setting.domain:
            raise HTTPException(status_code=400, detail="Setting domain mismatch")
        for field, value in data.items():
            setattr(setting, field, value)
        return self._commit(db, setting)

    def find_by_key(self, db: Session, key: str) -> DomainSetting | None:
        return (
            db.query(DomainSetting)
            .filter(DomainSetting.domain == self.domain)
            .filter(DomainSetting.key == key)
            .first()
        )

    def upsert_by_key(self, db: Session, key: str, payload: DomainSettingUpdate) -> DomainSetting:
        """Update the row for ``key`` in place, reviving it if soft-deleted."""
        setting = self.find_by_key(db, key)
        if setting is None:
            return self.create(
                db,
                DomainSettingCreate(
                    domain=self.domain,
                    key=key,
                    value_type=payload.value_type or SettingValueType.string,
                    value_text=payload.value_text,
                    value_json=payload.value_json,
                    is_active=True if payload.is_active is None else payload.is_active,
                ),
            )
        data = payload.model_dump(exclude_unset=True)
        data.pop("domain", None)
        for field, value in data.items():
            setattr(setting, field, value)
        return self._commit(db, setting)

    def delete(self, db: Session, setting_id: str) -> None:
        setting = self.get(db, setting_id)
        setting.is_active = False
        self._commit(db, setting)
        logger.info("Setting %s.%s deactivated", self.domain.value, setting.key)


collections_settings = DomainSettings(SettingDomain.collections)
supply_settings = DomainSettings(SettingDomain.supply)
numbering_settings = DomainSettings(SettingDomain.numbering)

DOMAIN_SETTINGS_SERVICE = {
    SettingDomain.collections: collections_settings,
    SettingDomain.supply: supply_settings,
    SettingDomain.numbering: numbering_settings,
}
