from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.domain_settings import SettingDomain
from app.schemas.common import ListResponse
from app.schemas.settings import DomainSettingRead, SettingValueRead, SettingValueWrite
from app.services.config_store import CONFIG_STORES
from app.services.domain_settings import DOMAIN_SETTINGS_SERVICE

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/{domain}", response_model=ListResponse[DomainSettingRead])
def list_settings(
    domain: SettingDomain,
    is_active: bool | None = None,
    order_by: str = Query(default="key"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=200, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return DOMAIN_SETTINGS_SERVICE[domain].list_response(
        db, is_active, order_by, order_dir, limit, offset
    )


@router.get("/{domain}/{key}", response_model=SettingValueRead)
def get_setting(domain: SettingDomain, key: str, db: Session = Depends(get_db)):
    value = CONFIG_STORES[domain].get(db, key)
    return SettingValueRead(domain=domain, key=key, value=value)


@router.put(
    "/{domain}/{key}",
    response_model=SettingValueRead,
    status_code=status.HTTP_200_OK,
)
def put_setting(
    domain: SettingDomain,
    key: str,
    payload: SettingValueWrite,
    db: Session = Depends(get_db),
):
    value = CONFIG_STORES[domain].set(db, key, payload.value)
    return SettingValueRead(domain=domain, key=key, value=value)


@router.delete("/{domain}/{key}", status_code=status.HTTP_204_NO_CONTENT)
def delete_setting(domain: SettingDomain, key: str, db: Session = Depends(get_db)):
    CONFIG_STORES[domain].forget(db, key)
