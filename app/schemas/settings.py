from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.domain_settings import SettingDomain, SettingValueType


class DomainSettingBase(BaseModel):
    domain: SettingDomain | None = None
    key: str = Field(min_length=1, max_length=120)
    value_type: SettingValueType = SettingValueType.string
    value_text: str | None = None
    value_json: dict | bool | int | list | None = None
    is_active: bool = True


class DomainSettingCreate(DomainSettingBase):
    pass


class DomainSettingUpdate(BaseModel):
    domain: SettingDomain | None = None
    value_type: SettingValueType | None = None
    value_text: str | None = None
    value_json: dict | bool | int | list | None = None
    is_active: bool | None = None


class DomainSettingRead(DomainSettingBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    domain: SettingDomain
    created_at: datetime
    updated_at: datetime


class SettingValueWrite(BaseModel):
    value: str | int | float | bool


class SettingValueRead(BaseModel):
    domain: SettingDomain
    key: str
    value: bool | int | Decimal | str | None
