from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from app.models.domain_settings import SettingDomain, SettingValueType


@dataclass(frozen=True)
class SettingSpec:
    domain: SettingDomain
    key: str
    env_var: str | None
    value_type: SettingValueType
    default: object | None
    label: str | None = None
    allowed: set[str] | None = None
    min_value: int | Decimal | None = None
    max_value: int | Decimal | None = None


def _number_specs(sequence: str, prefix: str, padding: int) -> list[SettingSpec]:
    return [
        SettingSpec(
            domain=SettingDomain.numbering,
            key=f"{sequence}_prefix",
            env_var=f"{sequence.upper()}_PREFIX",
            value_type=SettingValueType.string,
            default=prefix,
        ),
        SettingSpec(
            domain=SettingDomain.numbering,
            key=f"{sequence}_padding",
            env_var=f"{sequence.upper()}_PADDING",
            value_type=SettingValueType.integer,
            default=padding,
            min_value=1,
            max_value=12,
        ),
    ]


SETTINGS_SPECS: list[SettingSpec] = [
    SettingSpec(
        domain=SettingDomain.collections,
        key="payment_due_days",
        label="Grace period (days)",
        env_var="PAYMENT_DUE_DAYS",
        value_type=SettingValueType.integer,
        default=7,
        min_value=0,
    ),
    SettingSpec(
        domain=SettingDomain.collections,
        key="late_fee_daily_rate",
        label="Late fee (% of amount per day)",
        env_var="LATE_FEE_DAILY_RATE",
        value_type=SettingValueType.decimal,
        default=Decimal("0.05"),
        min_value=Decimal("0"),
        max_value=Decimal("100"),
    ),
    SettingSpec(
        domain=SettingDomain.supply,
        key="default_commission_rate",
        label="Default management commission (%)",
        env_var="DEFAULT_COMMISSION_RATE",
        value_type=SettingValueType.decimal,
        default=Decimal("0"),
        min_value=Decimal("0"),
        max_value=Decimal("100"),
    ),
    SettingSpec(
        domain=SettingDomain.supply,
        key="require_sequential_confirmation",
        label="Refuse payouts while earlier ones are unpaid",
        env_var="SUPPLY_REQUIRE_SEQUENTIAL",
        value_type=SettingValueType.boolean,
        default=True,
    ),
    *_number_specs("collection_payment", "COL", 6),
    *_number_specs("supply_payment", "SUP", 6),
    *_number_specs("receipt", "REC", 6),
    *_number_specs("transaction", "TXN", 8),
]


def get_spec(domain: SettingDomain, key: str) -> SettingSpec | None:
    for spec in SETTINGS_SPECS:
        if spec.domain == domain and spec.key == key:
            return spec
    return None


def list_specs(domain: SettingDomain) -> list[SettingSpec]:
    return [spec for spec in SETTINGS_SPECS if spec.domain == domain]


def extract_db_value(setting) -> object | None:
    if not setting or not setting.is_active:
        return None
    if setting.value_text is not None:
        return setting.value_text
    if setting.value_json is not None:
        return setting.value_json
    return None


def coerce_value(spec: SettingSpec, raw: object) -> tuple[object | None, str | None]:
    if raw is None:
        return None, None
    if spec.value_type == SettingValueType.boolean:
        if isinstance(raw, bool):
            return raw, None
        if isinstance(raw, str):
            normalized = raw.strip().lower()
            if normalized in {"1", "true", "yes", "on"}:
                return True, None
            if normalized in {"0", "false", "no", "off"}:
                return False, None
        return None, "Value must be boolean"
    if spec.value_type == SettingValueType.integer:
        if isinstance(raw, bool):
            return None, "Value must be an integer"
        if isinstance(raw, int):
            value = raw
        elif isinstance(raw, str):
            try:
                value = int(raw.strip())
            except ValueError:
                return None, "Value must be an integer"
        else:
            return None, "Value must be an integer"
        return _check_range(spec, value)
    if spec.value_type == SettingValueType.decimal:
        if isinstance(raw, bool):
            return None, "Value must be numeric"
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            return None, "Value must be numeric"
        if not value.is_finite():
            return None, "Value must be numeric"
        return _check_range(spec, value)
    if spec.value_type == SettingValueType.string:
        value = raw if isinstance(raw, str) else str(raw)
        if spec.allowed and value not in spec.allowed:
            return None, f"Value must be one of: {', '.join(sorted(spec.allowed))}"
        return value, None
    return raw, None


def _check_range(spec: SettingSpec, value):
    if spec.min_value is not None and value < spec.min_value:
        if spec.min_value == 0:
            return None, "Value cannot be negative"
        return None, f"Value must be >= {spec.min_value}"
    if spec.max_value is not None and value > spec.max_value:
        return None, f"Value must be <= {spec.max_value}"
    return value, None


def normalize_for_db(spec: SettingSpec, value: object) -> tuple[str | None, object | None]:
    if spec.value_type == SettingValueType.boolean:
        return ("true" if value else "false"), None
    if spec.value_type == SettingValueType.integer:
        return str(int(value)), None
    if spec.value_type == SettingValueType.decimal:
        return str(value), None
    if spec.value_type == SettingValueType.string:
        return str(value), None
    return None, value
