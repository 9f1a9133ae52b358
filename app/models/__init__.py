from app.models.domain_settings import (  # noqa: F401
    DomainSetting,
    SettingDomain,
    SettingValueType,
)
from app.models.ledger import LedgerTransaction, LedgerTransactionType  # noqa: F401
from app.models.payments import (  # noqa: F401
    ApprovalStatus,
    CollectionPayment,
    CollectionStatus,
    SupplyPayment,
    SupplyStatus,
)
from app.models.sequence import DocumentSequence  # noqa: F401
