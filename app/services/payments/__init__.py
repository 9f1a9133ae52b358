from app.services.payments.collection import CollectionPayments
from app.services.payments.supply import SupplyPayments

collection_payments = CollectionPayments()
supply_payments = SupplyPayments()

__all__ = [
    "CollectionPayments",
    "SupplyPayments",
    "collection_payments",
    "supply_payments",
]
