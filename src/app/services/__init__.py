from .unit_of_work import UnitOfWork
from .generation_service import GenerationService, GenerationRequest, UnitResult
from .storage_service import StorageService
from .payment_provider import PaymentProvider, ProviderOrder, ProviderTradeState
from .financial_ledger import FinancialLedger
from .order_settlement import OrderSettlement, SettlementOutcome

__all__ = [
    "UnitOfWork",
    "GenerationService",
    "GenerationRequest",
    "UnitResult",
    "StorageService",
    "PaymentProvider",
    "ProviderOrder",
    "ProviderTradeState",
    "FinancialLedger",
    "OrderSettlement",
    "SettlementOutcome",
]
