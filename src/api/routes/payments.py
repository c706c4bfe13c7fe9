"""Payments API Routes

Recharge orders and the WeChat Pay notification endpoint.
"""

import logging
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlmodel.ext.asyncio.session import AsyncSession

from libs.result import Error
from src.api.error import ClientError, raise_for_error
from src.api.schemas.payment_request import CreatePaymentOrderRequestSchema
from src.app.services.financial_ledger import FinancialLedger
from src.app.services.order_settlement import OrderSettlement
from src.app.use_cases.payments import (
    CreatePaymentOrder,
    GetPaymentOrderStatus,
    ClosePaymentOrder,
    HandlePaymentNotification,
    CreatePaymentOrderCommandDTO,
    PaymentOrderDTO,
)
from src.adapter.repositories.account_repository import SqlAlchemyAccountRepository
from src.adapter.repositories.ledger_entry_repository import SqlAlchemyLedgerEntryRepository
from src.adapter.repositories.payment_order_repository import SqlAlchemyPaymentOrderRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_config, get_payment_provider, get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

REJECTED_NOTIFICATION_CODES = frozenset({
    "SIGNATURE_VERIFICATION_FAILED",
    "REPLAY_SUSPECTED",
    "AMOUNT_MISMATCH",
    "ORDER_NOT_PENDING",
    "ORDER_NOT_FOUND",
})


def require_provider(provider):
    if provider is None:
        raise ClientError(
            Error(
                code="PAYMENT_PROVIDER_UNAVAILABLE",
                message="Payments are not configured",
            ),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return provider


def build_settlement(session: AsyncSession) -> tuple[SqlAlchemyPaymentOrderRepository, OrderSettlement]:
    order_repo = SqlAlchemyPaymentOrderRepository(session)
    ledger = FinancialLedger(
        SqlAlchemyAccountRepository(session),
        SqlAlchemyLedgerEntryRepository(session),
    )
    return order_repo, OrderSettlement(order_repo, ledger)


@router.post(
    "/orders",
    response_model=PaymentOrderDTO,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_order(
    request: CreatePaymentOrderRequestSchema,
    session: AsyncSession = Depends(get_session),
    provider=Depends(get_payment_provider),
    config=Depends(get_config),
):
    """
    Create a recharge order.

    Returns the payment credential (QR code URL) and the expiry time.
    """
    use_case = CreatePaymentOrder(
        uow=SqlAlchemyUnitOfWork(session),
        account_repo=SqlAlchemyAccountRepository(session),
        order_repo=SqlAlchemyPaymentOrderRepository(session),
        provider=require_provider(provider),
        min_amount=config.RECHARGE_MIN_AMOUNT,
        max_amount=config.RECHARGE_MAX_AMOUNT,
        expire_minutes=config.ORDER_EXPIRE_MINUTES,
    )
    result = await use_case.execute(
        CreatePaymentOrderCommandDTO(
            account_id=request.account_id,
            amount=request.amount,
            description=request.description,
        )
    )

    if result.is_err():
        raise_for_error(result.error)
    return result.value


@router.get(
    "/orders/{merchant_order_id}",
    response_model=PaymentOrderDTO,
)
async def get_payment_order_status(
    merchant_order_id: str,
    session: AsyncSession = Depends(get_session),
    provider=Depends(get_payment_provider),
):
    """
    Order status. A pending order is checked at the provider and settled
    if it has been paid (fallback for a lost notification).
    """
    order_repo, settlement = build_settlement(session)
    use_case = GetPaymentOrderStatus(
        SqlAlchemyUnitOfWork(session), order_repo, settlement, provider
    )
    result = await use_case.execute(merchant_order_id)

    if result.is_err():
        raise_for_error(result.error)
    return result.value


@router.post(
    "/orders/{merchant_order_id}/close",
    response_model=PaymentOrderDTO,
    responses={409: {"description": "Order is not pending"}},
)
async def close_payment_order(
    merchant_order_id: str,
    session: AsyncSession = Depends(get_session),
    provider=Depends(get_payment_provider),
):
    """Cancel a pending order."""
    order_repo, settlement = build_settlement(session)
    use_case = ClosePaymentOrder(
        SqlAlchemyUnitOfWork(session), order_repo, settlement, require_provider(provider)
    )
    result = await use_case.execute(merchant_order_id)

    if result.is_err():
        raise_for_error(result.error)
    return result.value


@router.post("/wechat/notify")
async def wechat_pay_notify(
    request: Request,
    session: AsyncSession = Depends(get_session),
    provider=Depends(get_payment_provider),
):
    """
    WeChat Pay payment notification.

    The raw body is verified against the Wechatpay-* headers before it is
    parsed. Failures answer with a generic FAIL message.
    """
    if provider is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"code": "FAIL", "message": "Service unavailable"},
        )

    body = (await request.body()).decode("utf-8", errors="replace")
    order_repo, settlement = build_settlement(session)
    use_case = HandlePaymentNotification(SqlAlchemyUnitOfWork(session), settlement, provider)
    result = await use_case.execute(request.headers, body)

    if result.is_err():
        status_code = (
            status.HTTP_400_BAD_REQUEST
            if result.error.code in REJECTED_NOTIFICATION_CODES
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        return JSONResponse(
            status_code=status_code,
            content={"code": "FAIL", "message": "Notification rejected"},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"code": "SUCCESS", "message": "OK"},
    )
