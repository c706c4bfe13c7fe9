"""Integration fixtures

A file-backed SQLite database (aiosqlite) per test, the real API and
workers, and in-memory fakes for the generation API, object storage and
payment provider. SQLite ignores FOR UPDATE; row-lock behavior is covered
by test_postgres_claims.py when TEST_POSTGRES_URI is set.
"""

import json
from typing import Mapping, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from config import ApplicationConfig
from src.api.app import create_app
from src.app.services.generation_service import GenerationRequest, GenerationService, UnitResult
from src.app.services.payment_provider import PaymentProvider, ProviderOrder, ProviderTradeState
from src.app.services.storage_service import StorageService
from src.depends import create_session_factory
from src.domain.errors import OrderAlreadyPaid, SignatureVerificationFailed
from src.worker.context import ApplicationContext

VALID_SIGNATURE = "valid-signature"


class IntegrationConfig(ApplicationConfig):
    WORKERS_ENABLED = False
    RECONCILIATION_ENABLED = True
    CORS_ORIGINS = []
    WECHAT_PAY_MCHID = ""
    WECHAT_PAY_API_V3_KEY = ""
    WECHAT_PAY_PRIVATE_KEY = ""
    WECHAT_PAY_PLATFORM_CERT = ""


class FakeGenerationService(GenerationService):
    """Every unit succeeds with one image unless its index is in failing_units"""

    def __init__(self):
        self.failing_units: set[int] = set()
        self.requests: list[GenerationRequest] = []

    async def generate_units(self, request: GenerationRequest, count: int) -> list[UnitResult]:
        self.requests.append(request)
        return [
            UnitResult(index=index, success=False, error="API error 500", attempts=3)
            if index in self.failing_units
            else UnitResult(
                index=index, success=True, urls=[f"https://tmp.test/{index}.png"], attempts=1
            )
            for index in range(count)
        ]


class FakeStorageService(StorageService):
    def __init__(self):
        self.objects: dict[str, bytes] = {}

    async def download(self, url: str) -> bytes:
        return url.encode()

    async def upload(self, data: bytes, key: str, content_type: str = "image/png") -> str:
        self.objects[key] = data
        return f"https://cdn.test/{key}"


class FakePaymentProvider(PaymentProvider):
    """
    Provider double

    Notifications are JSON transactions; the signature header must equal
    VALID_SIGNATURE.
    """

    name = "wechat_pay"

    def __init__(self):
        self.orders: dict[str, ProviderOrder] = {}
        self.closed: list[str] = []

    async def create_order(self, merchant_order_id, amount, description, expire_at) -> str:
        self.orders[merchant_order_id] = ProviderOrder(
            merchant_order_id=merchant_order_id,
            trade_state=ProviderTradeState.NOTPAY,
            amount_total=amount,
        )
        return f"weixin://wxpay/bizpayurl?pr={merchant_order_id[-6:]}"

    async def query_order(self, merchant_order_id: str) -> ProviderOrder:
        return self.orders[merchant_order_id]

    async def close_order(self, merchant_order_id: str) -> None:
        if self.orders[merchant_order_id].is_paid:
            raise OrderAlreadyPaid("ORDERPAID", 400, "ORDERPAID")
        self.closed.append(merchant_order_id)

    def parse_notification(self, headers: Mapping[str, str], body: str) -> ProviderOrder:
        if headers.get("wechatpay-signature") != VALID_SIGNATURE:
            raise SignatureVerificationFailed("Notification signature does not verify")
        data = json.loads(body)
        return ProviderOrder(
            merchant_order_id=data["out_trade_no"],
            trade_state=data["trade_state"],
            transaction_id=data.get("transaction_id"),
            amount_total=data["amount"]["total"],
        )

    def pay(self, merchant_order_id: str, amount: Optional[int] = None) -> ProviderOrder:
        """Simulate the payer completing the payment"""
        order = self.orders[merchant_order_id]
        paid = ProviderOrder(
            merchant_order_id=merchant_order_id,
            trade_state=ProviderTradeState.SUCCESS,
            transaction_id=f"42000{merchant_order_id[-8:]}",
            amount_total=order.amount_total if amount is None else amount,
        )
        self.orders[merchant_order_id] = paid
        return paid


def notification_body(order: ProviderOrder) -> str:
    return json.dumps(
        {
            "out_trade_no": order.merchant_order_id,
            "trade_state": order.trade_state.value,
            "transaction_id": order.transaction_id,
            "amount": {"total": order.amount_total},
        }
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'engine.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def generation_service():
    return FakeGenerationService()


@pytest.fixture
def storage_service():
    return FakeStorageService()


@pytest.fixture
def payment_provider():
    return FakePaymentProvider()


@pytest_asyncio.fixture
async def context(session_factory, generation_service, storage_service, payment_provider):
    async with httpx.AsyncClient() as http_client:
        yield ApplicationContext(
            IntegrationConfig,
            session_factory=session_factory,
            http_client=http_client,
            generation_service=generation_service,
            storage_service=storage_service,
            payment_provider=payment_provider,
        )


@pytest_asyncio.fixture
async def client(context):
    """API client wired to the test context"""
    app = create_app(IntegrationConfig, context=context)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def open_account(client):
    async def _open(user_id: str = "user_1", initial_balance: int = 1000) -> int:
        response = await client.post(
            "/api/accounts", json={"user_id": user_id, "initial_balance": initial_balance}
        )
        assert response.status_code == 200
        return response.json()["account_id"]

    return _open


@pytest.fixture
def signed_notification():
    """Headers and raw body of a notification the fake provider accepts"""
    def _build(provider_order: ProviderOrder, signature: str = VALID_SIGNATURE):
        headers = {"Content-Type": "application/json", "Wechatpay-Signature": signature}
        return headers, notification_body(provider_order)

    return _build


@pytest_asyncio.fixture
async def notify(client, signed_notification):
    """Deliver a provider order to the notification endpoint"""
    async def _notify(provider_order: ProviderOrder, signature: str = VALID_SIGNATURE):
        headers, body = signed_notification(provider_order, signature)
        return await client.post("/api/payments/wechat/notify", content=body, headers=headers)

    return _notify


@pytest_asyncio.fixture
async def bare_client(session_factory):
    """API client for a deployment without payment credentials"""
    async with httpx.AsyncClient() as http_client:
        context = ApplicationContext(
            IntegrationConfig,
            session_factory=session_factory,
            http_client=http_client,
            payment_provider=None,
        )
        app = create_app(IntegrationConfig, context=context)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
