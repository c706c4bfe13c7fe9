"""WeChat Pay v3 client (native QR code payments)

Outbound calls are signed with the merchant private key
(WECHATPAY2-SHA256-RSA2048). Inbound notifications are checked against
the platform certificate and decrypted with the API v3 key (AES-256-GCM).
"""

import base64
import binascii
import json
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional
import httpx
from cryptography import x509
from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pydantic import ValidationError
from src.app.services.payment_provider import PaymentProvider, ProviderOrder
from src.domain.errors import (
    OrderAlreadyClosed,
    OrderAlreadyPaid,
    PaymentProviderError,
    ReplaySuspected,
    SignatureVerificationFailed,
)

logger = logging.getLogger(__name__)

AUTH_SCHEMA = "WECHATPAY2-SHA256-RSA2048"
SIGNATURE_PROBE_PREFIX = "WECHATPAY/SIGNTEST/"
ORDER_CLOSED_CODES = frozenset({"ORDER_CLOSED", "ORDERCLOSED"})


def load_public_key(pem: str):
    """Platform public key from a PEM certificate or a bare PEM public key"""
    data = pem.encode()
    if b"BEGIN CERTIFICATE" in data:
        return x509.load_pem_x509_certificate(data).public_key()
    return serialization.load_pem_public_key(data)


def load_private_key(pem: str):
    return serialization.load_pem_private_key(pem.encode(), password=None)


def format_expire_time(expire_at: datetime) -> str:
    """RFC 3339 with offset; naive datetimes are UTC"""
    if expire_at.tzinfo is None:
        expire_at = expire_at.replace(tzinfo=timezone.utc)
    return expire_at.isoformat(timespec="seconds")


class WeChatPayProvider(PaymentProvider):
    """
    WeChat Pay v3 payment provider

    Endpoints:
    - POST /v3/pay/transactions/native                     create (returns code_url)
    - GET  /v3/pay/transactions/out-trade-no/{id}?mchid=   query
    - POST /v3/pay/transactions/out-trade-no/{id}/close    close (204)
    """

    name = "wechat_pay"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        appid: str,
        mchid: str,
        api_v3_key: str,
        serial_no: str,
        private_key_pem: str,
        platform_cert_pem: str,
        platform_cert_serial_no: str,
        notify_url: str,
        base_url: str = "https://api.mch.weixin.qq.com",
        timestamp_tolerance_seconds: int = 300,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        self.http_client = http_client
        self.appid = appid
        self.mchid = mchid
        self.api_v3_key = api_v3_key.encode()
        self.serial_no = serial_no
        self.private_key = load_private_key(private_key_pem)
        self.platform_public_key = load_public_key(platform_cert_pem)
        self.platform_cert_serial_no = platform_cert_serial_no
        self.notify_url = notify_url
        self.base_url = base_url.rstrip("/")
        self.timestamp_tolerance_seconds = timestamp_tolerance_seconds
        self.timeout = timeout
        self._clock = clock

    # Outbound

    async def create_order(
        self, merchant_order_id: str, amount: int, description: str, expire_at: datetime
    ) -> str:
        payload = {
            "appid": self.appid,
            "mchid": self.mchid,
            "description": description,
            "out_trade_no": merchant_order_id,
            "time_expire": format_expire_time(expire_at),
            "notify_url": self.notify_url,
            "amount": {"total": amount, "currency": "CNY"},
        }
        response = await self._request("POST", "/v3/pay/transactions/native", payload)
        code_url = self._json(response).get("code_url")
        if not code_url:
            raise PaymentProviderError("WeChat Pay response has no code_url", response.status_code)
        return code_url

    async def query_order(self, merchant_order_id: str) -> ProviderOrder:
        path = f"/v3/pay/transactions/out-trade-no/{merchant_order_id}?mchid={self.mchid}"
        response = await self._request("GET", path)
        try:
            return self._to_provider_order(self._json(response))
        except (KeyError, ValidationError) as e:
            raise PaymentProviderError(f"Malformed order query response: {e}") from e

    async def close_order(self, merchant_order_id: str) -> None:
        path = f"/v3/pay/transactions/out-trade-no/{merchant_order_id}/close"
        try:
            await self._request("POST", path, {"mchid": self.mchid})
        except OrderAlreadyClosed:
            logger.info(f"Order {merchant_order_id} already closed at WeChat Pay")

    def sign(self, message: str) -> str:
        signature = self.private_key.sign(message.encode(), padding.PKCS1v15(), hashes.SHA256())
        return base64.b64encode(signature).decode()

    def authorization(self, method: str, path: str, body: str) -> str:
        timestamp = str(int(self._clock()))
        nonce = secrets.token_hex(16)
        message = f"{method}\n{path}\n{timestamp}\n{nonce}\n{body}\n"
        return (
            f'{AUTH_SCHEMA} mchid="{self.mchid}",nonce_str="{nonce}",'
            f'signature="{self.sign(message)}",timestamp="{timestamp}",serial_no="{self.serial_no}"'
        )

    async def _request(
        self, method: str, path: str, payload: Optional[dict[str, Any]] = None
    ) -> httpx.Response:
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False) if payload else ""
        headers = {
            "Authorization": self.authorization(method, path, body),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        try:
            response = await self.http_client.request(
                method,
                f"{self.base_url}{path}",
                content=body.encode() if body else None,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise PaymentProviderError(f"WeChat Pay request failed: {e}") from e

        if response.status_code >= 400:
            code, message = self._error_of(response)
            if code == "ORDERPAID":
                raise OrderAlreadyPaid(message, response.status_code, code)
            if code in ORDER_CLOSED_CODES:
                raise OrderAlreadyClosed(message, response.status_code, code)
            raise PaymentProviderError(
                f"WeChat Pay error {response.status_code} {code}: {message}",
                response.status_code,
                code,
            )

        return response

    @staticmethod
    def _error_of(response: httpx.Response) -> tuple[Optional[str], str]:
        try:
            data = response.json()
        except ValueError:
            return None, response.text[:200]
        return data.get("code"), data.get("message", "")

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise PaymentProviderError(f"Malformed WeChat Pay response: {e}", response.status_code) from e

    # Inbound

    def parse_notification(self, headers: Mapping[str, str], body: str) -> ProviderOrder:
        lowered = {key.lower(): value for key, value in headers.items()}
        timestamp = lowered.get("wechatpay-timestamp")
        nonce = lowered.get("wechatpay-nonce")
        signature = lowered.get("wechatpay-signature")
        serial = lowered.get("wechatpay-serial")

        if not (timestamp and nonce and signature and serial):
            raise SignatureVerificationFailed("Missing WeChat Pay signature headers")

        if signature.startswith(SIGNATURE_PROBE_PREFIX):
            raise SignatureVerificationFailed("Signature probe request")

        try:
            sent_at = int(timestamp)
        except ValueError:
            raise SignatureVerificationFailed("Invalid timestamp header")

        if abs(self._clock() - sent_at) > self.timestamp_tolerance_seconds:
            raise ReplaySuspected(f"Notification timestamp {sent_at} outside the accepted window")

        if serial != self.platform_cert_serial_no:
            raise SignatureVerificationFailed(f"Unknown platform certificate serial {serial}")

        self.verify(f"{timestamp}\n{nonce}\n{body}\n", signature)

        try:
            resource = json.loads(body)["resource"]
            transaction = json.loads(self.decrypt(resource))
            order = self._to_provider_order(transaction)
        except (ValueError, KeyError, TypeError, AttributeError, ValidationError) as e:
            raise SignatureVerificationFailed(f"Malformed notification payload: {e.__class__.__name__}")

        logger.info(
            f"Verified WeChat Pay notification for {order.merchant_order_id}: "
            f"{order.trade_state.value}"
        )
        return order

    def verify(self, message: str, signature: str) -> None:
        try:
            self.platform_public_key.verify(
                base64.b64decode(signature, validate=True),
                message.encode(),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except (InvalidSignature, binascii.Error, ValueError):
            raise SignatureVerificationFailed("Notification signature does not verify")

    def decrypt(self, resource: Mapping[str, Any]) -> str:
        associated_data = resource.get("associated_data") or ""
        try:
            plaintext = AESGCM(self.api_v3_key).decrypt(
                resource["nonce"].encode(),
                base64.b64decode(resource["ciphertext"]),
                associated_data.encode() if associated_data else None,
            )
        except (InvalidTag, binascii.Error):
            raise SignatureVerificationFailed("Notification resource failed to decrypt")
        return plaintext.decode()

    @staticmethod
    def _to_provider_order(data: Mapping[str, Any]) -> ProviderOrder:
        amount = data.get("amount") or {}
        return ProviderOrder(
            merchant_order_id=data["out_trade_no"],
            trade_state=data["trade_state"],
            transaction_id=data.get("transaction_id"),
            amount_total=amount.get("total"),
            success_time=data.get("success_time"),
        )


def create_payment_provider(config, http_client: httpx.AsyncClient) -> Optional[PaymentProvider]:
    """WeChat Pay provider from configuration, or None when it is not configured"""
    required = (
        config.WECHAT_PAY_MCHID,
        config.WECHAT_PAY_API_V3_KEY,
        config.WECHAT_PAY_PRIVATE_KEY,
        config.WECHAT_PAY_PLATFORM_CERT,
    )
    if not all(required):
        logger.warning("WeChat Pay is not configured, payment orders are disabled")
        return None

    return WeChatPayProvider(
        http_client=http_client,
        appid=config.WECHAT_PAY_APPID,
        mchid=config.WECHAT_PAY_MCHID,
        api_v3_key=config.WECHAT_PAY_API_V3_KEY,
        serial_no=config.WECHAT_PAY_SERIAL_NO,
        private_key_pem=config.WECHAT_PAY_PRIVATE_KEY,
        platform_cert_pem=config.WECHAT_PAY_PLATFORM_CERT,
        platform_cert_serial_no=config.WECHAT_PAY_PLATFORM_CERT_SERIAL_NO,
        notify_url=config.WECHAT_PAY_NOTIFY_URL,
        base_url=config.WECHAT_PAY_BASE_URL,
        timestamp_tolerance_seconds=config.WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS,
    )
