from .unit_of_work import SqlAlchemyUnitOfWork
from .rate_limiter import TokenBucketRateLimiter
from .generation_client import SeedreamGenerationClient, render_prompt
from .storage_client import HttpStorageService
from .wechat_pay import WeChatPayProvider, create_payment_provider

__all__ = [
    "SqlAlchemyUnitOfWork",
    "TokenBucketRateLimiter",
    "SeedreamGenerationClient",
    "render_prompt",
    "HttpStorageService",
    "WeChatPayProvider",
    "create_payment_provider",
]
