import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./test.db")
    DB_POOL_SIZE = data.get("DB_POOL_SIZE", 20)
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    WORKERS_ENABLED = bool(data.get("WORKERS_ENABLED", True))

    # Task scheduler
    SCHEDULER_INTERVAL_SECONDS = data.get("SCHEDULER_INTERVAL_SECONDS", 5)
    SCHEDULER_BATCH_SIZE = data.get("SCHEDULER_BATCH_SIZE", 10)
    RECOVERY_INTERVAL_SECONDS = data.get("RECOVERY_INTERVAL_SECONDS", 30)
    JOB_TIMEOUT_MINUTES = data.get("JOB_TIMEOUT_MINUTES", 10)

    # Worker queue
    QUEUE_CONCURRENCY = data.get("QUEUE_CONCURRENCY", 5)
    QUEUE_MAX_SIZE = data.get("QUEUE_MAX_SIZE", 100)
    HEARTBEAT_INTERVAL_SECONDS = data.get("HEARTBEAT_INTERVAL_SECONDS", 300)

    # Generation API (rate limit is shared by every job in the process)
    RATE_LIMIT_TOKENS = data.get("RATE_LIMIT_TOKENS", 20)
    RATE_LIMIT_INTERVAL_SECONDS = data.get("RATE_LIMIT_INTERVAL_SECONDS", 1.0)
    GENERATION_TIMEOUT_SECONDS = data.get("GENERATION_TIMEOUT_SECONDS", 120)
    GENERATION_MAX_ATTEMPTS = data.get("GENERATION_MAX_ATTEMPTS", 3)
    GENERATION_INITIAL_RETRY_DELAY = data.get("GENERATION_INITIAL_RETRY_DELAY", 2.0)  # seconds
    GENERATION_MAX_RETRY_DELAY = data.get("GENERATION_MAX_RETRY_DELAY", 30.0)  # seconds
    GENERATION_JOB_CONCURRENCY = data.get("GENERATION_JOB_CONCURRENCY", 4)
    SEEDREAM_BASE_URL = data.get("SEEDREAM_BASE_URL", "https://ark.cn-beijing.volces.com/api/v3")
    SEEDREAM_API_KEY = data.get("SEEDREAM_API_KEY", "")
    SEEDREAM_MODEL = data.get("SEEDREAM_MODEL", "doubao-seedream-4-0-250828")

    # Object storage
    STORAGE_UPLOAD_URL = data.get("STORAGE_UPLOAD_URL", "http://localhost:9000/uploads")
    STORAGE_PUBLIC_URL = data.get("STORAGE_PUBLIC_URL", "http://localhost:9000/uploads")
    STORAGE_API_KEY = data.get("STORAGE_API_KEY", "")

    # WeChat Pay v3
    WECHAT_PAY_BASE_URL = data.get("WECHAT_PAY_BASE_URL", "https://api.mch.weixin.qq.com")
    WECHAT_PAY_APPID = data.get("WECHAT_PAY_APPID", "")
    WECHAT_PAY_MCHID = data.get("WECHAT_PAY_MCHID", "")
    WECHAT_PAY_API_V3_KEY = data.get("WECHAT_PAY_API_V3_KEY", "")
    WECHAT_PAY_SERIAL_NO = data.get("WECHAT_PAY_SERIAL_NO", "")
    WECHAT_PAY_PRIVATE_KEY = data.get("WECHAT_PAY_PRIVATE_KEY", "")
    WECHAT_PAY_PLATFORM_CERT = data.get("WECHAT_PAY_PLATFORM_CERT", "")
    WECHAT_PAY_PLATFORM_CERT_SERIAL_NO = data.get("WECHAT_PAY_PLATFORM_CERT_SERIAL_NO", "")
    WECHAT_PAY_NOTIFY_URL = data.get("WECHAT_PAY_NOTIFY_URL", "")
    WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS = data.get("WEBHOOK_TIMESTAMP_TOLERANCE_SECONDS", 300)

    # Payment orders (amounts in minor units, 100 = 1 CNY)
    ORDER_EXPIRE_MINUTES = data.get("ORDER_EXPIRE_MINUTES", 10)
    ORDER_EXPIRY_INTERVAL_SECONDS = data.get("ORDER_EXPIRY_INTERVAL_SECONDS", 60)
    ORDER_EXPIRY_BATCH_SIZE = data.get("ORDER_EXPIRY_BATCH_SIZE", 50)
    RECHARGE_MIN_AMOUNT = data.get("RECHARGE_MIN_AMOUNT", 100)
    RECHARGE_MAX_AMOUNT = data.get("RECHARGE_MAX_AMOUNT", 10_000_000)

    # Ledger reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
