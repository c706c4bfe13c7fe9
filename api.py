"""HTTP entry point

Serves the Accounts, Jobs and Payments APIs. With WORKERS_ENABLED the
scheduler, worker queue and sweeps run in this process as well; run
``python -m src.worker.task_scheduler`` for a worker-only replica.
"""

import uvicorn
from config import ApplicationConfig
from src.api.app import create_app

app = create_app(ApplicationConfig)

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=ApplicationConfig.API_HOST,
        port=ApplicationConfig.API_PORT,
        log_level=ApplicationConfig.LOG_LEVEL.lower(),
    )
