"""
Server entry point for Expense Ledger.

Run with:
    python -m app.main
or:
    uvicorn app.main:app --host 0.0.0.0 --port 8000

Configuration comes from the environment (see expense_ledger.config).
JWT_SECRET must be set; startup fails fast without it.
"""

import logging

import uvicorn

from expense_ledger.api import create_app
from expense_ledger.config import get_settings, require_valid_settings


require_valid_settings()
settings = get_settings()

logging.basicConfig(
    level=settings.app.log_level,
    format="%(message)s",
)

app = create_app(settings=settings)


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.app.host,
        port=settings.app.port,
        log_level=settings.app.log_level.lower(),
    )
