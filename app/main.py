"""Ledgerline Payment Reconciler - Main Application."""

import logging.config

from fastapi import FastAPI

from app.api.routes import accounts, arrangements, payment_files
from app.core.config import settings
from app.core.database import Base, engine
from app.core.logging import setup_logging
from app.core.logging_config import LOGGING_CONFIG

# Configure logging before anything else
logging.config.dictConfig(LOGGING_CONFIG)
logger = setup_logging(settings.log_level)

# Create all tables on startup
logger.info("Creating database tables...")
Base.metadata.create_all(bind=engine)
logger.info("Database tables ready")

# -- OpenAPI tag metadata for Swagger grouping --
tags_metadata = [
    {
        "name": "Health",
        "description": "Service health and readiness checks.",
    },
    {
        "name": "Payment Files",
        "description": (
            "Upload CSV/XLSX/XLS payment files, dry-run validation, duplicate "
            "checks, batch status polling, and the upload template."
        ),
    },
    {
        "name": "Accounts",
        "description": (
            "Open collection accounts and read their balance, payment history, "
            "and activity timeline."
        ),
    },
    {
        "name": "Arrangements",
        "description": (
            "Record promise-to-pay and settlement arrangements, confirm "
            "payment, and run the overdue sweep."
        ),
    },
]


app = FastAPI(
    title="Ledgerline Payment Reconciler",
    description=(
        "## Payment File Reconciliation API\n\n"
        "Ingests externally produced payment files, validates every row "
        "against an alias-tolerant schema, and applies payments to account "
        "balances with per-record failure isolation.\n\n"
        "### Pipeline\n"
        "1. Fingerprint the upload (the same file is only accepted once)\n"
        "2. Parse CSV, XLSX or XLS and map headers to canonical fields\n"
        "3. Normalize amounts, dates and flags; validate account numbers\n"
        "4. Apply each valid record to its account and payment history\n\n"
        "### Quick Start\n"
        "```bash\n"
        "# 1. Download the template\n"
        "curl /api/v1/payment-files/template -o template.csv\n\n"
        "# 2. Upload a payment file\n"
        "curl -X POST /api/v1/payment-files/upload -F file=@payments.csv\n\n"
        "# 3. Default overdue promises to pay\n"
        "curl -X POST /api/v1/arrangements/sweep\n"
        "```\n"
    ),
    version="1.0.0",
    openapi_tags=tags_metadata,
    license_info={
        "name": "MIT",
    },
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(
    payment_files.router, prefix="/api/v1/payment-files", tags=["Payment Files"]
)
app.include_router(accounts.router, prefix="/api/v1/accounts", tags=["Accounts"])
app.include_router(
    arrangements.router, prefix="/api/v1/arrangements", tags=["Arrangements"]
)

logger.info("Ledgerline Reconciler API ready - routes registered")


@app.get("/health", tags=["Health"])
@app.get("/api/v1/health", tags=["Health"], include_in_schema=False)
def health_check():
    """Health check endpoint.

    Returns a simple JSON object confirming the service is running.
    Useful for load balancers and monitoring systems.
    """
    return {"status": "healthy", "service": "ledgerline-reconciler"}
