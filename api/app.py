"""
linkdesk Review Service

FastAPI app that:
1. Fetches orders from the Order API and reconciles submissions onto link slots
2. Serves the review table view model
3. Proxies reviewer mutations with fire-and-refetch
4. Hosts bulk analysis qualification and draft autosave endpoints
"""

import logging
import sys
from datetime import datetime

from fastapi import FastAPI

from linkdesk import __version__
from linkdesk.database import check_db_connection, init_db
from linkdesk.utils.config import get_settings

from api import drafts, qualification, review

settings = get_settings()

# Configure logging to stdout
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(
    title="linkdesk Review Service",
    description="Order review and site submission reconciliation",
    version=__version__,
)

# Drafts first: /api/orders/drafts must not be read as an order id
app.include_router(drafts.router)
app.include_router(review.router)
app.include_router(qualification.router)


# ============================================================================
# STARTUP - Initialize Database
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Create the call log table on startup."""
    if not settings.CALL_LOG_ENABLED:
        logger.info("Call log disabled, skipping database init")
        return

    logger.info("Initializing database...")
    try:
        init_db()
        if check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed - continuing anyway")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        # The call log is optional; the service works without it


@app.get("/api/health")
def health():
    """Health check including database status."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "database": "connected" if check_db_connection() else "disconnected",
    }


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
    )
