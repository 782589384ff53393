import logging
from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.database import health_check
from ..version import __version__

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> JSONResponse:
    """Report service status; 503 when the database is unreachable."""
    db_ok = await health_check()
    body: Dict[str, Any] = {
        "status": "healthy" if db_ok else "degraded",
        "version": __version__,
        "database": "ok" if db_ok else "unreachable",
    }
    if not db_ok:
        logger.warning("Health check degraded: database unreachable")
    return JSONResponse(status_code=200 if db_ok else 503, content=body)
