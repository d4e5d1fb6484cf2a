from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from datetime import datetime
import logging

from prover_mock.dependencies import get_server_state
from prover_mock.services.state import ServerState

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/healthz")
async def health_check(state: ServerState = Depends(get_server_state)):
    """
    Health check endpoint
    Returns OK while both engines are started with every worker alive,
    503 DEGRADED otherwise
    """
    engines = {}
    for engine in (state.proof_engine, state.snark_engine):
        queue = engine.get_queue_status()
        engines[engine.name] = {
            "healthy": engine.healthy,
            "live_workers": queue["live_workers"],
            "dead_workers": queue["dead_workers"],
            "queued_jobs": queue["queued_jobs"],
        }
    healthy = state.started and all(e["healthy"] for e in engines.values())
    logger.debug("Health check requested (healthy=%s)", healthy)

    body = {
        "status": "OK" if healthy else "DEGRADED",
        "timestamp": datetime.now().isoformat(),
        "service": "prover-mock-server",
        "started": state.started,
        "engines": engines,
    }
    if not healthy:
        logger.warning("Health check degraded: %s", engines)
        return JSONResponse(status_code=503, content=body)
    return body
