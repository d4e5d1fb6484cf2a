from fastapi import APIRouter, Depends
from datetime import datetime, timezone
import logging
import platform
import sys

from prover_mock.dependencies import get_server_state
from prover_mock.services.state import ServerState

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/server/info")
async def server_info(state: ServerState = Depends(get_server_state)):
    """
    Server information endpoint
    Returns server details, queue depths and artifact store usage
    """
    logger.info("Server info requested")
    return {
        "service": "prover-mock-server",
        "version": state.settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "system": {
            "platform": platform.platform(),
            "python_version": sys.version,
            "architecture": platform.architecture()[0]
        },
        "status": "running" if state.started else "stopped",
        **state.describe(),
    }
