from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response
import logging
from pydantic import BaseModel

from prover_mock.dependencies import get_server_state
from prover_mock.models import JobState, SessionStatus
from prover_mock.services.state import ServerState


class SessionCreateRequest(BaseModel):
    """Request model for creating a proof session."""
    img: str
    input: str


class CreatedResponse(BaseModel):
    uuid: str


logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sessions/create", response_model=CreatedResponse)
async def create_session(req: SessionCreateRequest, state: ServerState = Depends(get_server_state)):
    """
    Create a proof session over previously uploaded artifacts.
    The session starts queued; poll its status until it is terminal.
    """
    job_id = state.sessions.create(req.img, req.input)
    logger.info(f"Created session {job_id} for image {req.img}")
    return CreatedResponse(uuid=job_id)


@router.get("/sessions")
async def list_sessions(state: ServerState = Depends(get_server_state)):
    res = []
    for job in state.sessions.list():
        res.append({
            "uuid": job.job_id,
            "status": JobState(job.state).value,
            "img": job.image_digest,
            "input": job.input_digest,
            "created_at": job.created_at.isoformat(),
            "updated_at": job.updated_at.isoformat(),
        })
    return {"sessions": res}


@router.get("/sessions/status/{job_id}", response_model=SessionStatus)
async def session_status(job_id: str, request: Request, state: ServerState = Depends(get_server_state)):
    job = state.sessions.get(job_id)
    receipt_url = None
    if job.state == JobState.SUCCEEDED:
        receipt_url = str(request.url_for("download_receipt", job_id=job_id))
    return SessionStatus(
        uuid=job.job_id,
        status=job.state,
        receipt_url=receipt_url,
        error_msg=job.error_msg,
        elapsed_ms=job.duration_ms,
    )


@router.get("/sessions/logs/{job_id}", response_class=PlainTextResponse)
async def session_logs(job_id: str, state: ServerState = Depends(get_server_state)):
    job = state.sessions.get(job_id)
    lines = [f"{entry['timestamp']} {entry['from']} -> {entry['to']} {entry['reason']}".rstrip() for entry in job.history]
    lines.extend(job.logs)
    return "\n".join(lines) + "\n" if lines else ""


@router.get("/receipts/{job_id}", name="download_receipt")
async def download_receipt(job_id: str, state: ServerState = Depends(get_server_state)):
    """Serialized receipt of a succeeded session; 409 until then."""
    digest = state.sessions.result(job_id)
    return Response(content=state.store.get(digest), media_type="application/octet-stream")
