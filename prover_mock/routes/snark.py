import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from pydantic import BaseModel, model_validator

from prover_mock.dependencies import get_server_state
from prover_mock.models import JobState, SnarkReceipt, SnarkStatus
from prover_mock.routes.sessions import CreatedResponse
from prover_mock.services.state import ServerState

logger = logging.getLogger(__name__)
router = APIRouter()


class SnarkCreateRequest(BaseModel):
    """Reference the receipt to compress, either through its session or its digest."""
    session_id: Optional[str] = None
    receipt: Optional[str] = None

    @model_validator(mode="after")
    def check_exactly_one_reference(self):
        if (self.session_id is None) == (self.receipt is None):
            raise ValueError("provide exactly one of session_id or receipt")
        return self


@router.post("/snark/create", response_model=CreatedResponse)
async def create_snark(req: SnarkCreateRequest, state: ServerState = Depends(get_server_state)):
    if req.session_id is not None:
        # NotFound / NotReady when the session has no receipt yet
        receipt_digest = state.sessions.result(req.session_id)
    else:
        receipt_digest = req.receipt
    job_id = state.snarks.create(receipt_digest, session_id=req.session_id)
    logger.info(f"Created SNARK conversion {job_id} for receipt {receipt_digest}")
    return CreatedResponse(uuid=job_id)


@router.get("/snark/status/{job_id}", response_model=SnarkStatus)
async def snark_status(job_id: str, request: Request, state: ServerState = Depends(get_server_state)):
    job = state.snarks.get(job_id)
    output = None
    receipt_url = None
    if job.state == JobState.SUCCEEDED:
        snark_receipt = SnarkReceipt.from_bytes(state.store.get(job.result_digest))
        output = snark_receipt.snark.model_dump()
        receipt_url = str(request.url_for("download_snark_receipt", job_id=job_id))
    return SnarkStatus(
        uuid=job.job_id,
        status=job.state,
        output=output,
        receipt_url=receipt_url,
        error_msg=job.error_msg,
        elapsed_ms=job.duration_ms,
    )


@router.get("/snark/receipts/{job_id}", name="download_snark_receipt")
async def download_snark_receipt(job_id: str, state: ServerState = Depends(get_server_state)):
    digest = state.snarks.result(job_id)
    return Response(content=state.store.get(digest), media_type="application/octet-stream")
