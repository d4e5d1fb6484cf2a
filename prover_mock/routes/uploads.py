import logging

from fastapi import APIRouter, Depends, Request

from prover_mock.dependencies import get_server_state
from prover_mock.errors import ResourceExhaustion
from prover_mock.models import ArtifactInfo, UploadResponse
from prover_mock.services.state import ServerState

logger = logging.getLogger(__name__)
router = APIRouter()


async def _read_body(request: Request, limit: int) -> bytes:
    """Read the raw request body, refusing to buffer more than ``limit`` bytes."""
    buf = bytearray()
    async for chunk in request.stream():
        buf.extend(chunk)
        if len(buf) > limit:
            raise ResourceExhaustion(f"Upload exceeds the {limit} byte limit", status_code=413)
    return bytes(buf)


async def _store_upload(request: Request, state: ServerState, label: str) -> UploadResponse:
    data = await _read_body(request, state.settings.max_artifact_bytes)
    digest, created = state.store.put_new(data)
    logger.info(f"Uploaded {label} {digest} ({len(data)} bytes, new={created})")
    return UploadResponse(digest=digest, size_bytes=len(data), created=created)


@router.post("/images", response_model=UploadResponse)
async def upload_image(request: Request, state: ServerState = Depends(get_server_state)):
    """Store a guest program image and return its digest."""
    return await _store_upload(request, state, "image")


@router.get("/images/{digest}", response_model=ArtifactInfo)
async def image_info(digest: str, state: ServerState = Depends(get_server_state)):
    return state.store.stat(digest)


@router.post("/inputs", response_model=UploadResponse)
async def upload_input(request: Request, state: ServerState = Depends(get_server_state)):
    """Store guest input bytes and return their digest."""
    return await _store_upload(request, state, "input")


@router.get("/inputs/{digest}", response_model=ArtifactInfo)
async def input_info(digest: str, state: ServerState = Depends(get_server_state)):
    return state.store.stat(digest)
