"""
Async client for the prover mock REST API.

Mirrors the polling workflow of the remote service's SDK: upload the image
and input, create a session, poll its status until it is terminal, then
download the receipt. Pass ``transport=httpx.ASGITransport(app=...)`` to talk
to an in-process application.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx

from prover_mock.models import JobState, Receipt, SessionStatus, SnarkReceipt, SnarkStatus

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """Non-2xx response from the server."""

    def __init__(self, status_code: int, payload: Dict[str, Any]):
        self.status_code = status_code
        self.payload = payload
        self.error_code = payload.get("error_code")
        super().__init__(f"{status_code} {self.error_code}: {payload.get('message')}")


class PollTimeout(TimeoutError):
    pass


class SessionFailed(Exception):
    """A session reached the failed state; carries the server's error message."""

    def __init__(self, session_id: str, error_msg: Optional[str]):
        self.session_id = session_id
        self.error_msg = error_msg
        super().__init__(f"Session {session_id} failed: {error_msg}")


class ProverClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8081",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        api_prefix: str = "/v1",
        timeout: float = 30.0,
        poll_interval: float = 0.5,
    ):
        self.poll_interval = poll_interval
        self._prefix = api_prefix
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "ProverClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        response = await self._http.request(method, f"{self._prefix}{path}", **kwargs)
        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {"message": response.text}
            raise ClientError(response.status_code, payload)
        return response

    # Artifacts

    async def upload_image(self, image: bytes) -> str:
        response = await self._request("POST", "/images", content=image)
        return response.json()["digest"]

    async def upload_input(self, input_data: bytes) -> str:
        response = await self._request("POST", "/inputs", content=input_data)
        return response.json()["digest"]

    async def has_image(self, digest: str) -> bool:
        try:
            await self._request("GET", f"/images/{digest}")
        except ClientError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    # Proof sessions

    async def create_session(self, image_digest: str, input_digest: str) -> str:
        response = await self._request("POST", "/sessions/create", json={"img": image_digest, "input": input_digest})
        return response.json()["uuid"]

    async def session_status(self, session_id: str) -> SessionStatus:
        response = await self._request("GET", f"/sessions/status/{session_id}")
        return SessionStatus.model_validate(response.json())

    async def session_logs(self, session_id: str) -> str:
        response = await self._request("GET", f"/sessions/logs/{session_id}")
        return response.text

    async def download_receipt(self, session_id: str) -> Receipt:
        response = await self._request("GET", f"/receipts/{session_id}")
        return Receipt.from_bytes(response.content)

    async def wait_for_session(self, session_id: str, timeout: Optional[float] = None) -> SessionStatus:
        return await self._poll(self.session_status, session_id, timeout)

    # SNARK conversions

    async def create_snark(self, session_id: str) -> str:
        response = await self._request("POST", "/snark/create", json={"session_id": session_id})
        return response.json()["uuid"]

    async def snark_status(self, snark_id: str) -> SnarkStatus:
        response = await self._request("GET", f"/snark/status/{snark_id}")
        return SnarkStatus.model_validate(response.json())

    async def download_snark_receipt(self, snark_id: str) -> SnarkReceipt:
        response = await self._request("GET", f"/snark/receipts/{snark_id}")
        return SnarkReceipt.from_bytes(response.content)

    async def wait_for_snark(self, snark_id: str, timeout: Optional[float] = None) -> SnarkStatus:
        return await self._poll(self.snark_status, snark_id, timeout)

    async def _poll(self, fetch, job_id: str, timeout: Optional[float]):
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            status = await fetch(job_id)
            if JobState(status.status).is_terminal:
                return status
            if deadline is not None and time.monotonic() >= deadline:
                raise PollTimeout(f"{job_id} still {status.status} after {timeout}s")
            logger.debug("Job %s is %s, polling again", job_id, status.status)
            await asyncio.sleep(self.poll_interval)

    async def prove(self, image: bytes, input_data: bytes, timeout: Optional[float] = None) -> Receipt:
        """Upload, create a session, wait for it and download the receipt."""
        image_digest = await self.upload_image(image)
        input_digest = await self.upload_input(input_data)
        session_id = await self.create_session(image_digest, input_digest)
        status = await self.wait_for_session(session_id, timeout=timeout)
        if status.status != JobState.SUCCEEDED:
            raise SessionFailed(session_id, status.error_msg)
        return await self.download_receipt(session_id)
