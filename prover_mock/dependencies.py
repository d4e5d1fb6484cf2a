from fastapi import Request

from prover_mock.services.state import ServerState


def get_server_state(request: Request) -> ServerState:
    """Resolve the ServerState owned by the running application."""
    return request.app.state.server
