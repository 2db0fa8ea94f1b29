from fastapi import Request
from backend.realtime.hub import Hub


def get_hub(request: Request) -> Hub:
    return request.app.state.ws_hub
