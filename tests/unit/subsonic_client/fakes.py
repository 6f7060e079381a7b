"""Fake Subsonic server and request helpers for unit tests.

HTTP is simulated with httpx.MockTransport so the full request path
(builder, dispatcher, decoder, stream) runs without a real server.
"""

from typing import Any, Callable, Dict, List, Optional

import httpx

from src.subsonic_client.models import SubsonicConfig

Responder = Callable[[httpx.Request], httpx.Response]


def envelope(
    status: str = "ok",
    version: str = "1.16.1",
    error: Optional[Dict[str, Any]] = None,
    **payload: Any,
) -> Dict[str, Any]:
    """Build a JSON ``subsonic-response`` document."""
    body: Dict[str, Any] = {"status": status, "version": version, **payload}
    if error is not None:
        body["error"] = error
    return {"subsonic-response": body}


def respond_json(body: Dict[str, Any], status_code: int = 200) -> Responder:
    """Responder returning a fresh JSON response for every request."""
    return lambda request: httpx.Response(status_code, json=body)


def respond_error(code: int, message: str, version: str = "1.16.1") -> Responder:
    return respond_json(envelope("failed", version, error={"code": code, "message": message}))


class FakeSubsonicServer:
    """Callable MockTransport handler routing on the endpoint name.

    Unrouted ``ping`` requests succeed with ``version``; any other unrouted
    endpoint answers HTTP 404 without an envelope.
    """

    def __init__(self, version: str = "1.16.1"):
        self.version = version
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Responder] = {}

    def route(self, endpoint: str, responder: Responder) -> None:
        self.routes[endpoint] = responder

    def calls(self, endpoint: str) -> List[httpx.Request]:
        return [r for r in self.requests if endpoint_of(r) == endpoint]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = endpoint_of(request)
        responder = self.routes.get(endpoint)
        if responder is not None:
            return responder(request)
        if endpoint == "ping":
            return httpx.Response(200, json=envelope(version=self.version))
        return httpx.Response(404, text="Not Found")


def endpoint_of(request: httpx.Request) -> str:
    return request.url.path.rsplit("/", 1)[-1]


def make_config(**overrides: Any) -> SubsonicConfig:
    values = {
        "url": "https://music.example.com",
        "username": "testuser",
        "password": "testpass",
        "client_name": "unit-tests",
        "backoff_factor": 0.0,
    }
    values.update(overrides)
    return SubsonicConfig(**values)


