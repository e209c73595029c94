"""Starlette/FastAPI middleware enforcing an ipacl policy."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Union

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from .audit import AuditLogger
from .exceptions import InvalidAddressError
from .registry import Registry

FORBIDDEN = 403
X_FORWARDED_FOR_HEADER = "x-forwarded-for"

Evaluate = Callable[[str, str], bool]
StatusSelector = Union[int, Callable[[Request], int]]
ResponseHandler = Callable[[Request, int], Union[Response, Awaitable[Response]]]


def remote_address(request: Request, *, trust_forwarded: bool = True) -> Optional[str]:
    """Client address, preferring the first ``X-Forwarded-For`` entry."""

    if trust_forwarded:
        forwarded = request.headers.get(X_FORWARDED_FOR_HEADER)
        if forwarded:
            return forwarded.split(",")[0].strip()
    if request.client is None:
        return None
    return request.client.host


class ACLMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose remote address may not access the path.

    Either pass a prebuilt ``evaluate`` callable or a ``configure`` function
    that receives a fresh :class:`Registry`. Denied requests get an empty
    response with ``respond_with`` (a status code, or a function of the
    request returning one) unless ``handle_response`` builds the response.
    Requests with a missing or unparseable address are denied.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        evaluate: Optional[Evaluate] = None,
        configure: Optional[Callable[[Registry], object]] = None,
        respond_with: StatusSelector = FORBIDDEN,
        handle_response: Optional[ResponseHandler] = None,
        trust_forwarded: bool = True,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        super().__init__(app)
        if evaluate is None:
            registry = Registry()
            if configure is not None:
                configure(registry)
            evaluate = registry.build()
        self.evaluate = evaluate
        self.respond_with = respond_with
        self.handle_response = handle_response
        self.trust_forwarded = trust_forwarded
        self.audit = audit

    def is_allowed(self, path: str, address: Optional[str]) -> bool:
        if address is None:
            return False
        try:
            return self.evaluate(path, address)
        except InvalidAddressError:
            return False

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        address = remote_address(request, trust_forwarded=self.trust_forwarded)
        if self.is_allowed(path, address):
            return await call_next(request)
        status = self.respond_with(request) if callable(self.respond_with) else self.respond_with
        if self.audit is not None:
            self.audit.log(path=path, address=address, decision="deny", status=status)
        if self.handle_response is None:
            return Response(status_code=status)
        response = self.handle_response(request, status)
        if isinstance(response, Response):
            return response
        return await response
