"""Authorization sidecar and CLI entry points."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Request, Response

from .audit import AuditLogger
from .cache import Evaluator
from .exceptions import IPACLException, InvalidAddressError
from .middleware import X_FORWARDED_FOR_HEADER, remote_address
from .policy import Policy, load_policy
from .types import Metrics

ORIGINAL_URI_HEADER = "x-original-uri"
REAL_IP_HEADER = "x-real-ip"


class AuthorizeServer:
    """Answers ``auth_request`` style subrequests from a reverse proxy."""

    def __init__(self, policy: Policy, evaluate: Optional[Evaluator] = None) -> None:
        self.policy = policy
        self.evaluate = evaluate or policy.build()
        self.audit = AuditLogger(policy.logging, policy.version)
        self.metrics = Metrics()

    def address_of(self, request: Request) -> Optional[str]:
        if self.policy.trust_forwarded and X_FORWARDED_FOR_HEADER not in request.headers:
            real_ip = request.headers.get(REAL_IP_HEADER)
            if real_ip:
                return real_ip.strip()
        return remote_address(request, trust_forwarded=self.policy.trust_forwarded)

    def authorize(self, request: Request) -> Response:
        path = request.headers.get(ORIGINAL_URI_HEADER) or request.query_params.get("path") or "/"
        path = path.split("?", 1)[0]
        address = self.address_of(request)
        denied = self.policy.respond_with
        try:
            if address is None:
                raise InvalidAddressError(message="Missing remote address")
            allowed = self.evaluate(path, address)
        except InvalidAddressError as exc:
            self.metrics.errors += 1
            self.audit.log(path=path, address=address, decision="deny", status=denied, reason=exc.message)
            return Response(status_code=denied)
        if allowed:
            self.metrics.allowed += 1
            self.audit.log(path=path, address=address, decision="allow", status=204)
            return Response(status_code=204)
        self.metrics.denied += 1
        self.audit.log(path=path, address=address, decision="deny", status=denied)
        return Response(status_code=denied)


def create_app(server: AuthorizeServer) -> FastAPI:
    app = FastAPI()

    @app.get("/healthz")
    async def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/metrics")
    async def metrics() -> dict[str, Any]:
        return server.metrics.to_dict()

    @app.get("/authorize")
    async def authorize(request: Request) -> Response:
        return server.authorize(request)

    return app


async def run_serve(args: argparse.Namespace) -> None:
    policy = load_policy(args.policy)
    app = create_app(AuthorizeServer(policy))
    config = uvicorn.Config(app, host=args.host, port=args.port, log_level="info")
    server = uvicorn.Server(config)
    await server.serve()


def run_check(args: argparse.Namespace) -> int:
    try:
        evaluate = load_policy(args.policy).build()
        verdict = evaluate.explain(args.path, args.address)
    except IPACLException as exc:
        print("ERROR:", exc, file=sys.stderr)
        return 2
    print("ALLOW" if verdict.allowed else "DENY", verdict.range)
    return 0 if verdict.allowed else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ipacl", description="IP access control for resource paths")
    sub = parser.add_subparsers(dest="command")

    serve_cmd = sub.add_parser("serve", help="Run the authorization sidecar")
    serve_cmd.add_argument("--policy", required=True)
    serve_cmd.add_argument("--host", default="0.0.0.0")
    serve_cmd.add_argument("--port", type=int, default=8788)

    check_cmd = sub.add_parser("check", help="Evaluate one path and address against a policy")
    check_cmd.add_argument("--policy", required=True)
    check_cmd.add_argument("--path", required=True)
    check_cmd.add_argument("--address", required=True)

    return parser


def cli_main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "serve":
        asyncio.run(run_serve(args))
    elif args.command == "check":
        return run_check(args)
    else:
        parser.print_help()
    return 0
