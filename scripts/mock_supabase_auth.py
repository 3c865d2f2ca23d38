#!/usr/bin/env python3
"""Stand-in for Supabase ``/auth/v1/user`` during local runs of the gigboard API.

Fixed tokens map to seeded phone users; ``phone:<digits>`` tokens mint a stable
user per phone number so several workers can apply to the same job.
"""

from __future__ import annotations

import argparse
import hashlib
import json
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

SEEDED_USERS: dict[str, dict[str, object]] = {
    "employer-token": {
        "id": "11111111-1111-1111-1111-111111111111",
        "phone": "+15550000001",
        "user_metadata": {"name": "Employer"},
    },
    "worker-token": {
        "id": "22222222-2222-2222-2222-222222222222",
        "phone": "+15550000002",
        "user_metadata": {"name": "Worker"},
    },
    "worker2-token": {
        "id": "33333333-3333-3333-3333-333333333333",
        "phone": "+15550000003",
        "user_metadata": {"name": "Second Worker"},
    },
}


def user_payload_for_token(token: str) -> dict[str, object] | None:
    if token in SEEDED_USERS:
        return dict(SEEDED_USERS[token])

    prefix, separator, phone = token.partition(":")
    if prefix != "phone" or not separator:
        return None
    digits = phone.lstrip("+")
    if not digits.isdigit():
        return None
    digest = hashlib.sha256(digits.encode("utf-8")).hexdigest()
    user_id = f"{digest[:8]}-{digest[8:12]}-{digest[12:16]}-{digest[16:20]}-{digest[20:32]}"
    return {"id": user_id, "phone": f"+{digits}", "user_metadata": {}}


class MockSupabaseHandler(BaseHTTPRequestHandler):
    server_version = "MockSupabase/1.0"

    def do_GET(self) -> None:  # noqa: N802 - stdlib handler signature
        if self.path == "/healthz":
            self._write_json(HTTPStatus.OK, {"status": "ok"})
            return

        if self.path != "/auth/v1/user":
            self._write_json(HTTPStatus.NOT_FOUND, {"detail": "not found"})
            return

        authorization = self.headers.get("Authorization", "")
        if not authorization.lower().startswith("bearer "):
            self._write_json(HTTPStatus.UNAUTHORIZED, {"detail": "missing bearer token"})
            return

        user = user_payload_for_token(authorization.split(" ", maxsplit=1)[1].strip())
        if user is None:
            self._write_json(HTTPStatus.UNAUTHORIZED, {"detail": "invalid token"})
            return

        self._write_json(HTTPStatus.OK, user)

    def log_message(self, _: str, *args: object) -> None:
        if args:
            print("mock-supabase:", *args)

    def _write_json(self, status: HTTPStatus, payload: dict[str, object]) -> None:
        raw = json.dumps(payload).encode("utf-8")
        self.send_response(status.value)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock Supabase auth for the gigboard API.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=54321)
    args = parser.parse_args()

    server = ThreadingHTTPServer((args.host, args.port), MockSupabaseHandler)
    print(f"mock-supabase listening on http://{args.host}:{args.port}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
