"""Integration test fixtures using an in-process Copycopter server."""

import json
import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, List

import pytest

SKIP_INTEGRATION = os.environ.get("SKIP_INTEGRATION_TESTS", "false").lower() == "true"

skip_integration = pytest.mark.skipif(
    SKIP_INTEGRATION, reason="Integration tests disabled"
)


class FakeCopycopterServer:
    """Serves the blurb API from memory on a random local port."""

    def __init__(self):
        self.published: Dict[str, Any] = {}
        self.drafts: Dict[str, Any] = {}
        self.status = 200
        self.requests: List[Dict[str, Any]] = []
        self.deploys = 0
        self.etag = '"1"'
        self._server = ThreadingHTTPServer(("127.0.0.1", 0), self._handler_class())
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)

    @property
    def port(self) -> int:
        return self._server.server_address[1]

    def start(self) -> "FakeCopycopterServer":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._server.shutdown()
        self._server.server_close()

    def _handler_class(self):
        server = self

        class Handler(BaseHTTPRequestHandler):
            def log_message(self, format, *args):
                pass

            def _record(self, body=None):
                server.requests.append(
                    {
                        "method": self.command,
                        "path": self.path,
                        "headers": dict(self.headers),
                        "body": body,
                    }
                )

            def _reply(self, status, payload=None, headers=None):
                data = json.dumps(payload).encode("utf-8") if payload is not None else b""
                self.send_response(status)
                for name, value in (headers or {}).items():
                    self.send_header(name, value)
                self.send_header("Content-Length", str(len(data)))
                self.end_headers()
                self.wfile.write(data)

            def do_GET(self):
                self._record()
                if server.status != 200:
                    self._reply(server.status, {"error": "unavailable"})
                    return
                if self.headers.get("If-None-Match") == server.etag:
                    self._reply(304)
                    return
                if self.path.endswith("/published_blurbs"):
                    payload = server.published
                else:
                    payload = server.drafts
                self._reply(200, payload, {"ETag": server.etag})

            def do_POST(self):
                length = int(self.headers.get("Content-Length") or 0)
                body = self.rfile.read(length).decode("utf-8") if length else ""
                self._record(body)
                if self.path.endswith("/draft_blurbs"):
                    for key, value in json.loads(body).items():
                        server.drafts.setdefault(key, value)
                    self._reply(201, {})
                elif self.path.endswith("/deploys"):
                    server.deploys += 1
                    server.published = dict(server.drafts)
                    self._reply(201, {})
                else:
                    self._reply(404, {})

        return Handler


@pytest.fixture
def copycopter_server():
    server = FakeCopycopterServer().start()
    yield server
    server.stop()


@pytest.fixture
def server_config(default_config, copycopter_server):
    default_config.host = "127.0.0.1"
    default_config.port = copycopter_server.port
    default_config.api_key = "abc123"
    default_config.polling_delay = 0.05
    default_config.lookup_timeout = 2
    yield default_config
    default_config.shutdown()
