"""HTTP transport for the Copycopter API.

The client downloads blurbs (published or draft, depending on whether
the environment is public), uploads new default blurbs, and triggers
deploys. It performs exactly one request per call; retrying failed
requests is left to :class:`~copycopter_client.sync.Sync`.

Every request goes to ``{protocol}://{host}:{port}/api/v2/projects/{api_key}/...``,
identifies the caller through the ``User-Agent`` and ``X-Client-*``
headers, optionally routes through an HTTP proxy, and is bounded by the
open and read timeouts.
"""

import base64
import http.client
import json
import socket
import ssl
import threading
from typing import Any, Dict, Mapping, Optional, Tuple

from copycopter_client.exceptions import (
    ConnectTimeoutException,
    HttpStatusException,
    ReadTimeoutException,
)
from copycopter_client.logging import get_logger

_logger = get_logger("client")

_API_PATH = "/api/v2/projects"
_DEFAULT_PROXY_PORT = 80


class Client:
    """Authenticated transport for the Copycopter server.

    Args:
        options: A configuration snapshot, as produced by
            :meth:`Configuration.to_hash`.

    Example:
        >>> client = Client(configuration.to_hash())
        >>> blurbs = client.fetch()
        >>> blurbs["en.greeting"]
        'Hello'
    """

    def __init__(self, options: Mapping[str, Any]):
        self._api_key = options.get("api_key")
        self._host = options["host"]
        self._port = int(options["port"])
        self._protocol = options["protocol"]
        self._public = bool(options.get("public", True))
        self._open_timeout = options["http_open_timeout"]
        self._read_timeout = options["http_read_timeout"]
        self._proxy_host = options.get("proxy_host")
        self._proxy_port = options.get("proxy_port")
        self._proxy_user = options.get("proxy_user")
        self._proxy_pass = options.get("proxy_pass")
        self._client_name = options.get("client_name")
        self._client_version = options.get("client_version")
        self._client_url = options.get("client_url")

        self._lock = threading.Lock()
        self._etag: Optional[str] = None
        self._last_payload: Dict[str, Any] = {}

    @property
    def base_url(self) -> str:
        return f"{self._protocol}://{self._host}:{self._port}"

    @property
    def secure(self) -> bool:
        return self._protocol == "https"

    @property
    def public(self) -> bool:
        """Whether published (rather than draft) blurbs are downloaded."""
        return self._public

    @property
    def uses_proxy(self) -> bool:
        return bool(self._proxy_host)

    def fetch(self) -> Dict[str, Any]:
        """Download the full set of blurbs.

        Sends the ETag of the previous download; if the server answers
        ``304 Not Modified`` the previous payload is returned again.

        Returns:
            Mapping of ``"<locale>.<key>"`` to blurb content.

        Raises:
            ConnectTimeoutException: If no connection could be made.
            ReadTimeoutException: If the server did not answer in time.
            HttpStatusException: On an unexpected status or a body that
                is not a JSON object.
        """
        resource = "published_blurbs" if self._public else "draft_blurbs"
        headers = {}
        with self._lock:
            if self._etag:
                headers["If-None-Match"] = self._etag

        status, response_headers, body = self._request(
            "GET", self._project_path(resource), headers=headers
        )

        if status == 304:
            _logger.debug("Blurbs not modified since last download")
            with self._lock:
                return dict(self._last_payload)

        self._check_status(status, body, "download")
        payload = self._decode(status, body)

        with self._lock:
            self._etag = response_headers.get("etag")
            self._last_payload = payload
        _logger.debug("Downloaded %d blurbs", len(payload))
        return dict(payload)

    def push(self, changes: Mapping[str, Any]) -> None:
        """Upload draft blurbs.

        Args:
            changes: Mapping of ``"<locale>.<key>"`` to default content.
        """
        body = json.dumps(dict(changes))
        status, _, response_body = self._request(
            "POST", self._project_path("draft_blurbs"), body=body
        )
        self._check_status(status, response_body, "upload")
        _logger.debug("Uploaded %d blurbs", len(changes))

    def deploy(self) -> None:
        """Promote the current draft blurbs to published."""
        status, _, body = self._request("POST", self._project_path("deploys"))
        self._check_status(status, body, "deploy")
        _logger.info("Deployed blurbs")

    def _project_path(self, resource: str) -> str:
        return f"{_API_PATH}/{self._api_key}/{resource}"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "User-Agent": f"{self._client_name}/{self._client_version}",
            "X-Client-Name": str(self._client_name),
            "X-Client-Version": str(self._client_version),
            "X-API-Key": str(self._api_key),
        }
        if self._client_url:
            headers["X-Client-URL"] = str(self._client_url)
        return headers

    def _proxy_authorization(self) -> Dict[str, str]:
        if not self._proxy_user:
            return {}
        credentials = f"{self._proxy_user}:{self._proxy_pass or ''}"
        token = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        return {"Proxy-Authorization": f"Basic {token}"}

    def _new_connection(self) -> http.client.HTTPConnection:
        if self.uses_proxy:
            target_host = self._proxy_host
            target_port = int(self._proxy_port or _DEFAULT_PROXY_PORT)
        else:
            target_host = self._host
            target_port = self._port

        if self.secure:
            connection = http.client.HTTPSConnection(
                target_host,
                target_port,
                timeout=self._open_timeout,
                context=ssl.create_default_context(),
            )
            if self.uses_proxy:
                connection.set_tunnel(
                    self._host, self._port, headers=self._proxy_authorization()
                )
        else:
            connection = http.client.HTTPConnection(
                target_host, target_port, timeout=self._open_timeout
            )
        return connection

    def _connect(self) -> http.client.HTTPConnection:
        connection = self._new_connection()
        try:
            connection.connect()
        except socket.timeout as e:
            connection.close()
            raise ConnectTimeoutException(
                f"Timed out connecting to {self.base_url} "
                f"after {self._open_timeout}s",
                cause=e,
            ) from e
        except OSError as e:
            connection.close()
            raise ConnectTimeoutException(
                f"Could not connect to {self.base_url}: {e}", cause=e
            ) from e
        connection.sock.settimeout(self._read_timeout)
        return connection

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Dict[str, str], str]:
        request_headers = self._headers()
        if headers:
            request_headers.update(headers)
        if body is not None:
            request_headers["Content-Type"] = "application/json"

        url = path
        if self.uses_proxy and not self.secure:
            # Plain HTTP through a proxy uses the absolute form.
            url = f"{self.base_url}{path}"
            request_headers.update(self._proxy_authorization())

        connection = self._connect()
        try:
            connection.request(method, url, body=body, headers=request_headers)
            response = connection.getresponse()
            status = response.status
            raw = response.read()
            response_headers = {k.lower(): v for k, v in response.getheaders()}
        except socket.timeout as e:
            raise ReadTimeoutException(
                f"{method} {path} timed out after {self._read_timeout}s", cause=e
            ) from e
        except (http.client.HTTPException, OSError) as e:
            raise ReadTimeoutException(
                f"{method} {path} failed while reading the response: {e}", cause=e
            ) from e
        finally:
            connection.close()

        try:
            data = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise HttpStatusException(
                f"{method} {path} returned a body that is not valid UTF-8",
                status_code=status,
                cause=e,
            ) from e
        return status, response_headers, data

    @staticmethod
    def _check_status(status: int, body: str, action: str) -> None:
        if 200 <= status < 300:
            return
        raise HttpStatusException(
            f"Copycopter {action} failed with status {status}: {body}",
            status_code=status,
            body=body,
        )

    @staticmethod
    def _decode(status: int, body: str) -> Dict[str, Any]:
        try:
            payload = json.loads(body) if body else {}
        except json.JSONDecodeError as e:
            raise HttpStatusException(
                f"Failed to parse blurbs: {e}", status_code=status, body=body, cause=e
            ) from e
        if not isinstance(payload, dict):
            raise HttpStatusException(
                "Expected a JSON object of blurbs", status_code=status, body=body
            )
        return payload
