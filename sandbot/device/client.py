"""HTTP client for a single sand table robot.

The client performs exactly one attempt per call and never interprets the
payload beyond decoding it; sequencing and retries live in the session.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from ..errors import DeviceRejected, ParseError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class DeviceClient:
    """Thin wrapper around the robot's REST surface."""

    def __init__(self, host: str, *, timeout: Optional[float] = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None) -> None:
        if not host:
            raise ValueError("host is required")
        self.host = host
        self.timeout = timeout
        self._http = session or requests.Session()

    @property
    def base_url(self) -> str:
        if self.host.startswith(("http://", "https://")):
            return self.host.rstrip("/")
        return f"http://{self.host}"

    # ------------------------------------------------------------------
    # Low level
    # ------------------------------------------------------------------
    def request(self, method: str, path: str, *, files: Optional[Dict[str, Any]] = None,
                expect: str = "json") -> Any:
        """Issue a single request and return the decoded body.

        ``expect`` is ``"json"``, ``"text"`` or ``"none"``.
        """
        url = f"{self.base_url}{path}"
        try:
            response = self._http.request(method, url, files=files, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        if not response.ok:
            raise TransportError(f"{method} {path} returned HTTP {response.status_code}")
        if expect == "none":
            return None
        if expect == "text":
            return response.text
        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(f"{method} {path} returned invalid JSON") from exc

    def _get_ok(self, path: str, action: str) -> Dict[str, Any]:
        data = self.request("GET", path)
        result = data.get("rslt") if isinstance(data, dict) else None
        if result != "ok":
            raise DeviceRejected(f"{action} failed: {result or 'Unknown error'}", reason=result)
        return data

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    def status(self) -> Dict[str, Any]:
        data = self.request("GET", "/status")
        if not isinstance(data, dict):
            raise ParseError("status response is not an object")
        return data

    def settings(self) -> Dict[str, Any]:
        data = self.request("GET", "/getsettings")
        if not isinstance(data, dict):
            raise ParseError("settings response is not an object")
        return data

    def file_list(self) -> Dict[str, Any]:
        return self._get_ok("/filelist/", "File list")

    def delete_file(self, fs_name: str, name: str) -> Dict[str, Any]:
        return self._get_ok(f"/deleteFile/{_seg(fs_name)}/{_seg(name)}", f"Delete {name}")

    def play_file(self, fs_name: str, name: str) -> None:
        self.request("GET", f"/playFile/{_seg(fs_name)}/{_seg(name)}", expect="none")

    def file_content(self, fs_name: str, name: str) -> str:
        return self.request("GET", f"/files/{_seg(fs_name)}/{_seg(name)}", expect="text")

    def upload(self, name: str, content: bytes | str, content_type: str = "text/plain") -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.request("POST", "/uploadtofileman", files={"file": (name, content, content_type)},
                     expect="none")

    def execute(self, command: str) -> None:
        logger.info("exec %s on %s", command, self.host)
        self.request("GET", f"/exec/{_seg(command)}", expect="none")


def _seg(text: str) -> str:
    return quote(str(text), safe="")


__all__ = ["DeviceClient", "DEFAULT_TIMEOUT"]
