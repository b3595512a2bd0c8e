"""Minimal client for the QEMU Machine Protocol (QMP) over a Unix socket."""

from __future__ import annotations

import json
import logging
import os
import socket
from typing import Any

log = logging.getLogger(__name__)


class QmpError(Exception):
    """Raised when talking to a QMP socket fails or QEMU reports an error."""


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class QmpClient:
    """Line-oriented JSON client for an already connected QMP socket.

    Use :func:`open_qmp` to connect and perform the capabilities handshake.
    """

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")

    def __enter__(self) -> QmpClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _handshake(self) -> None:
        greeting = self.read_response()
        if not isinstance(greeting, dict) or "QMP" not in greeting:
            raise QmpError(f"unexpected QMP greeting: {_compact(greeting)}")
        self.send_raw(_compact({"execute": "qmp_capabilities"}))
        resp = self.read_response()
        if not isinstance(resp, dict) or "return" not in resp:
            raise QmpError(f"QMP qmp_capabilities failed: {_compact(resp)}")

    def execute(self, command: str) -> Any:
        """Run a QMP command and return its response object."""
        self.send_raw(_compact({"execute": command}))
        resp = self.read_response()
        if isinstance(resp, dict) and "error" in resp:
            raise QmpError(f"QMP command '{command}' failed: {_compact(resp['error'])}")
        return resp

    def execute_hmp(self, command: str) -> Any:
        """Run a human-monitor command through ``human-monitor-command``.

        Any non-blank output from the monitor is treated as an error.
        """
        msg = {
            "execute": "human-monitor-command",
            "arguments": {"command-line": command},
        }
        self.send_raw(_compact(msg))
        resp = self.read_response()
        if isinstance(resp, dict):
            if "error" in resp:
                raise QmpError(
                    f"HMP command '{command}' failed: {_compact(resp['error'])}"
                )
            ret = resp.get("return")
            if isinstance(ret, str) and ret.strip():
                raise QmpError(
                    f"HMP command '{command}' returned error: {ret.strip()}"
                )
        return resp

    def read_response(self) -> Any:
        """Read one JSON reply, skipping asynchronous event messages."""
        while True:
            try:
                line = self._reader.readline()
            except OSError as exc:
                raise QmpError("failed to read from QMP socket") from exc
            if not line:
                raise QmpError("QMP socket closed unexpectedly")
            try:
                value = json.loads(line.decode("utf-8").strip())
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise QmpError("failed to parse QMP response") from exc
            if isinstance(value, dict) and "event" in value:
                log.debug("skipping QMP event: %s", _compact(value))
                continue
            return value

    def send_raw(self, msg: str) -> None:
        """Send a raw JSON string followed by a newline."""
        try:
            self._sock.sendall(msg.encode("utf-8") + b"\n")
        except OSError as exc:
            raise QmpError("failed to write to QMP socket") from exc

    def close(self) -> None:
        """Close the connection."""
        try:
            self._reader.close()
        finally:
            self._sock.close()


def open_qmp(socket_path: str | os.PathLike[str]) -> QmpClient:
    """Connect to a QMP socket and enter command mode."""
    path = os.fspath(socket_path)
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.connect(path)
    except OSError as exc:
        sock.close()
        raise QmpError(f"failed to connect to QMP socket at {path}") from exc
    client = QmpClient(sock)
    try:
        client._handshake()
    except BaseException:
        client.close()
        raise
    return client