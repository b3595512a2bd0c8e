import json
import os
import socket
import tempfile
import threading

import pytest

from agentverk.qmp import QmpClient, QmpError, open_qmp

GREETING = (
    b'{"QMP":{"version":{"qemu":{"micro":0,"minor":2,"major":9},"package":""},'
    b'"capabilities":[]}}\n'
)


@pytest.fixture
def pair():
    server, client_sock = socket.socketpair()
    client = QmpClient(client_sock)
    yield server, client
    client.close()
    server.close()


def _received_line(server):
    data = b""
    while not data.endswith(b"\n"):
        chunk = server.recv(4096)
        if not chunk:
            break
        data += chunk
    return data


def test_execute_success_response(pair):
    server, client = pair
    server.sendall(b'{"return":{}}\n')
    resp = client.execute("system_powerdown")
    assert resp == {"return": {}}
    assert _received_line(server) == b'{"execute":"system_powerdown"}\n'


def test_execute_error_response_raises(pair):
    server, client = pair
    server.sendall(b'{"error":{"class":"GenericError","desc":"command not found"}}\n')
    with pytest.raises(QmpError, match="QMP command 'bogus' failed"):
        client.execute("bogus")


def test_events_are_skipped(pair):
    server, client = pair
    server.sendall(
        b'{"event":"POWERDOWN","timestamp":{"seconds":1234,"microseconds":0},"data":{}}\n'
        b'{"return":{"ok":1}}\n'
    )
    assert client.read_response() == {"return": {"ok": 1}}


def test_read_response_on_closed_socket(pair):
    server, client = pair
    server.close()
    with pytest.raises(QmpError, match="closed unexpectedly"):
        client.read_response()


def test_read_response_invalid_json(pair):
    server, client = pair
    server.sendall(b"not json\n")
    with pytest.raises(QmpError, match="failed to parse"):
        client.read_response()


def test_execute_hmp_sends_wrapped_command(pair):
    server, client = pair
    server.sendall(b'{"return":""}\n')
    resp = client.execute_hmp('savevm "agv-suspend"')
    assert resp == {"return": ""}
    sent = json.loads(_received_line(server))
    assert sent == {
        "execute": "human-monitor-command",
        "arguments": {"command-line": 'savevm "agv-suspend"'},
    }


def test_execute_hmp_nonempty_output_is_error(pair):
    server, client = pair
    server.sendall(b'{"return":"Error: no block device\\r\\n"}\n')
    with pytest.raises(QmpError, match="returned error: Error: no block device"):
        client.execute_hmp("savevm agv-suspend")


def test_execute_hmp_whitespace_output_is_success(pair):
    server, client = pair
    server.sendall(b'{"return":"  \\r\\n"}\n')
    assert client.execute_hmp("savevm agv-suspend") == {"return": "  \r\n"}


def test_execute_hmp_error_key(pair):
    server, client = pair
    server.sendall(b'{"error":{"class":"GenericError","desc":"nope"}}\n')
    with pytest.raises(QmpError, match="HMP command 'info' failed"):
        client.execute_hmp("info")


def test_send_raw_appends_newline(pair):
    server, client = pair
    client.send_raw('{"execute":"quit"}')
    assert _received_line(server) == b'{"execute":"quit"}\n'


def _serve_once(path, greeting, received):
    listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    listener.bind(path)
    listener.listen(1)

    def run():
        conn, _ = listener.accept()
        with conn, conn.makefile("rb") as reader:
            conn.sendall(greeting)
            line = reader.readline()
            if line:
                received.append(line)
                conn.sendall(b'{"return":{}}\n')
                line = reader.readline()
                if line:
                    received.append(line)
                    conn.sendall(b'{"return":{}}\n')
        listener.close()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


def test_open_qmp_performs_handshake():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "q.sock")
        received = []
        thread = _serve_once(path, GREETING, received)
        with open_qmp(path) as client:
            assert client.execute("quit") == {"return": {}}
        thread.join(timeout=5)
        assert received == [
            b'{"execute":"qmp_capabilities"}\n',
            b'{"execute":"quit"}\n',
        ]


def test_open_qmp_rejects_bad_greeting():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "q.sock")
        thread = _serve_once(path, b'{"hello":1}\n', [])
        with pytest.raises(QmpError, match="unexpected QMP greeting"):
            open_qmp(path)
        thread.join(timeout=5)


def test_open_qmp_missing_socket():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "missing.sock")
        with pytest.raises(QmpError, match="failed to connect to QMP socket"):
            open_qmp(path)