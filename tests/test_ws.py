import time

import pytest
from websockets.exceptions import InvalidStatus
from websockets.sync.client import connect


def wait_for(predicate, timeout=5):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_broadcast_includes_sender(registry, ws_port):
    url = f'ws://127.0.0.1:{ws_port}/ws'
    with connect(url) as a, connect(url) as b, connect(url) as c:
        assert wait_for(lambda: len(registry) == 3)

        a.send('hello')
        for ws in (a, b, c):
            assert ws.recv(timeout=5) == 'hello'

        b.send(b'\x01\x02')
        for ws in (a, b, c):
            assert ws.recv(timeout=5) == b'\x01\x02'


def test_disconnect_leaves_membership(registry, ws_port):
    url = f'ws://127.0.0.1:{ws_port}/ws'
    with connect(url) as a:
        with connect(url) as b:
            assert wait_for(lambda: len(registry) == 2)
        assert wait_for(lambda: len(registry) == 1)

        a.send('still here')
        assert a.recv(timeout=5) == 'still here'
    assert wait_for(lambda: len(registry) == 0)


def test_other_paths_are_rejected(registry, ws_port):
    with pytest.raises(InvalidStatus) as excinfo:
        connect(f'ws://127.0.0.1:{ws_port}/chat')
    assert excinfo.value.response.status_code == 404
    assert len(registry) == 0
