"""Shared fixtures: live HTTP / WebSocket servers on ephemeral ports."""
import shutil
import threading

import mongomock
import pytest
from pymongo.errors import PyMongoError

from contacts import ContactStore
from relay import ConnectionRegistry, make_ws_server
from server import DEFAULT_PUBLIC, make_http_server

JPEG_BYTES = b'\xff\xd8\xff\xe0fake-jpeg\xff\xd9'


@pytest.fixture
def public_dir(tmp_path):
    target = tmp_path / 'public'
    shutil.copytree(DEFAULT_PUBLIC, target)
    (target / 'images' / 'logo.jpg').write_bytes(JPEG_BYTES)
    return str(target)


@pytest.fixture
def store():
    collection = mongomock.MongoClient()['heroku_crow']['contacts']
    collection.insert_many([
        {'firstName': f'First{i:02d}', 'lastName': f'Last{i:02d}', 'email': f'user{i:02d}@example.com'}
        for i in range(15)
    ])
    return ContactStore(collection)


def start(server):
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    return t


@pytest.fixture
def http_url(public_dir, store):
    server = make_http_server('127.0.0.1', 0, public_dir, store, ws_port=18081)
    start(server)
    yield f'http://127.0.0.1:{server.server_address[1]}'
    server.shutdown()
    server.server_close()


@pytest.fixture
def http_url_no_store(public_dir):
    server = make_http_server('127.0.0.1', 0, public_dir, None, ws_port=18081)
    start(server)
    yield f'http://127.0.0.1:{server.server_address[1]}'
    server.shutdown()
    server.server_close()


class BrokenCollection:
    def find(self, *args, **kwargs):
        raise PyMongoError('connection refused')

    def find_one(self, *args, **kwargs):
        raise PyMongoError('connection refused')


@pytest.fixture
def http_url_broken_db(public_dir):
    server = make_http_server('127.0.0.1', 0, public_dir, ContactStore(BrokenCollection()))
    start(server)
    yield f'http://127.0.0.1:{server.server_address[1]}'
    server.shutdown()
    server.server_close()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def ws_port(registry):
    server = make_ws_server('127.0.0.1', 0, registry)
    t = start(server)
    yield server.socket.getsockname()[1]
    server.shutdown()
    t.join(timeout=5)
