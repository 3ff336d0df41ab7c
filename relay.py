#!/usr/bin/env python3
"""
WebSocket broadcast relay — every message from any client goes to all
connected clients, the sender included.
Usage: python3 relay.py [port]   (default port: 18081)
"""
import functools
import http
import sys
import threading

from websockets.exceptions import ConnectionClosed
from websockets.sync.server import serve

WS_PATH = '/ws'


class ConnectionRegistry:
    """Set of open connections behind a single lock.

    A connection is anything hashable with ``send_text(payload)`` and
    ``send_binary(payload)``. The lock is held for the whole body of every
    event, fan-out included, so a broadcast always sees the membership as it
    was when the traversal started.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._connections = set()

    def __len__(self):
        with self._lock:
            return len(self._connections)

    def __contains__(self, conn):
        with self._lock:
            return conn in self._connections

    def on_open(self, conn):
        with self._lock:
            self._connections.add(conn)

    def on_close(self, conn, reason=''):
        with self._lock:
            self._connections.discard(conn)

    def on_message(self, conn, payload, is_binary):
        with self._lock:
            for peer in self._connections:
                try:
                    if is_binary:
                        peer.send_binary(payload)
                    else:
                        peer.send_text(payload)
                except Exception as e:
                    print(f'[WS] send to {peer} failed: {e!r}', file=sys.stderr)


class Peer:
    """Adapts a websockets server connection to the registry's send calls."""

    def __init__(self, websocket):
        self.websocket = websocket
        self.address = websocket.remote_address

    def __repr__(self):
        return f'<Peer {self.address}>'

    def send_text(self, payload):
        self.websocket.send(payload, text=True)

    def send_binary(self, payload):
        self.websocket.send(payload, text=False)


def reject_other_paths(connection, request):
    path = request.path.split('?')[0]
    if path != WS_PATH:
        return connection.respond(http.HTTPStatus.NOT_FOUND, 'Not Found\n')
    return None


def handler(websocket, registry):
    peer = Peer(websocket)
    registry.on_open(peer)
    print(f'[WS] +{peer.address}  ({len(registry)} connected)')
    try:
        for message in websocket:
            registry.on_message(peer, message, isinstance(message, bytes))
    except ConnectionClosed:
        pass
    finally:
        registry.on_close(peer, websocket.close_reason or '')
        print(f'[WS] -{peer.address}  ({len(registry)} connected)')


def make_ws_server(host, port, registry):
    """Build (but do not start) the threaded WebSocket server."""
    return serve(
        functools.partial(handler, registry=registry),
        host,
        port,
        process_request=reject_other_paths,
    )


def main():
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 18081
    registry = ConnectionRegistry()
    with make_ws_server('0.0.0.0', port, registry) as server:
        print(f'Relay listening on ws://0.0.0.0:{port}{WS_PATH}')
        server.serve_forever()


if __name__ == '__main__':
    main()
