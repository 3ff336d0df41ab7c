#!/usr/bin/env python3
"""
Combined demo server:
  HTTP on --port     — pages, assets, arithmetic/echo routes, contacts reads
  WebSocket on --ws-port, path /ws — group chat broadcast relay
"""
import argparse
import functools
import http.server
import json
import os
import re
import socket
import sys
import threading
from urllib.parse import parse_qs, unquote, urlsplit

from pymongo.errors import PyMongoError

import views
from contacts import ContactStore
from relay import WS_PATH, ConnectionRegistry, make_ws_server

DIRECTORY = os.path.dirname(os.path.abspath(__file__))
DEFAULT_PUBLIC = os.path.join(DIRECTORY, 'public')
INT_RE = re.compile(r'[-+]?\d+\Z')
FLOAT_RE = re.compile(r'[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?\Z')
INT64_MAX = 2 ** 63 - 1


class BadParam(ValueError):
    pass


def format_double(value):
    return f'{value:g}'


def add(a, b):
    """Integer if both parse as ints, then double, then string concat."""
    if INT_RE.match(a) and INT_RE.match(b):
        x, y = int(a), int(b)
        return f'Integer: {x} + {y} = {x + y}\n'
    if not (FLOAT_RE.match(a) and FLOAT_RE.match(b)):
        return f'String: {a} + {b} = {a + b}\n'
    x, y = float(a), float(b)
    return f'Double: {format_double(x)} + {format_double(y)} = {format_double(x + y)}\n'


def int_param(params, name, default):
    values = params.get(name)
    if not values:
        return default
    value = values[0]
    if not INT_RE.match(value):
        raise BadParam(name)
    number = int(value)
    if number < 0 or number > INT64_MAX:
        raise BadParam(name)
    return number


def text(body, status=200):
    return status, 'text/plain', body.encode('utf-8')


# ── HTTP ─────────────────────────────────────────────────────
class Handler(http.server.BaseHTTPRequestHandler):
    routes = []

    def __init__(self, *args, public_dir=DEFAULT_PUBLIC, store=None, ws_port=None, **kwargs):
        self.public_dir = public_dir
        self.store = store
        self.ws_port = ws_port
        super().__init__(*args, **kwargs)

    @classmethod
    def route(cls, pattern, methods=('GET',)):
        regex = re.compile('^' + pattern + '$')

        def register(func):
            cls.routes.append((regex, methods, func))
            return func
        return register

    def dispatch(self):
        url = urlsplit(self.path)
        params = parse_qs(url.query)
        wrong_method = False
        for regex, methods, func in self.routes:
            m = regex.match(url.path)
            if not m:
                continue
            if self.command not in methods:
                wrong_method = True
                continue
            args = [unquote(g) for g in m.groups()]
            try:
                result = func(self, params, *args)
            except BadParam as e:
                result = text(f'Invalid {e}', 400)
            except PyMongoError as e:
                print(f'[HTTP] {self.command} {url.path}: {e}', file=sys.stderr)
                result = text('Database error', 502)
            return self.respond(*result)
        if wrong_method:
            return self.respond(*text('Method Not Allowed', 405))
        return self.respond(*text('Not Found', 404))

    def respond(self, status, content_type, body):
        self.send_response(status)
        self.send_header('Content-Type', content_type)
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    do_GET = dispatch
    do_POST = dispatch
    do_PUT = dispatch

    def log_message(self, format, *args):
        pass  # suppress per-request logging


route = Handler.route


@route('/')
def index(req, params):
    return views.send_html(req.public_dir, 'index')


@route('/chat')
def chat(req, params):
    return views.render_view(req.public_dir, 'chat', {'ws_port': req.ws_port, 'ws_path': WS_PATH})


@route('/about')
def about(req, params):
    return views.send_html(req.public_dir, 'about')


@route('/rest_test', methods=('GET', 'POST', 'PUT'))
def rest_test(req, params):
    return text(f'{req.command} res_test')


@route('/add/([^/]+)/([^/]+)')
def add_route(req, params, a, b):
    return text(add(a, b))


@route('/query')
def query(req, params):
    first = params.get('firstname', [''])[0]
    last = params.get('lastname', [''])[0]
    return text(f'Hello {first} {last}\n')


def unavailable():
    return text('Contacts unavailable', 503)


@route('/contacts')
def contacts_page(req, params):
    if req.store is None:
        return unavailable()
    return views.render_view(req.public_dir, 'contacts', {'contacts': req.store.page()})


@route('/api/contacts')
def contacts_api(req, params):
    if req.store is None:
        return unavailable()
    skip = int_param(params, 'skip', 0)
    limit = int_param(params, 'limit', 10)
    body = json.dumps({'contacts': req.store.list(skip=skip, limit=limit)})
    return 200, 'application/json', body.encode('utf-8')


@route('/contact/([^/]+)')
def contact_by_email(req, params, email):
    if req.store is None:
        return unavailable()
    doc = req.store.by_email(email)
    if doc is None:
        return views.not_found('Contact')
    return views.render_view(req.public_dir, 'contact', {'contact': doc})


@route('/contact/([^/]+)/([^/]+)')
def contact_by_name(req, params, first_name, last_name):
    if req.store is None:
        return unavailable()
    doc = req.store.by_name(first_name, last_name)
    if doc is None:
        return views.not_found('Contact')
    return views.render_view(req.public_dir, 'contact', {'contact': doc})


@route('/(styles|scripts|images)/([^/]+)')
def asset(req, params, kind, filename):
    return views.send_asset(req.public_dir, kind, filename)


def make_http_server(host, port, public_dir=DEFAULT_PUBLIC, store=None, ws_port=None):
    handler = functools.partial(Handler, public_dir=public_dir, store=store, ws_port=ws_port)
    return http.server.ThreadingHTTPServer((host, port), handler)


def parse_args(argv=None):
    env = os.environ
    parser = argparse.ArgumentParser(description='Demo HTTP server with a WebSocket chat relay')
    parser.add_argument('--host', default=env.get('HOST', '0.0.0.0'), help='Bind address (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=int(env.get('PORT', 18080)), help='HTTP port (default: 18080)')
    parser.add_argument('--ws-port', type=int, default=int(env.get('WS_PORT', 18081)), help='WebSocket port (default: 18081)')
    parser.add_argument('--public', default=env.get('PUBLIC_DIR', DEFAULT_PUBLIC), help='Directory with pages and assets')
    parser.add_argument('--mongodb-uri', default=env.get('MONGODB_URI'), help='MongoDB URI for the contacts routes')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    hostname = socket.gethostname()
    try:
        lan_ip = socket.gethostbyname(hostname)
    except OSError:
        lan_ip = '?.?.?.?'

    store = ContactStore.from_uri(args.mongodb_uri) if args.mongodb_uri else None

    print(f'HTTP  http://localhost:{args.port}     (this machine)')
    print(f'      http://{lan_ip}:{args.port}  (LAN)')
    print(f'WS    ws://localhost:{args.ws_port}{WS_PATH}')
    print(f'      ws://{lan_ip}:{args.ws_port}{WS_PATH}  (LAN)')
    print(f'Directory: {args.public}')
    if store is None:
        print('Contacts: MONGODB_URI not set, contact routes disabled')

    # HTTP in a background thread
    http_server = make_http_server(args.host, args.port, args.public, store, args.ws_port)
    t = threading.Thread(target=http_server.serve_forever, daemon=True)
    t.start()

    # WebSocket relay in the main thread, one thread per connection
    registry = ConnectionRegistry()
    with make_ws_server(args.host, args.ws_port, registry) as ws_server:
        try:
            ws_server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            http_server.shutdown()


if __name__ == '__main__':
    main()
