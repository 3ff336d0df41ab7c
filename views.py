"""
Static files and mustache pages served out of the public directory.

Every helper returns ``(status, content_type, body)`` with ``body`` as bytes;
the HTTP handler in server.py writes it out.
"""
import os

import chevron

CONTENT_TYPES = {
    'styles': 'text/css',
    'scripts': 'text/javascript',
    'images': 'image/jpeg',
}


def safe_join(public_dir, *parts):
    """Join under public_dir, or return None if the result escapes it."""
    root = os.path.realpath(public_dir)
    path = os.path.realpath(os.path.join(root, *parts))
    if os.path.commonpath([root, path]) != root:
        return None
    return path


def send_file(public_dir, filename, content_type):
    path = safe_join(public_dir, filename)
    if path is None or not os.path.isfile(path):
        return 404, 'text/plain', b'Not found'
    with open(path, 'rb') as f:
        return 200, content_type, f.read()


def send_html(public_dir, name):
    return send_file(public_dir, name + '.html', 'text/html')


def send_asset(public_dir, kind, filename):
    """Serve public/<kind>/<filename> with the content type for that kind."""
    return send_file(public_dir, os.path.join(kind, filename), CONTENT_TYPES[kind])


def render_view(public_dir, name, context):
    path = safe_join(public_dir, name + '.html')
    if path is None or not os.path.isfile(path):
        return not_found(name.capitalize() + ' view')
    with open(path, encoding='utf-8') as f:
        text = chevron.render(f, context)
    return 200, 'text/html', text.encode('utf-8')


def not_found(message):
    return 404, 'text/plain', f'{message}: Not Found'.encode('utf-8')
