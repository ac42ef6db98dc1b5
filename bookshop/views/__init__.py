from flask import current_app, request


def services():
    return current_app.extensions['bookshop']


def json_body():
    return request.get_json(silent=True) or {}


def search_arg():
    return (request.args.get('search') or '').strip()


def no_store(response):
    """Mark a response as never cacheable by clients or proxies."""
    response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    response.headers['Pragma'] = 'no-cache'
    response.headers['Expires'] = '0'
    return response
