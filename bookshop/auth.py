from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import Blueprint, current_app, g, jsonify, request

from .errors import InvalidInput, Unauthorized
from .extensions import bcrypt

AUTH_COOKIE = 'auth'
TOKEN_HEADER = 'x-access-token'

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _current_token():
    return request.headers.get(TOKEN_HEADER) or request.cookies.get(AUTH_COOKIE)


def _decode(token):
    data = jwt.decode(token, current_app.config['SECRET_KEY'], algorithms=["HS256"])
    if data.get('username') != current_app.config['ADMIN_USERNAME']:
        raise jwt.InvalidTokenError('unknown user')
    return data


def is_authenticated():
    token = _current_token()
    if not token:
        return False
    try:
        _decode(token)
    except jwt.InvalidTokenError:
        return False
    return True


# === DECORATOR: protects every route that needs a logged-in shop admin ===
def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _current_token()
        if not token:
            raise Unauthorized('Token is missing!')
        try:
            data = _decode(token)
        except jwt.ExpiredSignatureError:
            raise Unauthorized('Token has expired!')
        except jwt.InvalidTokenError:
            raise Unauthorized('Token is invalid!')
        g.current_user = data['username']
        return f(*args, **kwargs)

    return decorated


def issue_token(username):
    ttl = timedelta(minutes=current_app.config['TOKEN_TTL_MINUTES'])
    return jwt.encode({
        'username': username,
        'exp': datetime.now(timezone.utc) + ttl
    }, current_app.config['SECRET_KEY'], algorithm="HS256")


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Log in as the shop administrator and receive a JWT token
    The token is also set as the `auth` cookie.
    ---
    tags: [Authentication]
    parameters:
      - name: body
        in: body
        required: true
        schema:
          id: Login
          required: [username, password]
          properties:
            username: {type: string}
            password: {type: string}
    responses:
      200: {description: Logged in; token returned.}
      400: {description: Missing username or password.}
      401: {description: Invalid credentials.}
    """
    data = request.get_json(silent=True) or {}
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        raise InvalidInput('Could not verify, missing username or password')

    if (username != current_app.config['ADMIN_USERNAME']
            or not bcrypt.check_password_hash(current_app.config['ADMIN_PASSWORD_HASH'], password)):
        current_app.logger.warning('Failed login attempt for %r', username)
        raise Unauthorized('Could not verify, invalid credentials')

    token = issue_token(username)
    response = jsonify({'success': True, 'token': token})
    response.set_cookie(
        AUTH_COOKIE, token,
        httponly=True,
        samesite='Lax',
        secure=not (current_app.debug or current_app.testing),
        max_age=current_app.config['TOKEN_TTL_MINUTES'] * 60,
    )
    return response


@auth_bp.route('/check', methods=['GET'])
def check():
    """
    Tell whether the caller is authenticated
    ---
    tags: [Authentication]
    responses:
      200: {description: Authenticated.}
      401: {description: Not authenticated.}
    """
    if is_authenticated():
        return jsonify({'authenticated': True})
    return jsonify({'authenticated': False}), 401


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """
    Clear the auth cookie
    ---
    tags: [Authentication]
    responses:
      200: {description: Logged out.}
    """
    response = jsonify({'success': True})
    response.delete_cookie(AUTH_COOKIE)
    return response
