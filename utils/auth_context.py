from functools import wraps
from flask import g, jsonify
from security.session import get_session, token_from_request

def load_current_user():
    raw_token, scheme = token_from_request()
    sess = get_session(raw_token)
    if not sess:
        g.user = None
        g.session = None
        g.auth_scheme = None
        return
    g.session = sess
    g.user = sess.user
    g.auth_scheme = scheme

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "user", None) is None:
            return jsonify(error="Access denied. No valid session.", code="UNAUTHENTICATED"), 401
        return fn(*args, **kwargs)
    return wrapper
