"""
Supabase JWT authentication for the Educa Sol API.
Validates Bearer tokens on all /api/ routes except public endpoints.
"""
import logging

import jwt
from flask import request, jsonify, g

from .config import get_settings

logger = logging.getLogger(__name__)

# Routes that don't require authentication
PUBLIC_EXACT = [
    '/api/health',
    '/api/verify',         # QR-code grade verification (anyone holding the token)
]


def get_jwt_secret():
    """Get the Supabase JWT secret from the app's settings."""
    secret = get_settings().jwt_secret
    if not secret:
        raise RuntimeError('SUPABASE_JWT_SECRET not configured')
    return secret


def validate_token(token):
    """
    Validate a Supabase JWT and return the decoded payload.
    Returns None if invalid.
    """
    try:
        return jwt.decode(
            token,
            get_jwt_secret(),
            algorithms=['HS256'],
            audience='authenticated',
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info("Rejected invalid token: %s", e)
        return None


def is_public_route(path):
    return path.rstrip('/') in PUBLIC_EXACT


def init_auth(app):
    """
    Register the before_request auth hook on the Flask app.
    Call this BEFORE registering blueprints.
    """
    @app.before_request
    def check_auth():
        if request.method == 'OPTIONS':
            return None
        if not request.path.startswith('/api/'):
            return None
        if is_public_route(request.path):
            return None

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Authentication required'}), 401

        token = auth_header[7:]
        try:
            payload = validate_token(token)
        except RuntimeError as e:
            logger.error("Auth error: %s", e)
            return jsonify({'error': 'Authentication is not configured'}), 500
        if payload is None or not payload.get('sub'):
            return jsonify({'error': 'Invalid or expired token'}), 401

        g.user_id = payload['sub']
        g.user_email = payload.get('email', '')
        # Forwarded to the serverless functions
        g.access_token = token
