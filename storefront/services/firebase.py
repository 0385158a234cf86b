"""Firebase Authentication helpers.

The browser signs in with Firebase Auth and sends its ID token as a bearer
token. This module verifies that token and, when the browser also hands
over its refresh token, exchanges it for a fresh ID token after the
marketplace API answers 401.
"""

import logging
import time

import jwt
import requests
from cryptography import x509
from cryptography.hazmat.backends import default_backend

from storefront.errors import AuthError

logger = logging.getLogger(__name__)

# Google's public keys endpoint for verifying Firebase tokens
GOOGLE_CERTS_URL = 'https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com'
FIREBASE_ISSUER_PREFIX = 'https://securetoken.google.com/'
SECURE_TOKEN_URL = 'https://securetoken.googleapis.com/v1/token'

# Cache for Google's public keys (refreshed every hour)
_cached_keys = None
_keys_fetched_at = 0
KEYS_CACHE_DURATION = 3600  # 1 hour


def get_google_public_keys():
    """Fetch Google's public keys for verifying Firebase tokens.

    Keys are cached for 1 hour to avoid repeated requests.
    Returns a dict mapping key ID to public key object.
    """
    global _cached_keys, _keys_fetched_at

    current_time = time.time()

    # Return cached keys if still valid
    if _cached_keys and (current_time - _keys_fetched_at) < KEYS_CACHE_DURATION:
        return _cached_keys

    try:
        response = requests.get(GOOGLE_CERTS_URL, timeout=10)
        response.raise_for_status()
        certs_data = response.json()

        public_keys = {}
        for kid, cert_pem in certs_data.items():
            try:
                cert = x509.load_pem_x509_certificate(
                    cert_pem.encode('utf-8'),
                    default_backend()
                )
                public_keys[kid] = cert.public_key()
            except ValueError as e:
                logger.warning(f"Failed to parse certificate for kid {kid}: {e}")
                continue

        if not public_keys:
            raise AuthError("No valid public keys found in Google's response")

        _cached_keys = public_keys
        _keys_fetched_at = current_time
        return _cached_keys

    except (requests.RequestException, ValueError) as e:
        logger.error(f"Failed to fetch Google public keys: {e}")
        # Return cached keys even if expired, as fallback
        if _cached_keys:
            return _cached_keys
        raise AuthError('Could not verify sign-in right now') from e


def verify_firebase_token(id_token: str, project_id: str) -> dict:
    """Verify a Firebase ID token and return the caller's identity.

    Args:
        id_token: The Firebase ID token from the browser
        project_id: Firebase project the token must be issued for

    Returns:
        dict with ``uid``, ``email``, ``name``, ``picture`` and ``auth_time``

    Raises:
        AuthError: If the token is invalid, expired, or verification fails
    """
    global _keys_fetched_at

    if not id_token:
        raise AuthError('Token is missing')

    try:
        unverified_header = jwt.get_unverified_header(id_token)
    except jwt.InvalidTokenError as e:
        raise AuthError('Token is invalid') from e

    kid = unverified_header.get('kid')
    alg = unverified_header.get('alg')

    if not kid:
        raise AuthError('Token missing key ID (kid)')

    if alg != 'RS256':
        raise AuthError(f'Unexpected algorithm: {alg}')

    public_keys = get_google_public_keys()

    if kid not in public_keys:
        # Refresh keys in case of rotation
        _keys_fetched_at = 0
        public_keys = get_google_public_keys()

        if kid not in public_keys:
            raise AuthError('Token signed with unknown key')

    try:
        decoded = jwt.decode(
            id_token,
            public_keys[kid],
            algorithms=['RS256'],
            audience=project_id,
            issuer=f'{FIREBASE_ISSUER_PREFIX}{project_id}'
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthError('Token has expired') from e
    except jwt.InvalidTokenError as e:
        raise AuthError(f'Invalid token: {e}') from e

    if not decoded.get('sub'):
        raise AuthError('Token does not contain subject (user ID)')

    return {
        'uid': decoded['sub'],
        'email': decoded.get('email'),
        'name': decoded.get('name'),
        'picture': decoded.get('picture'),
        'auth_time': decoded.get('auth_time'),
    }


def refresh_id_token(refresh_token: str, api_key: str, timeout=10) -> dict:
    """Exchange a Firebase refresh token for a new ID token."""
    if not refresh_token or not api_key:
        raise AuthError('Session expired, please sign in again')

    try:
        response = requests.post(
            SECURE_TOKEN_URL,
            params={'key': api_key},
            data={'grant_type': 'refresh_token', 'refresh_token': refresh_token},
            timeout=timeout,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Firebase token refresh failed: {e}")
        raise AuthError('Session expired, please sign in again') from e

    if not data.get('id_token'):
        raise AuthError('Session expired, please sign in again')

    return {
        'id_token': data['id_token'],
        'refresh_token': data.get('refresh_token', refresh_token),
    }


class TokenProvider:
    """Bearer token for outgoing marketplace API calls on behalf of a viewer."""

    def __init__(self, id_token=None, refresh_token=None, api_key=None):
        self.id_token = id_token
        self.refresh_token = refresh_token
        self.api_key = api_key

    @property
    def can_refresh(self):
        return bool(self.id_token and self.refresh_token and self.api_key)

    def get_token(self, force_refresh=False):
        if force_refresh:
            fresh = refresh_id_token(self.refresh_token, self.api_key)
            self.id_token = fresh['id_token']
            self.refresh_token = fresh['refresh_token']
            logger.info("Refreshed Firebase ID token")
        return self.id_token
