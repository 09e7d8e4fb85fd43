"""
Request identity.

Tokens are issued elsewhere; this module only verifies them. Two modes:
"hs256" (shared JWT_SECRET) and "jwks" (ES256 keys published at
AUTH_JWKS_URL). The token may arrive as a bearer header or as the `jwt`
cookie set by the web client.
"""

import hmac
import time
from typing import Any, Dict, Optional

import requests
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi import Cookie, Header, HTTPException
from jose import JWTError, jwt
from jose.utils import base64url_decode
from loguru import logger

from hangout.core import config


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


class _SigningKeys:
    """kid -> public key, refreshed every JWKS_TTL_SECONDS or on an unknown kid."""

    def __init__(self):
        self._keys: Dict[str, Any] = {}
        self._fetched_at = 0.0

    def clear(self) -> None:
        self._keys = {}
        self._fetched_at = 0.0

    def _stale(self) -> bool:
        return not self._keys or time.time() - self._fetched_at >= config.JWKS_TTL_SECONDS

    def _refresh(self) -> None:
        if not config.AUTH_JWKS_URL:
            raise HTTPException(status_code=500, detail="AUTH_JWKS_URL must be set when AUTH_VERIFY_MODE=jwks")

        resp = requests.get(config.AUTH_JWKS_URL, timeout=10)
        try:
            body = resp.json()
        except ValueError:
            raise HTTPException(status_code=500, detail=f"Key endpoint returned non-JSON (HTTP {resp.status_code})")

        if resp.status_code != 200 or not isinstance(body.get("keys"), list):
            raise HTTPException(status_code=500, detail="Key endpoint returned no keys")

        self._keys = {k["kid"]: k for k in body["keys"] if k.get("kid")}
        self._fetched_at = time.time()
        logger.info(f"[auth] loaded {len(self._keys)} signing key(s)")

    def get(self, kid: str):
        if self._stale():
            self._refresh()

        jwk = self._keys.get(kid)
        if jwk is None:
            # rotated since our last fetch
            self._refresh()
            jwk = self._keys.get(kid)
        if jwk is None:
            raise _unauthorized("Unknown signing key")

        return _ec_public_key(jwk)


def _ec_public_key(jwk: Dict[str, Any]):
    x = int.from_bytes(base64url_decode(jwk["x"].encode()), "big")
    y = int.from_bytes(base64url_decode(jwk["y"].encode()), "big")
    return ec.EllipticCurvePublicNumbers(x, y, ec.SECP256R1()).public_key(default_backend())


signing_keys = _SigningKeys()


def _claims(token: str) -> Dict[str, Any]:
    mode = config.AUTH_VERIFY_MODE

    if mode == "hs256":
        if not config.JWT_SECRET:
            raise HTTPException(status_code=500, detail="JWT_SECRET not set")
        key, algorithms = config.JWT_SECRET, ["HS256"]

    elif mode == "jwks":
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            raise _unauthorized("Malformed token")
        if header.get("alg") != "ES256" or not header.get("kid"):
            raise _unauthorized("Unsupported token signature")
        key, algorithms = signing_keys.get(header["kid"]), ["ES256"]

    else:
        raise HTTPException(status_code=500, detail=f"Unknown AUTH_VERIFY_MODE: {mode}")

    try:
        return jwt.decode(token, key, algorithms=algorithms, options={"verify_aud": False})
    except JWTError:
        raise _unauthorized("Invalid or expired token")


def decode_token(token: str) -> str:
    """Verified user id (the `sub` claim) for a raw token."""
    sub = _claims(token).get("sub")
    if not sub:
        raise _unauthorized("Token has no subject")
    return str(sub)


def _extract_token(authorization: Optional[str], jwt_cookie: Optional[str]) -> Optional[str]:
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() != "bearer" or not value.strip():
            raise _unauthorized("Authorization header must be 'Bearer <token>'")
        return value.strip()
    return jwt_cookie or None


# ------------------------------------------------------------
# Dependencies
# ------------------------------------------------------------
def get_current_user_id(
    authorization: Optional[str] = Header(default=None),
    jwt_cookie: Optional[str] = Cookie(default=None, alias="jwt"),
) -> str:
    token = _extract_token(authorization, jwt_cookie)
    if token is None:
        raise _unauthorized("Authorization required")

    user_id = decode_token(token)
    logger.debug(f"[auth] user_id={user_id}")
    return user_id


def require_user_or_passphrase(
    authorization: Optional[str] = Header(default=None),
    jwt_cookie: Optional[str] = Cookie(default=None, alias="jwt"),
    x_event_passphrase: Optional[str] = Header(default=None),
) -> Optional[str]:
    """
    Event managers without an account send the shared X-Event-Passphrase
    header instead of logging in. Returns the user id for a logged-in caller,
    None for a passphrase caller.
    """
    try:
        token = _extract_token(authorization, jwt_cookie)
        if token is not None:
            return decode_token(token)
    except HTTPException as e:
        if e.status_code != 401:
            raise
        logger.debug("[auth] token rejected, trying event passphrase")

    expected = config.EVENT_CREATION_PASSPHRASE
    if expected and x_event_passphrase and hmac.compare_digest(x_event_passphrase, expected):
        return None

    raise _unauthorized("Valid login or event manager passphrase required")
