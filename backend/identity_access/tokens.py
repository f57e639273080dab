"""
Access-token verification for the identity_access bounded context.

Why: Keep cryptographic validation of Supabase access tokens outside the web
adapter so we can unit test it independently.

Security: Supabase signs access tokens with the project's JWT secret (HS256).
We verify signature and audience with python-jose and check exp/iat/nbf
ourselves with a small clock skew allowance.
"""
from __future__ import annotations

from typing import Dict
import time

from jose import jwt
from jose.exceptions import JOSEError


class AccessTokenVerificationError(Exception):
    """Raised when the access token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


DEFAULT_AUDIENCE = "authenticated"
ALLOWED_ALGORITHMS = ("HS256",)
MAX_CLOCK_SKEW_SECONDS = 5  # Allow minimal skew between servers


def verify_access_token(
    *,
    token: str,
    secret: str,
    audience: str = DEFAULT_AUDIENCE,
) -> Dict[str, object]:
    """Validate a Supabase access token and return its claims.

    Parameters
    ----------
    token:
        The raw JWT returned by the Supabase auth endpoint.
    secret:
        The project's JWT secret (SUPABASE_JWT_SECRET).
    audience:
        Expected `aud` claim; Supabase uses "authenticated" for signed-in users.

    Raises
    ------
    AccessTokenVerificationError:
        When the token is malformed, signed with another key, targets another
        audience, or is outside its validity window.
    """
    if not token or not isinstance(token, str):
        raise AccessTokenVerificationError("missing_token")
    if not secret:
        raise AccessTokenVerificationError("missing_secret")
    try:
        header = jwt.get_unverified_header(token)
    except JOSEError as exc:
        raise AccessTokenVerificationError("invalid_token") from exc
    if header.get("alg") not in ALLOWED_ALGORITHMS:
        raise AccessTokenVerificationError("unsupported_alg")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=list(ALLOWED_ALGORITHMS),
            audience=audience,
            options={
                "verify_signature": True,
                "verify_aud": True,
                "verify_exp": False,
                "verify_iat": False,
                "verify_nbf": False,
            },
        )
    except JOSEError as exc:
        raise AccessTokenVerificationError("invalid_token") from exc

    _validate_temporal_claims(claims)
    if not claims.get("sub"):
        raise AccessTokenVerificationError("missing_sub")
    return claims


def _validate_temporal_claims(claims: Dict[str, object]) -> None:
    now = time.time()
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise AccessTokenVerificationError("invalid_token")
    if exp + MAX_CLOCK_SKEW_SECONDS < now:
        raise AccessTokenVerificationError("token_expired")

    iat = claims.get("iat")
    if isinstance(iat, (int, float)) and iat - MAX_CLOCK_SKEW_SECONDS > now:
        raise AccessTokenVerificationError("invalid_token")

    nbf = claims.get("nbf")
    if isinstance(nbf, (int, float)) and nbf - MAX_CLOCK_SKEW_SECONDS > now:
        raise AccessTokenVerificationError("invalid_token")
