"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Each token is signed with the secret of the
       app it was issued for, so a token for app A never verifies under app
       B's secret. Claims carry uid, email, app_id, iat and exp. Anyone who
       holds the app secret can verify a token offline with decode_token();
       the issuing service keeps no record of it.

  Expiry: exp = iat + ttl, both whole Unix seconds. jose rejects the token
       once exp has passed.

  Clock: JWTSigner takes an optional clock callable returning an aware UTC
       datetime, so tests can pin issuance time.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.errors import SigningError
from auth.models import App, TokenClaims, User

ALGORITHM = "HS256"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JWTSigner:
    """TokenSigner that produces HS256 JWTs keyed by the app secret."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow

    def sign(self, user: User, app: App, ttl: timedelta) -> str:
        if not app.secret:
            raise SigningError(f"app {app.id} has no signing secret")
        issued_at = int(self._clock().timestamp())
        claims = {
            "uid": user.id,
            "email": user.email,
            "app_id": app.id,
            "iat": issued_at,
            "exp": issued_at + int(ttl.total_seconds()),
        }
        try:
            return jwt.encode(claims, app.secret, algorithm=ALGORITHM)
        except JWTError as err:
            raise SigningError(str(err)) from err


def decode_token(token: str, secret: str) -> TokenClaims:
    """Verify signature and expiry and return the token's claims.

    Raises SigningError for a bad signature, an expired token, or a token
    missing any of the expected claims.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError as err:
        raise SigningError(str(err)) from err
    try:
        return TokenClaims(
            uid=int(payload["uid"]),
            email=str(payload["email"]),
            app_id=int(payload["app_id"]),
            exp=int(payload["exp"]),
            iat=int(payload["iat"]),
        )
    except (KeyError, TypeError, ValueError) as err:
        raise SigningError(f"malformed claims: {err}") from err
