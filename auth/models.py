"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the
service do the work; these classes only own the domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class User:
    """A registered identity.

    email is unique and compared case-sensitively, exactly as stored.
    pass_hash is the raw bcrypt digest (salt and cost are embedded in it);
    the plaintext password is never kept anywhere.
    """

    id: int
    email: str
    pass_hash: bytes = field(repr=False)
    is_admin: bool = False


@dataclass(frozen=True)
class App:
    """A client application tokens are issued for.

    secret is the HMAC key every token issued on this app's behalf is signed
    with. Anyone holding it can verify those tokens offline.
    """

    id: int
    name: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, verified claims of an issued token.

    exp and iat are Unix timestamps in seconds.
    """

    uid: int
    email: str
    app_id: int
    exp: int
    iat: int
