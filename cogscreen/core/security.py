"""Bearer tokens for callers authenticated by the identity provider.

Staff and patient identities live outside this service. Tokens are HS256
JWTs signed with the shared ``settings.secret_key`` and carry the actor in
their claims: ``sub`` (actor id), ``actor_type``, and for staff ``role`` and
``name``.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from cogscreen.core.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    subject: str,
    actor_type: str,
    role: str | None = None,
    name: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Mint a token the way the identity provider does.

    Used by tests and local tooling.

    Args:
        subject: Actor id
        actor_type: ``staff`` or ``patient``
        role: Staff role (``admin`` or ``clinical_staff``)
        name: Display name recorded on reviews and audit events
        expires_delta: Lifetime (defaults to
            ``settings.access_token_expire_minutes``)

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    claims = {
        "sub": subject,
        "type": ACCESS_TOKEN_TYPE,
        "actor_type": actor_type,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    if role:
        claims["role"] = role
    if name:
        claims["name"] = name

    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict | None:
    """Verify a bearer token and return its claims.

    Returns:
        Claims, or None if the signature or expiry is invalid, or the token
        is not an access token naming an actor type
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE or not claims.get("actor_type"):
        return None
    return claims
