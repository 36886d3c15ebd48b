from jose import jwt, JWTError
from fastapi import Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import JWT_SECRET, JWT_ALGORITHM
from .errors import AuthenticationFailure
from .policy import Identity, Role

bearer_scheme = HTTPBearer(auto_error=False)


def identity_from_claims(payload: dict) -> Identity:
    user_id = payload.get("sub") or payload.get("userId")

    role = payload.get("role")
    if not role:
        roles = payload.get("roles")
        if isinstance(roles, list) and roles:
            role = roles[0]

    if not user_id or not role:
        raise AuthenticationFailure("Token is missing user id or role")

    try:
        return Identity(user_id=str(user_id), role=Role(str(role).strip().lower()))
    except ValueError:
        raise AuthenticationFailure(f"Unknown role in token: {role}")


def get_current_identity(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity:
    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token:
        raise AuthenticationFailure("Missing Bearer token")

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationFailure("Invalid or expired token")

    identity = identity_from_claims(payload)
    request.state.user_sub = identity.user_id
    request.state.user_role = identity.role.value
    return identity
