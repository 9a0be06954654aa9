from dataclasses import dataclass, field

from jose import jwt, JWTError
from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .config import JWT_SECRET, JWT_ALGORITHM
from .statuses import Role, Unknown, parse_role

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    id: str
    role: Role
    email_confirmed: bool = False
    profile: dict = field(default_factory=dict, compare=False)


def principal_from_claims(payload: dict) -> Principal:
    sub = payload.get("sub")
    role = parse_role(payload.get("role"))

    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Subject missing in token",
        )
    if isinstance(role, Unknown):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Role missing in token",
        )

    return Principal(
        id=str(sub),
        role=role,
        email_confirmed=bool(payload.get("email_confirmed")),
        profile=payload.get("profile") or {},
    )


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Bearer token",
        )

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    principal = principal_from_claims(payload)
    request.state.user_sub = principal.id
    request.state.user_role = principal.role.value
    return principal
