from fastapi import HTTPException, status

from .security import Principal
from .statuses import Role


def require_role(principal: Principal, allowed_roles: list[Role]):
    if principal.role not in set(allowed_roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access forbidden for this role",
        )


def require_confirmed_email(principal: Principal):
    if not principal.email_confirmed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Email address must be confirmed",
        )
