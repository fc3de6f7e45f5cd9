from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Header, HTTPException, status

from app.auth.jwt import JwtError, decode_jwt, issue_jwt, jwt_http_exception
from app.config import settings
from app.models.domain import User
from app.models.user import UserRole

ALLOWED_ROLES = {role.value for role in UserRole}


@dataclass
class AuthContext:
    user_id: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def issue_access_token(user: User) -> str:
    claims = {"sub": user.id, "role": user.role.value, "name": user.name}
    return issue_jwt(claims, settings.jwt_secret, expires_in_s=settings.jwt_ttl_s)


def get_auth_context(authorization: str | None = Header(default=None)) -> AuthContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise jwt_http_exception("Missing bearer token")

    token = authorization.removeprefix("Bearer ").strip()
    try:
        claims = decode_jwt(token, settings.jwt_secret)
    except JwtError as err:
        raise jwt_http_exception("Invalid JWT") from err

    role = claims.get("role")
    user_id = claims.get("sub")
    if role not in ALLOWED_ROLES or not isinstance(user_id, str):
        raise jwt_http_exception("Invalid JWT claims")

    return AuthContext(user_id=user_id, role=role, name=claims.get("name"))


def require_roles(*roles: str) -> Callable[[AuthContext], AuthContext]:
    def dependency(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if auth.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return auth

    return dependency


require_admin = require_roles(UserRole.ADMIN.value)
require_staff = require_roles(UserRole.ADMIN.value, UserRole.COURIER.value)
