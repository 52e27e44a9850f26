"""
Request identity.

Authentication happens upstream; the API trusts the X-User-ID and
X-User-Role headers it is handed.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from civicworks.models.user import UserRole


class Identity:
    def __init__(self, user_id: str, role: str = UserRole.USER.value):
        self.user_id = user_id
        self.role = role

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        return f"Identity({self.user_id}, role={self.role})"


async def get_current_identity(
    user_id: Optional[str] = Header(None, alias="X-User-ID", description="Authenticated user ID"),
    role: Optional[str] = Header(None, alias="X-User-Role", description="User role (user/admin)")
) -> Identity:
    """Identity for routes that require a signed-in user."""
    if not user_id or not user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header is required"
        )
    return Identity(user_id.strip(), (role or UserRole.USER.value).strip().lower())


async def get_optional_identity(
    user_id: Optional[str] = Header(None, alias="X-User-ID", description="User ID, if signed in"),
    role: Optional[str] = Header(None, alias="X-User-Role", description="User role (user/admin)")
) -> Optional[Identity]:
    if not user_id or not user_id.strip():
        return None
    return Identity(user_id.strip(), (role or UserRole.USER.value).strip().lower())
