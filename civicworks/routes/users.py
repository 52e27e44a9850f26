"""
User registration.

Credential verification belongs to the identity provider; this endpoint only
records the profile (and an opaque credential hash, if given).
"""

from fastapi import APIRouter, Depends, status
import logging

from civicworks.models.user import UserCreate, UserResponse
from civicworks.services.container import ServiceContainer, get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate, container: ServiceContainer = Depends(get_container)):
    """
    Register a user.

    Returns 409 if the email is already registered.
    """
    logger.info(f"POST /users - registering {user.email}")
    created = container.users.create_user(
        name=user.name,
        email=user.email,
        password_hash=user.password_hash,
        role=user.role.value,
        language=user.language.value
    )
    return UserResponse.from_document(created)
