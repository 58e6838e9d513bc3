"""
Identity record service.

Thin layer over IdentityRepository used by the profile routes and the
webhook processor.
"""

from app.db.update_builder import ABSENT
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import User, UserProfile
from app.repositories.base import IdentityRepository
from app.services.errors import NotFoundError, ValidationError

logger = get_logger(__name__)


class IdentityService:
    def __init__(self, repository: IdentityRepository):
        self.repository = repository

    async def create(self, external_id: str, email: str | None, display_name: str | None) -> User:
        """Create the record group. Raises ConflictError on a duplicate external id."""
        if not external_id:
            raise ValidationError("External user id is required")
        return await self.repository.create(external_id, email, display_name)

    async def find_by_external_id(self, external_id: str) -> User | None:
        return await self.repository.find_by_external_id(external_id)

    async def update(self, external_id: str, *, email=ABSENT, display_name=ABSENT) -> User | None:
        return await self.repository.update(external_id, email=email, display_name=display_name)

    async def delete(self, external_id: str) -> bool:
        return await self.repository.delete(external_id)

    async def get_profile(self, external_id: str) -> UserProfile:
        profile = await self.repository.get_profile(external_id)
        if profile is None:
            raise NotFoundError("User not found", external_id=external_id)
        return profile

    async def update_profile(self, external_id: str, *, display_name=ABSENT) -> User:
        if display_name is not ABSENT and display_name is not None:
            if not isinstance(display_name, str):
                raise ValidationError("displayName must be a string")

        user = await self.repository.update(external_id, display_name=display_name)
        if user is None:
            raise NotFoundError("User not found", external_id=external_id)
        return user

    async def delete_profile(self, external_id: str) -> None:
        deleted = await self.repository.delete(external_id)
        if not deleted:
            raise NotFoundError("User not found", external_id=external_id)
        logger.info("User deleted own profile", external_id=external_id)
