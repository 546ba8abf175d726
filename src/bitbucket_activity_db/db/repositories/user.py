"""Repository for workspace users."""

from sqlalchemy.ext.asyncio import AsyncSession

from bitbucket_activity_db.db.models import User
from bitbucket_activity_db.schemas.user import UserUpsert

from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User entities, keyed by Bitbucket uuid."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_uuid(self, uuid: str) -> User | None:
        return await self._get_by_field("uuid", uuid)

    async def upsert(self, data: UserUpsert) -> tuple[User, bool]:
        """Insert a user or refresh its profile fields.

        Returns:
            Tuple of (user, created) where created=True if new
        """
        existing = await self.get_by_uuid(data.uuid)
        if existing is None:
            user = User(**data.model_dump())
            self.add(user)
            await self.flush()
            return user, True

        existing.display_name = data.display_name
        existing.nickname = data.nickname
        existing.avatar_url = data.avatar_url
        await self.flush()
        return existing, False
