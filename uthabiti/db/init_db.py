import asyncio
import logging

from sqlalchemy import select

from uthabiti.core.permissions import Role
from uthabiti.core.security import get_password_hash
from uthabiti.core.settings import settings
from uthabiti.db.session import AsyncSessionLocal
from uthabiti.models.sacco import SaccoSettings
from uthabiti.models.user import User
from uthabiti.schemas.common import UserStatus

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """
    Seed the database with the first administrator and an empty settings row.
    """
    async with AsyncSessionLocal() as session:
        logger.info("Seeding database")
        stmt = select(User).where(User.email == settings.seed_admin_email)
        user = (await session.execute(stmt)).scalar_one_or_none()
        if not user:
            logger.info("Creating admin user %s", settings.seed_admin_email)
            session.add(
                User(
                    full_name=settings.seed_admin_full_name,
                    email=settings.seed_admin_email,
                    id_number=settings.seed_admin_id_number,
                    role=Role.ADMIN.value,
                    status=UserStatus.ACTIVE.value,
                    hashed_password=get_password_hash(settings.seed_admin_password),
                    token_version=0,
                )
            )
        else:
            logger.info("Admin user already exists")

        sacco_settings = (await session.execute(select(SaccoSettings).limit(1))).scalar_one_or_none()
        if not sacco_settings:
            session.add(SaccoSettings(sacco_name=settings.seed_sacco_name))
        await session.commit()


if __name__ == "__main__":
    asyncio.run(init_db())
