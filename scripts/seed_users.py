"""
Seed Help-Desk Users
====================

Creates one demo user per access level so the API can be exercised
locally with the ``X-User-Email`` header.

Usage:
    python -m scripts.seed_users
"""

import asyncio

from sqlalchemy import func, select

from sistec.config import settings
from sistec.infrastructure.database import (
    init_database,
    close_database,
    create_tables,
    get_session_context,
)
from sistec.tickets.infrastructure import UserModel
from sistec.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)

DEMO_USERS = [
    ("Usuário Demo", "usuario@sistec.local", 1),
    ("Analista Demo", "analista@sistec.local", 2),
    ("Gestor de Chamados Demo", "gestor@sistec.local", 3),
    ("Gerente Demo", "gerente@sistec.local", 4),
    ("Admin Demo", "admin@sistec.local", 5),
]


async def seed() -> int:
    """Insert missing demo users. Returns how many were created."""
    created = 0
    async with get_session_context() as session:
        for name, email, level in DEMO_USERS:
            email = email.strip().lower()
            exists = await session.execute(select(UserModel.id).where(func.lower(UserModel.email) == email))
            if exists.scalar_one_or_none() is not None:
                continue
            session.add(UserModel(name=name, email=email, access_level=level))
            created += 1
    return created


async def main() -> None:
    setup_logging(settings.log_level, settings.environment)
    init_database()
    try:
        await create_tables()
        created = await seed()
        logger.info("Demo users seeded", extra={"created": created})
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(main())
