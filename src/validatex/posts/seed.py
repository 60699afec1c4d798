"""Default post categories. Seeding is idempotent."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from validatex.db.models import Category

logger = structlog.get_logger()

CATEGORY_SEED_DATA: list[dict[str, str]] = [
    {"name": "Technology", "icon": "💻"},
    {"name": "Business", "icon": "💼"},
    {"name": "Health", "icon": "🩺"},
    {"name": "Education", "icon": "📚"},
    {"name": "Finance", "icon": "💰"},
    {"name": "Entertainment", "icon": "🎬"},
    {"name": "Lifestyle", "icon": "🌿"},
    {"name": "Other", "icon": "📝"},
]


async def seed_categories(db: AsyncSession) -> int:
    """Insert any missing default categories. Returns how many were added."""
    result = await db.execute(select(Category.name))
    existing = set(result.scalars().all())
    missing = [row for row in CATEGORY_SEED_DATA if row["name"] not in existing]
    for row in missing:
        db.add(Category(**row))
    if missing:
        await db.commit()
        logger.info("categories_seeded", count=len(missing))
    return len(missing)
