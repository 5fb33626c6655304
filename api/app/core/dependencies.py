"""FastAPI dependencies for injection into route handlers."""

from datetime import UTC, datetime

from fastapi import Depends, HTTPException, Path, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.models.club import Club


def get_now() -> datetime:
    """Current instant. Routes take the clock from here so tests can pin it."""
    return datetime.now(UTC)


async def get_club(
    slug: str = Path(...),
    db: AsyncSession = Depends(get_db),
) -> Club:
    """Resolve the active club identified by URL slug, or 404."""
    result = await db.execute(select(Club).where(Club.slug == slug, Club.is_active.is_(True)))
    club = result.scalar_one_or_none()
    if club is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Club not found")
    return club
