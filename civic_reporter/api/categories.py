"""
Category API endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from civic_reporter.api.deps import get_db
from civic_reporter.models import Category
from civic_reporter.schemas import CategoryResponse

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=List[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    """List active issue categories, emergencies first then by name."""
    result = await db.execute(
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.is_emergency.desc(), Category.name)
    )
    return result.scalars().all()
