from typing import Any, Dict, Sequence
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select
from rentauto.schemas.common.pagination import PaginationMeta


async def paginate(
    session: AsyncSession,
    query: Select,
    page: int,
    limit: int,
    options: Sequence = (),
) -> Dict[str, Any]:
    """Run a filtered query for one page and count the full result set"""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = await session.scalar(count_query) or 0

    page_query = query.offset((page - 1) * limit).limit(limit)
    if options:
        page_query = page_query.options(*options)
    result = await session.execute(page_query)
    items = result.scalars().all()

    return {
        "items": items,
        "pagination": PaginationMeta.build(total=total, page=page, limit=limit),
    }
