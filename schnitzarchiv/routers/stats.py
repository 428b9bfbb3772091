"""Stats router for the admin dashboard overview."""

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.auth import require_admin
from schnitzarchiv.database import get_session
from schnitzarchiv.services.catalog import SourceCatalog
from schnitzarchiv.services.query_queue import SearchQueryQueue

router = APIRouter(prefix="/admin", tags=["stats"])


@router.get("/stats")
async def get_stats(
    session: AsyncSession = Depends(get_session),
    _: str = Depends(require_admin),
):
    """Catalog totals plus the query queue broken down by status."""
    source_stats = await SourceCatalog(session).stats()
    queries = await SearchQueryQueue(session).count_by_status()

    return {
        **source_stats,
        "queries": {
            "total": sum(queries.values()),
            **queries,
        },
    }
