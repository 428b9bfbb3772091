"""Admin router for tag statistics and co-occurrence maintenance."""

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.auth import require_admin
from schnitzarchiv.database import get_session
from schnitzarchiv.services.catalog import SourceCatalog
from schnitzarchiv.services.cooccurrence import TagCooccurrenceStore, count_tags

router = APIRouter(
    prefix="/admin/tags",
    tags=["admin-tags"],
    dependencies=[Depends(require_admin)],
)


@router.get("")
async def list_tags(session: AsyncSession = Depends(get_session)):
    """Every tag with its source count and its ten closest related tags."""
    sources = await SourceCatalog(session).all()
    counts = count_tags(source.tags for source in sources)
    store = TagCooccurrenceStore(session)

    tags = []
    for tag, count in counts.most_common():
        related = await store.related_tags(tag, limit=10)
        tags.append({"tag": tag, "count": count, "related_tags": related})

    return {
        "total_tags": len(tags),
        "total_sources": len(sources),
        "tags": tags,
    }


@router.post("/rebuild-cooccurrence")
async def rebuild_cooccurrence(session: AsyncSession = Depends(get_session)):
    """Recompute co-occurrence counts from all sources' tags."""
    pairs = await TagCooccurrenceStore(session).rebuild()
    return {"success": True, "pairs": pairs}
