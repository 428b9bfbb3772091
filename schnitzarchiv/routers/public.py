"""Public API router for the visitor-facing archive."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.database import get_session
from schnitzarchiv.errors import SourceNotFoundError
from schnitzarchiv.models import SourceCategory, SourceRead
from schnitzarchiv.routers.pagination import paginate
from schnitzarchiv.services.catalog import SourceCatalog
from schnitzarchiv.services.cooccurrence import RelatedTag, TagCooccurrenceStore, normalize_tags

router = APIRouter(tags=["public"])


@router.get("/sources", response_model=dict)
async def list_sources(
    session: AsyncSession = Depends(get_session),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: str | None = None,
    category: SourceCategory | None = None,
    language: str | None = None,
    tag: str | None = None,
    min_score: int | None = Query(None, ge=0, le=10),
    starred_only: bool = False,
):
    """List sources, newest first, with filtering and pagination."""
    sources = await SourceCatalog(session).search(
        search=search,
        category=category,
        language=language,
        tag=tag,
        min_score=min_score,
        starred_only=starred_only,
    )
    return paginate(sources, page, per_page, SourceRead.model_validate)


@router.get("/sources/{source_id}", response_model=SourceRead)
async def get_source(
    source_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Get a single source by ID."""
    source = await SourceCatalog(session).get(source_id)
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")
    return source


@router.get("/sources/{source_id}/similar")
async def get_similar_sources(
    source_id: int,
    limit: int = Query(5, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
):
    """Sources sharing the most tags with the given one."""
    try:
        scored = await TagCooccurrenceStore(session).similar_sources(source_id, limit=limit)
    except SourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return [
        {
            **SourceRead.model_validate(item.source).model_dump(mode="json"),
            "similarity_score": item.similarity_score,
            "shared_tags": item.shared_tags,
        }
        for item in scored
    ]


@router.get("/tags")
async def list_tags(session: AsyncSession = Depends(get_session)):
    """All tags with the sources carrying them, most used tag first."""
    sources = await SourceCatalog(session).all()

    by_tag: dict[str, list[dict]] = {}
    for source in sources:
        for tag in normalize_tags(source.tags):
            by_tag.setdefault(tag, []).append(
                {
                    "id": source.id,
                    "title": source.title,
                    "url": source.url,
                    "category": source.category,
                    "summary": source.summary,
                    "display_score": source.display_score,
                }
            )

    tags = [
        {
            "tag": tag,
            "count": len(items),
            "sources": sorted(items, key=lambda item: item["display_score"], reverse=True),
        }
        for tag, items in by_tag.items()
    ]
    tags.sort(key=lambda item: item["count"], reverse=True)

    return {
        "total_tags": len(tags),
        "total_sources": len(sources),
        "tags": tags,
    }


@router.get("/tags/{tag}/related", response_model=list[RelatedTag])
async def get_related_tags(
    tag: str,
    limit: int = Query(10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
):
    """Tags most often seen together with ``tag``."""
    return await TagCooccurrenceStore(session).related_tags(tag, limit=limit)


@router.get("/stats")
async def get_public_stats(session: AsyncSession = Depends(get_session)):
    """Totals plus per-category and per-language counts."""
    return await SourceCatalog(session).stats()
