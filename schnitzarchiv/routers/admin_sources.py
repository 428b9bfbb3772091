"""Admin router for curating the source catalog."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.auth import require_admin
from schnitzarchiv.database import get_session
from schnitzarchiv.errors import DuplicateSourceError, MetadataGenerationError, SourceNotFoundError
from schnitzarchiv.models import Source, SourceCategory, SourceCreate, SourceRead, SourceUpdate
from schnitzarchiv.routers.pagination import paginate
from schnitzarchiv.services.catalog import SourceCatalog
from schnitzarchiv.services.cooccurrence import TagCooccurrenceStore
from schnitzarchiv.services.fetch import PageFetcher, get_page_fetcher
from schnitzarchiv.services.metadata import MetadataGenerator, SourceMetadata, get_metadata_generator
from schnitzarchiv.services.url_filter import is_allowed_url

router = APIRouter(
    prefix="/admin/sources",
    tags=["admin-sources"],
    dependencies=[Depends(require_admin)],
)


class PreviewRequest(BaseModel):
    url: str


@router.get("", response_model=dict)
async def list_sources(
    session: AsyncSession = Depends(get_session),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=200),
    search: str | None = None,
    category: SourceCategory | None = None,
    starred_only: bool = False,
):
    """List all sources for curation, newest first."""
    sources = await SourceCatalog(session).search(
        search=search, category=category, starred_only=starred_only
    )
    return paginate(sources, page, per_page, SourceRead.model_validate)


@router.post("", response_model=SourceRead, status_code=201)
async def create_source(
    source_in: SourceCreate,
    session: AsyncSession = Depends(get_session),
):
    """Add a source by hand."""
    if not source_in.url.strip():
        raise HTTPException(status_code=400, detail="URL must not be empty")

    source = Source.model_validate(source_in)
    source.url = source.url.strip()
    try:
        source = await SourceCatalog(session).insert(source)
    except DuplicateSourceError as e:
        raise HTTPException(status_code=409, detail=str(e))

    created = SourceRead.model_validate(source)
    if source.tags:
        await TagCooccurrenceStore(session).record_for_new_source(created.url, created.tags)
    return created


@router.post("/preview", response_model=SourceMetadata)
async def preview_source(
    request: PreviewRequest,
    fetcher: PageFetcher = Depends(get_page_fetcher),
    generator: MetadataGenerator = Depends(get_metadata_generator),
):
    """Fetch a page and generate its metadata without saving anything."""
    url = request.url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="URL must not be empty")
    if not is_allowed_url(url):
        raise HTTPException(status_code=400, detail="URL is not allowed")

    content = await fetcher.fetch(url)
    try:
        return await generator.generate(url, content)
    except MetadataGenerationError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.patch("/{source_id}", response_model=SourceRead)
async def update_source(
    source_id: int,
    source_update: SourceUpdate,
    session: AsyncSession = Depends(get_session),
):
    """Edit a source: score override, star, or corrected metadata."""
    try:
        return await SourceCatalog(session).update(source_id, source_update)
    except SourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{source_id}/correct-title", response_model=SourceRead)
async def correct_source_title(
    source_id: int,
    session: AsyncSession = Depends(get_session),
    generator: MetadataGenerator = Depends(get_metadata_generator),
):
    """Let the model clean up a source's title. Keeps the old title if that fails."""
    catalog = SourceCatalog(session)
    source = await catalog.get(source_id)
    if not source:
        raise HTTPException(status_code=404, detail="Source not found")

    title = await generator.correct_title(source.title, source.url, source.summary)
    if title == source.title:
        return source

    source.title = title
    source.last_updated = datetime.utcnow()
    session.add(source)
    await session.commit()
    await session.refresh(source)
    return source


@router.delete("/{source_id}")
async def delete_source(
    source_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Delete one source."""
    try:
        await SourceCatalog(session).delete(source_id)
    except SourceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"success": True}


@router.delete("")
async def delete_all_sources(session: AsyncSession = Depends(get_session)):
    """Empty the catalog and the tag co-occurrence counts derived from it."""
    deleted = await SourceCatalog(session).delete_all()
    await TagCooccurrenceStore(session).clear()
    return {"success": True, "deleted": deleted}
