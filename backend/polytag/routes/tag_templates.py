"""Tag templates API routes."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from polytag.config import Settings
from polytag.database import get_db
from polytag.dependencies import get_settings
from polytag.models.tag_template import TagTemplate
from polytag.schemas.tag_template import (
    TagTemplateCreate,
    TagTemplateCreateResponse,
    TagTemplateListResponse,
)

router = APIRouter(prefix="/api/tag-templates", tags=["tag-templates"])


@router.get("", response_model=TagTemplateListResponse)
async def list_tag_templates(
    page: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """List tag templates by name, newest first among equal names."""
    page_size = settings.TAG_TEMPLATE_PAGE_SIZE
    result = await db.execute(
        select(TagTemplate)
        .order_by(TagTemplate.name.asc(), TagTemplate.created_at.desc(), TagTemplate.id.asc())
        .offset(page * page_size)
        .limit(page_size)
    )
    templates = result.scalars().all()
    return {"page": page, "items": [_to_response(t) for t in templates]}


@router.post("", response_model=TagTemplateCreateResponse, status_code=201)
async def create_tag_template(
    body: TagTemplateCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a tag template; without a value type its tags carry no value."""
    template = TagTemplate(**body.model_dump())
    db.add(template)
    await db.commit()
    return {"uuid": template.id}


def _to_response(template: TagTemplate) -> dict:
    return {
        "uuid": template.id,
        "name": template.name,
        "description": template.description,
        "value_type": template.value_type,
        "created_at": template.created_at,
    }
