"""Saved script router."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import get_db
from models.saved_script import SavedScript

router = APIRouter()


class SaveScriptRequest(BaseModel):
    title: Optional[str] = None
    source_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sourceUrl", "source_url"),
    )
    transcript: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None


class SaveScriptResponse(BaseModel):
    id: str


class ScriptResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    source_url: str
    transcript: str
    analysis: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


def _serialize_script(script: SavedScript) -> ScriptResponse:
    return ScriptResponse(
        id=script.id,
        title=script.title,
        source_url=script.source_url,
        transcript=script.transcript,
        analysis=script.analysis_json,
        created_at=script.created_at.isoformat() if script.created_at else None,
    )


@router.post("", response_model=SaveScriptResponse)
async def save_script(request: SaveScriptRequest, db: AsyncSession = Depends(get_db)):
    """Save a transcript (and its analysis) to the script library."""
    transcript = request.transcript or ""
    if not transcript.strip():
        raise HTTPException(status_code=400, detail="transcript required")

    script = SavedScript(
        title=(request.title or "").strip() or "Untitled",
        source_url=(request.source_url or "").strip(),
        transcript=transcript,
        analysis_json=request.analysis or {},
    )
    db.add(script)
    await db.commit()
    await db.refresh(script)
    return SaveScriptResponse(id=script.id)


@router.get("", response_model=List[ScriptResponse])
async def list_scripts(
    limit: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Most recent scripts first."""
    max_rows = max(int(settings.SCRIPTS_LIST_LIMIT), 1)
    row_limit = min(limit or max_rows, max_rows)
    result = await db.execute(
        select(SavedScript).order_by(SavedScript.created_at.desc()).limit(row_limit)
    )
    return [_serialize_script(script) for script in result.scalars().all()]
