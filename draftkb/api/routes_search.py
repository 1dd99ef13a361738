from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from draftkb.core.models import KnowledgeContext, SearchMode

router = APIRouter(prefix="/search", tags=["search"])


class SearchRequest(BaseModel):
    user_id: str
    query: str
    limit: int | None = Field(default=None, ge=1)
    search_type: SearchMode = "hybrid"
    category: str | None = None


@router.post("", response_model=KnowledgeContext)
def search(request: Request, req: SearchRequest):
    if not (req.query or "").strip():
        raise HTTPException(status_code=400, detail="query is required")
    return request.app.state.retriever.retrieve(
        req.user_id, req.query, limit=req.limit, mode=req.search_type, category=req.category
    )
