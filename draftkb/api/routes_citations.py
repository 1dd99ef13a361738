from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from draftkb.core.models import Citation, DraftTarget, SearchMode
from draftkb.services.audit_service import audit, record_usage
from draftkb.services.citation_service import build_prompt

router = APIRouter(prefix="/citations", tags=["citations"])


class PromptRequest(BaseModel):
    user_id: str
    subject: str | None = None
    sender: str | None = None
    body: str = ""
    query: str | None = None
    instructions: str | None = None
    limit: int | None = Field(default=None, ge=1)
    search_type: SearchMode = "hybrid"
    category: str | None = None


class AuditRequest(BaseModel):
    generated_text: str
    citations: list[Citation]
    accepted: bool = False


@router.post("/prompt")
def citation_prompt(request: Request, req: PromptRequest):
    # custom instructions beat the email itself as the search query
    query = req.query or req.instructions or f"{req.subject or ''} {req.body}".strip()
    ctx = request.app.state.retriever.retrieve(
        req.user_id, query, limit=req.limit, mode=req.search_type, category=req.category
    )
    target = DraftTarget(subject=req.subject, sender=req.sender, body=req.body)
    return {
        "prompt": build_prompt(ctx.citations, target, req.instructions),
        "citations": ctx.citations,
        "search_type": ctx.search_type,
        "degraded": ctx.degraded,
        "suggestions": ctx.suggestions,
    }


@router.post("/audit")
def citation_audit(request: Request, req: AuditRequest):
    result = audit(req.generated_text, req.citations)
    recorded: list[str] = []
    if req.accepted:
        recorded = record_usage(request.app.state.store, result, req.citations)
    return {**result.model_dump(), "recorded_documents": recorded}
