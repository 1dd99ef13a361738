import logging

from fastapi import APIRouter, HTTPException, Request

from draftkb.core.models import Document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])

# large or internal fields the listing doesn't need
_HEAVY_FIELDS = {"extracted_text", "title_embedding", "content_embedding", "combined_embedding"}


def _public(doc: Document, full: bool = False) -> dict:
    exclude = {"title_embedding", "content_embedding", "combined_embedding"} if full else _HEAVY_FIELDS
    return doc.model_dump(mode="json", exclude=exclude)


def _get_or_404(request: Request, doc_id: str) -> Document:
    doc = request.app.state.store.get_document(doc_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


@router.get("")
def list_docs(request: Request, user_id: str, category: str | None = None, status: str | None = None):
    docs = request.app.state.store.list_documents(user_id, status=status, category=category)
    return [_public(d) for d in docs]


@router.get("/{doc_id}")
def get_doc(request: Request, doc_id: str):
    return _public(_get_or_404(request, doc_id), full=True)


@router.get("/{doc_id}/chunks")
def get_doc_chunks(request: Request, doc_id: str):
    _get_or_404(request, doc_id)
    return [c.model_dump(exclude={"embedding"}) for c in request.app.state.store.get_chunks(doc_id)]


@router.delete("/{doc_id}")
def archive_doc(request: Request, doc_id: str):
    state = request.app.state
    _get_or_404(request, doc_id)
    state.store.archive_document(doc_id)
    for vectors in (state.doc_vectors, state.chunk_vectors):
        try:
            vectors.delete_by_doc_id(doc_id)
        except Exception as e:
            # retrieval re-checks status in the store, so stale points are harmless
            logger.warning("Could not drop vectors for archived document %s: %s", doc_id, e)
    return {"ok": True, "document_id": doc_id, "status": "archived"}
