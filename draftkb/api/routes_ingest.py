from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/ingest", tags=["ingest"])


def _split_tags(raw: str | None) -> list[str]:
    return [t for t in (raw or "").split(",") if t.strip()]


@router.post("/upload")
async def ingest_upload(
    request: Request,
    file: UploadFile = File(...),
    user_id: str = Form(...),
    title: str | None = Form(None),
    description: str | None = Form(None),
    category: str | None = Form(None),
    tags: str | None = Form(None),
    document_id: str | None = Form(None),
):
    state = request.app.state
    max_bytes = state.settings.MAX_UPLOAD_BYTES
    data = await file.read()
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {len(data)} bytes (limit {max_bytes})",
        )

    # extraction and embedding are blocking work
    result = await run_in_threadpool(
        state.processor.ingest_document,
        user_id=user_id,
        data=data,
        declared_type=file.content_type,
        filename=file.filename,
        title=title,
        description=description,
        category=category,
        tags=_split_tags(tags),
        doc_id=document_id,
    )
    if result.failure_code == "unsupported_format":
        return JSONResponse(status_code=415, content=result.model_dump())
    if result.failure_code == "document_not_found":
        return JSONResponse(status_code=404, content=result.model_dump())
    return result
