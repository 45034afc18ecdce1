from fastapi import (
    FastAPI,
    File,
    UploadFile,
    HTTPException,
    Form,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from typing import List, Optional
import logging
import os

from dotenv import load_dotenv

from CheatSheetModule import (
    CheatSheetError,
    CheatSheetPipeline,
    InvalidConstraints,
    SourceDocument,
)
from tools.temp_files import new_request_id

load_dotenv()

app = FastAPI(title="Cheat Sheet API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)

_pipeline: Optional[CheatSheetPipeline] = None


def get_pipeline() -> CheatSheetPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = CheatSheetPipeline()
    return _pipeline


def _parse_layout_value(name: str, raw: str) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidConstraints(f"{name} must be an integer, got {raw!r}")


@app.post("/api/cheatsheet")
async def create_cheatsheet(
    files: List[UploadFile] = File(...),
    columns: str = Form("1"),
    pages: str = Form("1"),
):
    """Build a cheat sheet PDF from the uploaded documents."""
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded.")

    request_id = new_request_id()
    documents = []
    for upload in files:
        data = await upload.read()
        documents.append(
            SourceDocument(
                data=data,
                mime_type=upload.content_type or "application/octet-stream",
                original_name=upload.filename or "",
            )
        )

    try:
        result = await run_in_threadpool(
            get_pipeline().generate,
            documents,
            _parse_layout_value("columns", columns),
            _parse_layout_value("pages", pages),
            request_id,
        )
    except CheatSheetError as e:
        logger.error("[%s] Error generating cheat sheet: %s", request_id, e.message)
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())

    return Response(
        content=result.pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": "attachment; filename=cheatsheet.pdf",
            "X-Request-ID": result.request_id,
        },
    )


@app.get("/api/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
