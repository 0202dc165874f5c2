"""
HTTP surface for resume analysis.

POST /api/ai/analyze accepts a multipart form with `resumeText`,
`jobDescription` and an optional `resumeFile` (PDF/DOCX/TXT, 5 MB max; the
file wins over the text field). Pipeline errors come back as
{"error": {"kind", "message", "details"}} with the status of their kind.
The request input is checked before the analyzer is built, so a client
error is reported even when the server itself is misconfigured.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from .analysis import ResumeAnalyzer
from .config import get_settings
from .errors import CareerRAGError, MissingInputError
from .loaders import extract_resume_text
from .logging_config import configure_logging
from .services import build_analyzer

logger = logging.getLogger(__name__)


def get_analyzer(request: Request) -> ResumeAnalyzer:
    analyzer = getattr(request.app.state, "analyzer", None)
    if analyzer is None:
        analyzer = build_analyzer(get_settings())
        request.app.state.analyzer = analyzer
    return analyzer


def read_resume_text(
    resumeText: str = Form(""),
    resumeFile: Optional[UploadFile] = File(None),
) -> str:
    text = resumeText
    if resumeFile is not None and resumeFile.filename:
        text = extract_resume_text(resumeFile.filename, resumeFile.file.read())
    if not text.strip():
        raise MissingInputError("Resume text or file must be provided", details={"field": "resumeText"})
    return text


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_settings().log_level)
    logger.info("Application startup")
    yield
    logger.info("Application shutdown")


async def _career_rag_error_handler(request: Request, exc: CareerRAGError) -> JSONResponse:
    logger.warning(
        "Request failed",
        extra={"path": request.url.path, "kind": exc.kind, "error": exc.message},
    )
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


def create_app() -> FastAPI:
    app = FastAPI(
        title="CareerRAG Resume Analyzer",
        description="Retrieval-augmented resume analysis",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_exception_handler(CareerRAGError, _career_rag_error_handler)

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "healthy"}

    @app.post("/api/ai/analyze")
    def analyze_resume(
        resume_text: str = Depends(read_resume_text),
        jobDescription: str = Form(""),
        analyzer: ResumeAnalyzer = Depends(get_analyzer),
    ) -> Dict[str, Any]:
        result = analyzer.analyze(resume_text, jobDescription)
        return result.model_dump(mode="json", by_alias=True)

    return app
