"""Compliance Guardian — FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from guardian.backends.base import ReasoningBackend
from guardian.backends.gemini import GeminiBackend
from guardian.config import settings
from guardian.db.database import KeyValueBackend, SqliteBackend
from guardian.db.store import CredentialStore, SourceStore
from guardian.errors import (
    AuthenticationError,
    GuardianError,
    IngestionBusyError,
    IngestionError,
    InputValidationError,
    RemoteServiceError,
)
from guardian.ingestion.pipeline import IngestionPipeline, UploadedFile, load_evidence_image
from guardian.models.source import EvidenceImage, RegulationSource, SourceKind
from guardian.orchestrator.admin import AdminGate
from guardian.orchestrator.auditor import ComplianceAuditor
from guardian.orchestrator.report_renderer import ReportRenderer

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InputValidationError: 400,
    AuthenticationError: 401,
    IngestionBusyError: 409,
    IngestionError: 422,
    RemoteServiceError: 502,
}


@dataclass
class Services:
    """Everything a request handler needs, wired once per application."""

    store: SourceStore
    credentials: CredentialStore
    pipeline: IngestionPipeline
    auditor: ComplianceAuditor
    admin: AdminGate
    renderer: ReportRenderer
    evidence: EvidenceImage | None = None


# --- Request / Response models ---


class ManualSourceRequest(BaseModel):
    content: str
    name: str | None = None


class LoginRequest(BaseModel):
    admin_id: str
    password: str


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


class AuditRequest(BaseModel):
    scenario: str
    use_search: bool = False


class QuestionRequest(BaseModel):
    question: str


class ImageEditRequest(BaseModel):
    prompt: str


def summarize(source: RegulationSource) -> dict:
    return {
        "id": source.id,
        "name": source.name,
        "kind": source.kind.value,
        "created_at": source.created_at.isoformat(),
        "content_chars": len(source.content),
        "visual_pages": len(source.visual_pages or ()),
    }


def create_app(
    kv_backend: KeyValueBackend | None = None,
    reasoning: ReasoningBackend | None = None,
) -> FastAPI:
    """Wire stores, pipeline and backend into a FastAPI app.

    Defaults to the on-disk SQLite backing and the Gemini backend; tests
    inject a MemoryBackend and a fake reasoning backend.
    """
    kv = kv_backend if kv_backend is not None else SqliteBackend(settings.database_path)
    store = SourceStore(kv)
    credentials = CredentialStore(kv, settings.admin_id, settings.default_admin_password)
    services = Services(
        store=store,
        credentials=credentials,
        pipeline=IngestionPipeline(store),
        auditor=ComplianceAuditor(store, reasoning or GeminiBackend()),
        admin=AdminGate(credentials),
        renderer=ReportRenderer(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(kv, SqliteBackend):
            await kv.connect()
        await credentials.ensure_default()
        yield
        if isinstance(kv, SqliteBackend):
            await kv.close()

    app = FastAPI(
        title="Compliance Guardian",
        description="Multimodal regulation compliance audit assistant",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GuardianError)
    async def guardian_error_handler(request: Request, exc: GuardianError):
        status = next(
            (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500
        )
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    # --- Routes ---

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/sources")
    async def list_sources():
        corpus = await services.store.load()
        return {"sources": [summarize(s) for s in corpus]}

    @app.get("/api/sources/{source_id}")
    async def get_source(source_id: str):
        source = (await services.store.load()).get(source_id)
        if source is None:
            raise HTTPException(status_code=404, detail="Source not found")
        return source.to_dict()

    @app.post("/api/sources/upload")
    async def upload_sources(
        files: list[UploadFile] = File(...),
        strict: bool = True,
        x_admin_token: str | None = Header(default=None),
    ):
        """Ingest a batch of regulation files.

        Image files in the batch replace the current evidence image instead
        of joining the corpus.
        """
        services.admin.require(x_admin_token)
        uploads = [UploadedFile(f.filename or "upload", await f.read()) for f in files]
        result = await services.pipeline.ingest(uploads, strict=strict)
        if result.evidence_image is not None:
            services.evidence = result.evidence_image

        corpus = result.corpus or await services.store.load()
        return {
            "sources": [summarize(s) for s in result.sources],
            "failures": [{"filename": f.filename, "reason": f.reason} for f in result.failures],
            "evidence_image": result.evidence_image.name if result.evidence_image else None,
            "total_sources": len(corpus),
        }

    @app.post("/api/sources/manual")
    async def add_manual_source(
        req: ManualSourceRequest, x_admin_token: str | None = Header(default=None)
    ):
        services.admin.require(x_admin_token)
        source = await services.pipeline.add_text(req.content, req.name)
        return summarize(source)

    @app.delete("/api/sources/{source_id}")
    async def delete_source(source_id: str, x_admin_token: str | None = Header(default=None)):
        services.admin.require(x_admin_token)
        try:
            corpus = await services.store.delete(source_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="Source not found")
        return {"deleted": source_id, "total_sources": len(corpus)}

    @app.post("/api/admin/login")
    async def login(req: LoginRequest):
        token = await services.admin.login(req.admin_id, req.password)
        return {"token": token}

    @app.post("/api/admin/logout")
    async def logout(x_admin_token: str | None = Header(default=None)):
        services.admin.require(x_admin_token)
        services.admin.logout(x_admin_token)
        return {"status": "ok"}

    @app.post("/api/admin/password")
    async def change_password(
        req: PasswordChangeRequest, x_admin_token: str | None = Header(default=None)
    ):
        services.admin.require(x_admin_token)
        await services.credentials.change_password(
            req.current_password, req.new_password, req.confirm_password
        )
        return {"status": "ok"}

    @app.post("/api/audit")
    async def audit(req: AuditRequest):
        report = await services.auditor.run_audit(req.scenario, req.use_search)
        return {
            **report.to_dict(),
            "label": services.renderer.label(report.status),
            "rendered": services.renderer.render(report),
        }

    @app.post("/api/ask")
    async def ask(req: QuestionRequest):
        answer = await services.auditor.ask(req.question)
        return {"answer": answer}

    @app.post("/api/evidence")
    async def upload_evidence(file: UploadFile = File(...)):
        filename = file.filename or ""
        if SourceKind.from_filename(filename) is not SourceKind.IMAGE:
            raise InputValidationError("Evidence must be a jpg, jpeg, png or webp image")
        services.evidence = load_evidence_image(UploadedFile(filename, await file.read()))
        return {"name": services.evidence.name, "image": services.evidence.data_uri}

    @app.get("/api/evidence")
    async def get_evidence():
        if services.evidence is None:
            raise HTTPException(status_code=404, detail="No evidence image loaded")
        return {"name": services.evidence.name, "image": services.evidence.data_uri}

    @app.post("/api/evidence/edit")
    async def edit_evidence(req: ImageEditRequest):
        current = services.evidence
        edited = await services.auditor.edit_image(
            current.data_uri if current else None, req.prompt
        )
        services.evidence = EvidenceImage(name=current.name, data_uri=edited)
        return {"name": current.name, "image": edited}

    return app


logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
