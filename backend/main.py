"""FastAPI application for statement upload and transaction extraction."""

import logging

from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import ProviderChoice, settings
from backend.db.sqlite import Database, db
from backend.errors import StatementError
from backend.models import ErrorResponse, ProviderInfo, Transaction, UploadResponse
from backend.parsers.llm_client import ProviderGateway
from backend.services.progress import get_progress
from backend.services.upload import process_upload

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Provider clients are bound to their credentials once, at process start
gateway = ProviderGateway.from_settings(settings)

app = FastAPI(
    title="StatementAI",
    description="Bank statement upload with LLM-powered transaction extraction",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store() -> Database:
    return db


def get_gateway() -> ProviderGateway:
    return gateway


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Authenticated user id, supplied by the auth layer in front of this service."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authorized")
    return x_user_id


@app.exception_handler(StatementError)
async def statement_error_handler(request: Request, exc: StatementError) -> JSONResponse:
    """Render pipeline failures as {success: false, message}."""
    if exc.status_code >= 500:
        logger.error(f"{request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(message=exc.message).model_dump())


@app.on_event("startup")
async def startup():
    """Log configuration on startup."""
    settings.log_config()
    if not gateway.configured:
        logger.warning("No AI provider configured; statement uploads will fail")


@app.get("/health")
async def health_check(
    store: Database = Depends(get_store),
    provider_gateway: ProviderGateway = Depends(get_gateway),
):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "transaction_count": store.get_transaction_count(),
        "providers": [name.value for name in provider_gateway.configured],
    }


@app.post("/statements/upload", response_model=UploadResponse)
async def upload_statement(
    statement: UploadFile = File(...),
    provider: ProviderChoice | None = None,
    user_id: str = Depends(get_current_user_id),
    store: Database = Depends(get_store),
    provider_gateway: ProviderGateway = Depends(get_gateway),
):
    """Upload a bank statement (PDF, CSV or TXT) and extract its transactions."""
    contents = await statement.read()
    return await process_upload(
        filename=statement.filename,
        content_type=statement.content_type,
        contents=contents,
        user_id=user_id,
        gateway=provider_gateway,
        store=store,
        preference=provider,
    )


@app.get("/statements/progress/{upload_id}")
async def upload_progress(upload_id: str, user_id: str = Depends(get_current_user_id)):
    """Get progress of a statement being processed."""
    progress = get_progress(user_id, upload_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="No upload in progress")
    return progress


@app.get("/transactions", response_model=list[Transaction])
async def get_transactions(
    limit: int = 1000,
    user_id: str = Depends(get_current_user_id),
    store: Database = Depends(get_store),
):
    """Get the caller's transactions, newest first."""
    return store.get_transactions(user_id, limit=limit)


@app.get("/providers", response_model=list[ProviderInfo])
async def get_providers(provider_gateway: ProviderGateway = Depends(get_gateway)):
    """List the AI providers that have credentials configured."""
    return provider_gateway.available_providers()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.dev_mode,
    )
