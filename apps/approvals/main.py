"""
Content Approval Desk - API Module

Serves the review queues read from Google Sheets and forwards operator
decisions to the n8n automation webhook. The operator UI talks to this API
only; all sheet writes happen inside the automation flows.
"""
import logging
import math
from contextlib import asynccontextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

# Load environment variables from the project root .env file
from dotenv import load_dotenv

project_root = Path(__file__).parent.parent.parent
dotenv_path = project_root / ".env"
load_dotenv(dotenv_path=dotenv_path)

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps.approvals.config import AppConfig
from apps.approvals.dashboard import (
    approved_rows,
    dashboard_stats,
    filter_pending,
    published_rows,
)
from apps.approvals.decisions import DecisionRegistry
from apps.approvals.errors import (
    MissingIdentifier,
    PermanentDeliveryFailure,
    SheetFetchError,
    UnknownContentType,
)
from apps.approvals.models import (
    ActionRequest,
    ActionType,
    ContentType,
    UndoRequest,
)
from apps.approvals.payloads import (
    apply_feedback,
    build_action_payload,
    content_edit_rejection,
    rss_rejection,
)
from apps.approvals.sheets import (
    CategoryConfig,
    SheetsClient,
    build_category_table,
    category_config,
)
from apps.approvals.sheets.status import caption_length, caption_level, dup_info
from apps.approvals.webhooks import DispatchClient

app_config = AppConfig()

# Configure logging
logging.basicConfig(
    level=getattr(logging, app_config.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("approvals")

# ============================================================
# Constants
# ============================================================

API_VERSION = "1.0.0"
WEBHOOK_ACTIONS = frozenset({"approve", "reject", "submit"})

# ============================================================
# Shared services
# ============================================================

category_table = build_category_table(app_config)
decision_registry = DecisionRegistry()
dispatcher = DispatchClient(
    app_config.webhook_endpoint,
    timeout=app_config.dispatch_timeout,
    max_attempts=app_config.dispatch_max_attempts,
    base_delay=app_config.dispatch_base_delay,
)
sheets_client = SheetsClient(timeout=app_config.sheets_timeout)

# ============================================================
# Application Setup
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager; closes the shared sheets client on shutdown."""
    logger.info(f"Dispatching actions to {app_config.to_dict()['webhook_endpoint']}")
    yield
    logger.info("Closing sheets client...")
    await sheets_client.close()

app = FastAPI(title="Content Approval Desk", version=API_VERSION, lifespan=lifespan)

# Configure CORS
allowed_origins = list(app_config.cors_origins)

if not allowed_origins:
    logger.warning("No CORS origins specified, allowing all origins in development mode")
    allowed_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# Error Handling - Consistent Error Format
# ============================================================

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


def _error_response(
    status: int,
    code: str,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None,
) -> JSONResponse:
    """Create a standardized error JSONResponse."""
    body: Dict[str, Any] = {
        "error": {
            "code": code,
            "status": status,
            "message": message,
        }
    }
    if details is not None:
        body["error"]["details"] = details
    return JSONResponse(status_code=status, content=body)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    code = _HTTP_ERROR_CODES.get(exc.status_code, "ERROR")
    return _error_response(exc.status_code, code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        field = ".".join(str(loc) for loc in err.get("loc", []))
        details.append({
            "field": field,
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        })
    return _error_response(422, "VALIDATION_ERROR", "Request validation failed", details)


@app.exception_handler(MissingIdentifier)
@app.exception_handler(UnknownContentType)
async def bad_request_handler(request: Request, exc: Exception):
    return _error_response(400, "BAD_REQUEST", str(exc))


@app.exception_handler(PermanentDeliveryFailure)
async def delivery_failure_handler(request: Request, exc: PermanentDeliveryFailure):
    details = [{
        "status_code": exc.status_code,
        "attempts": exc.attempts,
        "response_body": exc.response_body,
    }]
    return _error_response(502, "BAD_GATEWAY", str(exc), details)


@app.exception_handler(SheetFetchError)
async def sheet_fetch_handler(request: Request, exc: SheetFetchError):
    return _error_response(502, "BAD_GATEWAY", str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error_response(500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred")


# ============================================================
# Pagination
# ============================================================

def paginate(items: list, page: int, page_size: int) -> dict:
    """Apply offset-based pagination to a list of items."""
    total = len(items)
    total_pages = math.ceil(total / page_size) if page_size > 0 else 0
    start = (page - 1) * page_size
    end = start + page_size
    return {
        "items": items[start:end],
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
    }


def _annotate(item: Dict[str, Any]) -> Dict[str, Any]:
    annotated = dict(item)
    annotated["dupInfo"] = asdict(dup_info(item))
    caption = item.get("caption")
    if caption:
        length = caption_length(caption)
        annotated["captionLength"] = length
        annotated["captionLevel"] = caption_level(length)
    return annotated


# ============================================================
# API Routes (v1)
# ============================================================

v1 = APIRouter(prefix="/api/v1", tags=["v1"])


@v1.get("/config")
async def get_config():
    """Current configuration with webhook URLs redacted."""
    return app_config.to_dict(redact_secrets=True)


@v1.get("/queues/{content_type}")
async def list_queue(
    content_type: str,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
):
    """Rows of one review queue still waiting for a decision (paginated)."""
    config = category_config(content_type, category_table)
    rows = await sheets_client.fetch_category(config)
    pending = filter_pending(rows, config.content_type, decision_registry)
    return paginate([_annotate(item) for item in pending], page, page_size)


def _publish_category(content_type: str) -> CategoryConfig:
    config = category_config(content_type, category_table)
    if config.publish_column is None:
        raise HTTPException(
            status_code=400,
            detail=f"{config.content_type.value} has no publish column",
        )
    return config


@v1.get("/queues/{content_type}/approved")
async def list_approved(
    content_type: str,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
):
    """Rows approved in the sheet (publish cell ``YES``) and not posted yet."""
    config = _publish_category(content_type)
    rows = await sheets_client.fetch_category(config)
    return paginate([_annotate(item) for item in approved_rows(rows)], page, page_size)


@v1.get("/queues/{content_type}/published")
async def list_published(
    content_type: str,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
):
    """Rows whose publish cell holds a post id or post URL."""
    config = _publish_category(content_type)
    rows = await sheets_client.fetch_category(config)
    return paginate([_annotate(item) for item in published_rows(rows)], page, page_size)


@v1.get("/stats")
async def get_stats():
    config = category_config(ContentType.CONTENT, category_table)
    rows = await sheets_client.fetch_category(config)
    return dashboard_stats(rows)


@v1.get("/timeline")
async def get_timeline():
    """Scheduled posts as reported by the automation flow."""
    entries = await sheets_client.fetch_timeline(app_config.timeline_url)
    return {"items": entries, "total": len(entries)}


@v1.post("/actions")
async def submit_action(body: ActionRequest):
    """Normalize an operator decision and deliver it to the automation webhook.

    The decision is recorded locally only after the webhook accepted it.
    """
    if body.action == ActionType.REJECT and body.edits is not None:
        payload = content_edit_rejection(body.content_type, body.item, body.edits)
    elif body.action == ActionType.REJECT and body.rss_edits is not None:
        payload = rss_rejection(body.content_type, body.item, body.rss_edits)
    else:
        payload = build_action_payload(body.action, body.content_type, body.item)
        if body.action == ActionType.REJECT:
            apply_feedback(payload, feedback=body.feedback, image_query=body.image_query)

    result = await dispatcher.send(payload)

    decision = None
    if body.action == ActionType.APPROVE:
        decision = decision_registry.record(body.item, "approved")
    elif body.action == ActionType.REJECT:
        decision = decision_registry.record(body.item, "rejected")

    return {
        "ok": True,
        "status": result.status_code,
        "attempts": result.attempts,
        "data": result.data,
        "decision": decision,
        "payload": payload.to_wire(),
    }


@v1.get("/decisions")
async def list_decisions():
    decisions = decision_registry.list_decisions()
    return {"items": decisions, "total": len(decisions)}


@v1.post("/decisions/undo")
async def undo_decision(body: UndoRequest):
    """Forget the local decision for an item so it shows up in its queue again."""
    if not decision_registry.undo(body.item):
        raise HTTPException(status_code=404, detail="Decision not found")
    return {"message": "Decision removed", "key": decision_registry.item_key(body.item)}


# Include versioned router
app.include_router(v1)


# ============================================================
# Health Check (unversioned)
# ============================================================

@app.get("/")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "Content Approval Desk API",
        "version": API_VERSION,
    }


# ============================================================
# Local webhook receiver
# ============================================================

def _missing_fields(body: Dict[str, Any]) -> List[str]:
    missing = [
        name for name in ("action", "contentType", "sheet")
        if body.get(name) in (None, "")
    ]
    lookup = body.get("lookup")
    has_lookup = isinstance(lookup, dict) and any(lookup.values())
    if body.get("row") in (None, "") and not has_lookup:
        missing.append("row")
    return missing


@app.post("/webhook")
async def receive_webhook(request: Request):
    """Pass-through receiver for local runs without the automation flow."""
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Body must be JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")

    missing = _missing_fields(body)
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required: {', '.join(missing)}")

    action = str(body["action"]).lower()
    content_type = str(body["contentType"]).lower()
    sheet = body["sheet"]
    row = body.get("row")

    if action not in WEBHOOK_ACTIONS:
        raise HTTPException(status_code=400, detail="Unknown action")

    logger.info(f"[/webhook] received action={action} contentType={content_type} sheet={sheet} row={row}")
    return {
        "ok": True,
        "action": action,
        "contentType": content_type,
        "sheet": sheet,
        "row": row,
    }


# For direct execution
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app_config.backend_port)
