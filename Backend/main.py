# --- Imports ---
from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from contextlib import asynccontextmanager
import logging
import sys
import os

from assistant import SecurityAssistant, AssistantError
from auth import get_current_user, AuthenticatedUser
from db import connect_db, disconnect_db, get_scan, list_scans
from models import ScanRequest, AssistantRequest
from recommendations import RecommendationGenerator
from scanner import SecurityScan
from security import validate_uuid, audit_logger
from validators import InvalidTargetError

# --- Logging Configuration ---
logging.basicConfig(
    stream=sys.stdout,
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("webguard.backend")


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# --- Lifecycle: Connect to DB on Startup ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🔌 Connecting to Database...")
    await connect_db()
    yield
    logger.info("🔌 Disconnecting from Database...")
    await disconnect_db()

app = FastAPI(title="WebGuard AI", lifespan=lifespan)

# ============================================================================
# SECURITY: Rate Limiting
# ============================================================================

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[os.getenv("RATE_LIMIT_DEFAULT", "60/minute")],
    enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# SECURITY: HTTPS Enforcement & CORS Configuration
# ============================================================================

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000")
allowed_origins_list = [origin.strip() for origin in ALLOWED_ORIGINS.split(",")]

if ENVIRONMENT == "production":
    for origin in allowed_origins_list:
        if origin.startswith("http://") and "localhost" not in origin:
            raise ValueError(
                f"❌ SECURITY ERROR: HTTPS required in production!\n"
                f"Invalid origin: {origin}\n"
                f"All production origins must use HTTPS (https://)."
            )
    logger.info("✅ HTTPS enforcement validated for production")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# ============================================================================
# SECURITY: Security Headers Middleware
# ============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), camera=(), microphone=()"

        # Remove server identification
        if "server" in response.headers:
            del response.headers["server"]

        return response

app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected request body on {request.url.path}: {exc.errors()}")
    return error_response(400, "Invalid request body")


# --- Initialize Engines ---
recommendation_generator = RecommendationGenerator()
security_assistant = SecurityAssistant()

# --- Endpoints ---

@app.post("/scan-website")
@limiter.limit(os.getenv("RATE_LIMIT_SCAN", "10/minute"))
async def scan_website(request: Request, body: ScanRequest):
    """
    Scan a website and return the scored result.

    The probes run sequentially and degrade silently; the response is returned
    even if storing it failed (id is then null).
    """
    if not (body.url or "").strip():
        return error_response(400, "URL is required")

    try:
        scan = SecurityScan(body.url, user_id=body.userId, recommender=recommendation_generator)
        record = await scan.execute()
    except InvalidTargetError as e:
        logger.info(f"Rejected scan target {body.url!r}: {e}")
        return error_response(400, "Invalid URL")
    except Exception as e:
        logger.exception("Error in scan-website")
        return error_response(500, str(e) or "Internal server error")

    return record.to_wire()


@app.post("/security-assistant")
@limiter.limit(os.getenv("RATE_LIMIT_ASSISTANT", "20/minute"))
async def ask_security_assistant(request: Request, body: AssistantRequest):
    """
    Stream an AI answer to a follow-up question about a scan.

    Upstream errors are reported as JSON before any bytes are streamed.
    """
    if not body.message or not body.message.strip():
        return error_response(400, "Message is required")

    try:
        stream = await security_assistant.open_stream(body)
    except AssistantError as e:
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception("Error in security-assistant")
        return error_response(500, str(e) or "Internal server error")

    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"}
    )


@app.get("/scans")
async def list_my_scans(
    limit: int = 20,
    user: AuthenticatedUser = Depends(get_current_user)
):
    """List the authenticated user's scans, newest first."""
    if limit < 1 or limit > 100:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 100")

    records = await list_scans(user.id, limit=limit)
    return [record.to_wire() for record in records]


@app.get("/scans/{scan_id}")
async def get_scan_result(
    request: Request,
    scan_id: str,
    user: AuthenticatedUser = Depends(get_current_user)
):
    """
    Fetch one stored scan for the dashboard.

    Security:
    - Requires authentication
    - Validates UUID format
    - Scans with an owner are only visible to that owner
    """
    try:
        safe_scan_id = validate_uuid(scan_id, "scan_id")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    record = await get_scan(safe_scan_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Scan not found")

    ip_address = request.client.host if request.client else None

    if record.owner and record.owner != user.id:
        audit_logger.log_scan_denied(
            user_id=user.id,
            scan_id=safe_scan_id,
            owner_id=record.owner,
            ip_address=ip_address
        )
        raise HTTPException(status_code=403, detail="Access denied: Not your scan")

    audit_logger.log_scan_read(user_id=user.id, scan_id=safe_scan_id, ip_address=ip_address)

    return record.to_wire()


@app.get("/")
async def root():
    return {"message": "WebGuard AI Engine Running"}
