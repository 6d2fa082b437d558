"""Main FastAPI application for the GreenGrid backend."""

import json
import logging
import os
import time
from datetime import UTC, datetime

import boto3
from botocore.exceptions import ClientError
from fastapi import (
    Depends,
    FastAPI,
    File,
    HTTPException,
    Query,
    Response,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.exceptions import HTTPException as StarletteHTTPException

from models.feedback import ContactSubmission, FeedbackSubmission
from models.notification import NotificationSubmission
from models.report import ReportPriority, ReportStatus, ReportStatusUpdate, ReportSubmission
from models.route import RouteSubmission
from models.user import LoginRequest, RefreshTokenRequest, RegisterRequest, UserRole
from services.auth_service import (
    AccountDisabledError,
    AuthenticatedUser,
    AuthenticationError,
    AuthService,
)
from services.dashboard_service import DashboardService
from services.feedback_service import FeedbackService
from services.image_storage import (
    ImageStorage,
    ImageStorageError,
    LocalImageStorage,
    create_image_storage,
    is_valid_public_id,
)
from services.notification_service import NotificationService
from services.realtime_service import (
    ChannelAccessError,
    EventFanout,
    authorize_channel,
    channel_for,
    is_staff_role,
)
from services.record_store import (
    STORAGE_BACKEND_DYNAMODB,
    RecordStore,
    StoreError,
    create_record_store,
    get_storage_backend,
)
from services.report_service import ReportNotFoundError, ReportService
from services.route_service import RouteService
from services.sms_service import SmsService
from services.user_service import UserService
from utils.cache import CACHE_CONTROL_PRIVATE, CACHE_CONTROL_PUBLIC
from utils.constants import (
    MAX_IMAGE_BYTES,
    MAX_IMAGES_PER_UPLOAD,
    MISSING_FIELDS_MESSAGE,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

app = FastAPI(
    title="GreenGrid API",
    description="Municipal waste reporting, collection routes and resident notices",
    version=API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

CORS_ORIGINS = [o.strip() for o in os.environ.get("FRONTEND_URL", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_environment() -> str:
    return os.environ.get("ENVIRONMENT") or os.environ.get("NODE_ENV") or "development"


@app.middleware("http")
async def log_requests(request, call_next):
    """Log slow and failed requests with timing."""
    start = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start) * 1000

    path = request.url.path
    if duration_ms > 1000:
        logger.warning(
            "[SLOW] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 500:
        logger.error(
            "[ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 400:
        logger.info(
            "[CLIENT_ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )

    return response


# Lazy-initialized stores and services
_dynamodb = None
_stores: dict[str, RecordStore] = {}
_fanout = None
_sms_service = None
_image_storage = None
_user_service = None
_auth_service = None
_report_service = None
_dashboard_service = None
_route_service = None
_notification_service = None
_feedback_service = None

# Security scheme for bearer token authentication
security = HTTPBearer(auto_error=False)


def reset_services():
    """Reset all lazy-initialized services. Useful for testing.

    Also resets boto3's default session so that subsequent calls to
    boto3.resource() create fresh sessions within the current mock context
    (e.g., moto's mock_aws).
    """
    global _dynamodb, _fanout, _sms_service, _image_storage, _user_service
    global _auth_service, _report_service, _dashboard_service, _route_service
    global _notification_service, _feedback_service
    _dynamodb = None
    _stores.clear()
    _fanout = None
    _sms_service = None
    _image_storage = None
    _user_service = None
    _auth_service = None
    _report_service = None
    _dashboard_service = None
    _route_service = None
    _notification_service = None
    _feedback_service = None
    boto3.DEFAULT_SESSION = None


def get_dynamodb():
    """Get or create DynamoDB resource."""
    global _dynamodb
    if _dynamodb is None:
        region = os.environ.get("AWS_DEFAULT_REGION", "us-west-2")
        _dynamodb = boto3.resource("dynamodb", region_name=region)
    return _dynamodb


def get_store(collection: str) -> RecordStore:
    """Get or create the record store for a collection."""
    if collection not in _stores:
        dynamodb = get_dynamodb() if get_storage_backend() == STORAGE_BACKEND_DYNAMODB else None
        _stores[collection] = create_record_store(collection, dynamodb=dynamodb)
    return _stores[collection]


def get_fanout() -> EventFanout:
    global _fanout
    if _fanout is None:
        _fanout = EventFanout()
    return _fanout


def get_sms_service() -> SmsService:
    global _sms_service
    if _sms_service is None:
        _sms_service = SmsService()
        if not _sms_service.enabled:
            logger.warning("INFOBIP_API_KEY not set, SMS alerts are disabled")
    return _sms_service


def get_image_storage() -> ImageStorage:
    global _image_storage
    if _image_storage is None:
        _image_storage = create_image_storage()
    return _image_storage


def get_user_service() -> UserService:
    global _user_service
    if _user_service is None:
        _user_service = UserService(get_store("users"))
    return _user_service


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService(get_user_service())
    return _auth_service


def get_dashboard_service() -> DashboardService:
    global _dashboard_service
    if _dashboard_service is None:
        _dashboard_service = DashboardService(get_store("reports"))
    return _dashboard_service


def get_report_service() -> ReportService:
    global _report_service
    if _report_service is None:
        _report_service = ReportService(
            get_store("reports"),
            fanout=get_fanout(),
            sms_service=get_sms_service(),
            dashboard_service=get_dashboard_service(),
        )
    return _report_service


def get_route_service() -> RouteService:
    global _route_service
    if _route_service is None:
        _route_service = RouteService(get_store("routes"))
    return _route_service


def get_notification_service() -> NotificationService:
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService(get_store("notifications"))
    return _notification_service


def get_feedback_service() -> FeedbackService:
    global _feedback_service
    if _feedback_service is None:
        _feedback_service = FeedbackService(get_store("feedback"), get_store("contact"))
    return _feedback_service


# MARK: - Authentication Dependency


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),  # noqa: B008
) -> AuthenticatedUser:
    """Extract the authenticated user from the JWT.

    Raises:
        HTTPException: If token is missing or invalid
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return get_auth_service().verify_access_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),  # noqa: B008
) -> AuthenticatedUser | None:
    """Extract the user if a valid token is present (optional auth)."""
    if not credentials:
        return None

    try:
        return get_auth_service().verify_access_token(credentials.credentials)
    except AuthenticationError:
        return None


async def require_staff(
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> AuthenticatedUser:
    """Allow admins and community leaders."""
    if not is_staff_role(user.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin or community leader access required",
        )
    return user


async def require_admin(
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> AuthenticatedUser:
    if user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return user


# MARK: - Health Check


@app.get("/health")
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": API_VERSION,
        "environment": get_environment(),
        "storage": get_storage_backend(),
    }


# MARK: - Report Endpoints


@app.post("/api/reports", status_code=status.HTTP_201_CREATED)
async def submit_report(
    submission: ReportSubmission,
    user: AuthenticatedUser | None = Depends(get_optional_user),  # noqa: B008
):
    """Submit a waste issue report. Authentication is optional."""
    report = await get_report_service().submit_report(
        submission, reporter_id=user.user_id if user else None
    )
    return {"message": "Report submitted successfully", "report": report.to_api()}


@app.get("/api/reports")
async def list_reports(
    response: Response,
    report_status: ReportStatus | None = Query(None, alias="status"),  # noqa: B008
    priority: ReportPriority | None = None,
    issue_type: str | None = Query(None, alias="issueType"),  # noqa: B008
    limit: int | None = Query(None, ge=1, le=1000),  # noqa: B008
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
):
    """List reports: staff see every report, residents only their own."""
    reports = get_report_service().list_reports(
        reporter_id=None if is_staff_role(user.role) else user.user_id,
        status=report_status,
        priority=priority.value if priority else None,
        issue_type=issue_type,
        limit=limit,
    )
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return [report.to_api() for report in reports]


@app.get("/api/reports/{report_id}")
async def get_report(
    report_id: str,
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
):
    report = get_report_service().get_report(report_id)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    if not is_staff_role(user.role) and report.reporter_id != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view this report"
        )
    return {"report": report.to_api()}


@app.patch("/api/reports/{report_id}/status")
async def update_report_status(
    report_id: str,
    update: ReportStatusUpdate,
    user: AuthenticatedUser = Depends(require_staff),  # noqa: B008
):
    """Move a report through its review lifecycle."""
    try:
        report = await get_report_service().update_status(report_id, update, user.user_id)
    except ReportNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    return {"message": "Report status updated", "report": report.to_api()}


@app.delete("/api/reports/{report_id}")
async def delete_report(
    report_id: str,
    user: AuthenticatedUser = Depends(require_admin),  # noqa: B008
):
    if not await get_report_service().delete_report(report_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    logger.info("Report %s deleted by %s", report_id, user.user_id)
    return {"message": "Report deleted successfully", "id": report_id}


# MARK: - Admin Dashboard


@app.get("/api/admin/dashboard")
async def get_dashboard(
    response: Response,
    user: AuthenticatedUser = Depends(require_admin),  # noqa: B008
):
    """Aggregated report counts and the feedback score for the admin dashboard."""
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    return {
        "summary": get_dashboard_service().get_summary(),
        "feedback": {"averageRating": get_feedback_service().average_rating()},
    }


@app.get("/api/admin/users")
async def list_users(
    response: Response,
    role: UserRole | None = None,
    user: AuthenticatedUser = Depends(require_admin),  # noqa: B008
):
    """Registered accounts, without credentials."""
    response.headers["Cache-Control"] = CACHE_CONTROL_PRIVATE
    users = get_user_service().list_users(role.value if role else None)
    return {"users": [account.to_public() for account in users], "count": len(users)}


# MARK: - Route Endpoints


@app.get("/api/routes")
async def list_routes(response: Response, region: str | None = None):
    response.headers["Cache-Control"] = CACHE_CONTROL_PUBLIC
    return get_route_service().list_routes(region)


@app.post("/api/routes", status_code=status.HTTP_201_CREATED)
async def add_route(
    submission: RouteSubmission,
    user: AuthenticatedUser = Depends(require_admin),  # noqa: B008
):
    route = get_route_service().add_route(submission)
    return {"message": "Route added successfully", "route": route.to_api()}


# MARK: - Notification Endpoints


@app.get("/api/notifications")
async def list_notifications(type: str | None = None):
    return [n.to_api() for n in get_notification_service().list_notifications(type)]


@app.post("/api/notifications", status_code=status.HTTP_201_CREATED)
async def create_notification(
    submission: NotificationSubmission,
    user: AuthenticatedUser = Depends(require_admin),  # noqa: B008
):
    notification = get_notification_service().create_notification(submission)
    return {"message": "Notification created", "notification": notification.to_api()}


# MARK: - Feedback & Contact Endpoints


@app.get("/api/feedback")
async def list_feedback():
    return [f.to_api() for f in get_feedback_service().list_feedback()]


@app.post("/api/feedback", status_code=status.HTTP_201_CREATED)
async def submit_feedback(submission: FeedbackSubmission):
    """Submit resident feedback. Anonymous feedback is accepted."""
    feedback = get_feedback_service().submit_feedback(submission)
    return {"message": "Feedback submitted", "feedback": feedback.to_api()}


@app.post("/api/contact", status_code=status.HTTP_201_CREATED)
async def submit_contact(submission: ContactSubmission):
    message = get_feedback_service().submit_contact(submission)
    return {"message": "Contact message received!", "contact": message.to_api()}


@app.get("/api/contact")
async def list_contact_messages(
    user: AuthenticatedUser = Depends(require_admin),  # noqa: B008
):
    return [m.to_api() for m in get_feedback_service().list_contact_messages()]


# MARK: - Authentication Endpoints


@app.post("/api/auth/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest):
    """Create a password account and return session tokens."""
    try:
        user, tokens = get_auth_service().register(request)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {
        "message": "User registered successfully",
        "user": user.to_public(),
        "tokens": tokens,
    }


@app.post("/api/auth/login")
async def login(request: LoginRequest):
    try:
        user, tokens = get_auth_service().login(request)
    except AccountDisabledError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    return {"message": "Login successful", "user": user.to_public(), "tokens": tokens}


@app.post("/api/auth/refresh")
async def refresh_token(request: RefreshTokenRequest):
    """Refresh access token using refresh token."""
    try:
        tokens = get_auth_service().refresh_tokens(request.refresh_token)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    return {"tokens": tokens}


@app.get("/api/auth/profile")
async def get_profile(
    user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
):
    """Get the authenticated user's account."""
    account = get_user_service().get_user(user.user_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"user": account.to_public()}


# MARK: - Image Upload Endpoints


@app.post("/api/uploads/images", status_code=status.HTTP_201_CREATED)
async def upload_images(images: list[UploadFile] | None = File(None)):  # noqa: B008
    """Upload report photos.

    Files that are not images, are too large, or fail processing are skipped.
    """
    if not images:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No images provided")
    if len(images) > MAX_IMAGES_PER_UPLOAD:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A maximum of {MAX_IMAGES_PER_UPLOAD} images can be uploaded at once",
        )

    storage = get_image_storage()
    uploaded = []
    for image in images:
        content_type = image.content_type or ""
        if not content_type.startswith("image/"):
            logger.warning("Skipping %s: not an image (%s)", image.filename, content_type)
            continue

        content = await image.read()
        if len(content) > MAX_IMAGE_BYTES:
            logger.warning("Skipping %s: %d bytes exceeds limit", image.filename, len(content))
            continue

        try:
            uploaded.append(storage.save(content, image.filename or "", content_type))
        except ImageStorageError as e:
            logger.warning("Failed to process %s: %s", image.filename, e)

    if not uploaded:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload any images",
        )

    return {
        "message": f"Successfully uploaded {len(uploaded)} image(s)",
        "images": [image.to_api() for image in uploaded],
        "count": len(uploaded),
    }


@app.delete("/api/uploads/images/{public_id}")
async def delete_image(public_id: str):
    if not get_image_storage().delete(public_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return {"message": "Image deleted successfully"}


@app.get("/uploads/{public_id}.jpg")
async def serve_local_image(public_id: str):
    """Serve images kept by the local storage backend."""
    storage = get_image_storage()
    if not isinstance(storage, LocalImageStorage) or not is_valid_public_id(public_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")

    path = storage.path_for(public_id)
    if not path.exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")
    return FileResponse(path, media_type="image/jpeg")


# MARK: - Realtime


@app.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str | None = None):
    """Channel subscription socket.

    Clients authenticate with ``?token=<access token>`` and then send
    ``{"action": "join", "role": ..., "userId": ...}`` to pick a channel.
    """
    try:
        user = get_auth_service().verify_access_token(token or "")
    except AuthenticationError as e:
        logger.info("Rejected realtime connection: %s", e)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    fanout = get_fanout()
    logger.info("Realtime connection opened for %s", user.user_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"event": "error", "message": "Invalid JSON"})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"event": "error", "message": "Invalid message"})
                continue

            action = message.get("action")
            if action == "join":
                try:
                    channel = channel_for(
                        message.get("role") or user.role,
                        message.get("userId") or user.user_id,
                    )
                    authorize_channel(channel, user.user_id, user.role)
                except ChannelAccessError as e:
                    await websocket.send_json({"event": "error", "message": str(e)})
                    continue
                fanout.join(websocket, channel)
                await websocket.send_json({"event": "joined", "channel": channel})
            elif action == "ping":
                await websocket.send_json({"event": "pong"})
            else:
                await websocket.send_json(
                    {"event": "error", "message": f"Unknown action: {action}"}
                )
    except WebSocketDisconnect:
        logger.info("Realtime connection closed for %s", user.user_id)
    finally:
        fanout.leave(websocket)


# MARK: - Error Handlers


def _field_name(loc: tuple) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "request"


def _is_missing(error: dict) -> bool:
    """Absent fields and empty strings count as missing; short values do not."""
    if error.get("type") == "missing":
        return True
    return error.get("type") == "string_too_short" and error.get("input") == ""


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc: RequestValidationError):
    """Report missing fields generically and other problems by field."""
    errors = exc.errors()
    if not errors or any(_is_missing(e) for e in errors):
        message = MISSING_FIELDS_MESSAGE
    else:
        first = errors[0]
        message = f"Invalid {_field_name(tuple(first.get('loc', ())))}: {first.get('msg')}"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(StoreError)
async def store_error_handler(request, exc: StoreError):
    """Handle storage backend failures."""
    logger.error("Storage error on %s %s: %s", request.method, request.url.path, exc)
    message = "Internal server error" if get_environment() == "production" else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": message}
    )


@app.exception_handler(ClientError)
async def aws_client_error_handler(request, exc: ClientError):
    """Handle AWS client errors."""
    error_code = exc.response["Error"]["Code"]
    error_message = exc.response["Error"]["Message"]

    if error_code == "ResourceNotFoundException":
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"message": f"Resource not found: {error_message}"},
        )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": f"AWS error: {error_message}"},
    )


@app.exception_handler(ImageStorageError)
async def image_storage_error_handler(request, exc: ImageStorageError):
    logger.error("Image storage error: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"message": str(exc)}
    )


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    """Handle value errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)}
    )


# For local development
if __name__ == "__main__":
    import uvicorn
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "5000")))
