"""
Weather records API - reports, contact submissions, sheets and station login.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from util.logging import logger

from .schemas import (
    ContactResponse,
    DeleteManyResponse,
    DeleteOneResponse,
    ErrorResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    RecordResponse,
    ReportCreatedResponse,
    SendReportRequest,
    SendReportResponse,
    SheetResolveRequest,
    SheetResolveResponse,
    SheetUpsertRequest,
    StatusUpdateRequest,
)
from ..core import dao
from ..core.config import (
    CORS_ORIGINS,
    JWT_EXPIRES_HOURS,
    VERSION,
    debug_enabled,
    get_recipient_email,
    validate_notification_config,
)
from ..core.db import health_check, init_db
from ..core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RecordValidationError,
    StorageError,
    UpstreamError,
)
from ..core.lifecycle import prepare_for_insert
from ..core.notify import send_email
from ..core.schema import MONTHS, RECORD_TYPES, SHEET_TYPES, STATIONS, STATUSES, Record
from ..core.sheets import resolve_sheet
from ..core.stations import issue_station_token
from ..core.validation import require_member, validate_record


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    for issue in validate_notification_config():
        logger.warning(issue)
    yield


# Initialize the FastAPI application
app = FastAPI(
    title="Weather Records API",
    version=VERSION,
    description="Weather reports, contact submissions and station sheets",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.log_request(request.method, request.url.path, response.status_code,
                       (time.perf_counter() - start) * 1000)
    return response


def _record_type(value: str) -> str:
    return require_member('type', (value or '').upper(), RECORD_TYPES)


def _records(records: List[Record]) -> List[RecordResponse]:
    return [RecordResponse.from_record(r) for r in records]


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check system health."""
    db_health = health_check()
    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        record_count=dao.count_records() if db_health else 0,
    )


@app.post("/api/reports", response_model=ReportCreatedResponse, status_code=201)
def submit_report(payload: Dict[str, Any] = Body(...)):
    """Validate and save a report of any type."""
    record = prepare_for_insert(validate_record(payload))
    stored = dao.insert_record(record)
    return ReportCreatedResponse(success=True, message="Report saved successfully", id=stored.id)


# Define fixed /api/reports/... paths BEFORE /api/reports/{record_type} to avoid path parameter conflict
@app.get("/api/reports/by-email", response_model=List[RecordResponse])
def reports_by_email(email: str, record_type: str = Query("CONTACT", alias="type")):
    return _records(dao.find_by_email_and_type(email, _record_type(record_type)))


@app.get("/api/reports/by-status/{status}", response_model=List[RecordResponse])
def reports_by_status(status: str):
    return _records(dao.find_by_status(require_member('status', status.upper(), STATUSES)))


@app.get("/api/reports/{record_type}", response_model=List[RecordResponse])
def reports_by_type(record_type: str):
    """All reports of one type, newest first."""
    return _records(dao.find_by_type(_record_type(record_type)))


@app.patch("/api/reports/{record_id}/status", response_model=RecordResponse)
def change_status(record_id: str, request: StatusUpdateRequest):
    return RecordResponse.from_record(dao.update_status(record_id, request.status.upper()))


@app.delete("/api/reports/clear/{record_type}", response_model=DeleteManyResponse)
def clear_reports(record_type: str):
    record_type = _record_type(record_type)
    deleted = dao.delete_all_of_type(record_type)
    return DeleteManyResponse(
        message=f"Successfully deleted {deleted} {record_type} reports",
        deleted_count=deleted,
    )


@app.delete("/api/reports/clear/{record_type}/{record_id}", response_model=DeleteOneResponse)
def clear_report(record_type: str, record_id: str):
    record_type = _record_type(record_type)
    deleted = dao.delete_one_of_type(record_type, record_id)
    return DeleteOneResponse(
        message=f"{record_type} report deleted successfully",
        deleted_report=RecordResponse.from_record(deleted),
    )


@app.post("/api/contact", response_model=ContactResponse, status_code=201)
def submit_contact(request: Request, payload: Dict[str, Any] = Body(...)):
    """Save a contact form submission, then notify the site owner.

    The record is kept even when the email fails; the response says which.
    """
    data = dict(payload)
    data["type"] = "CONTACT"
    data["ipAddress"] = _client_ip(request)
    data["userAgent"] = request.headers.get("user-agent")

    record = prepare_for_insert(validate_record(data))
    stored = dao.insert_record(record)

    recipient = get_recipient_email()
    notified = False
    notification_error = None
    if recipient:
        try:
            send_email(
                recipient,
                f"New contact form submission: {stored.subject or 'No Subject'}",
                f"{stored.content}\n\nFrom: {stored.name} <{stored.email}>",
            )
            notified = True
        except UpstreamError as e:
            notification_error = str(e)
    else:
        notification_error = "Contact notifications are not configured"

    return ContactResponse(
        success=True,
        message="Message received",
        id=stored.id,
        notified=notified,
        notification_error=notification_error,
    )


@app.post("/api/send-report", response_model=SendReportResponse)
def send_report(request: SendReportRequest):
    """Email a report body to the given recipients."""
    send_email(request.to, request.subject, request.content)
    return SendReportResponse(success=True, message="Report sent successfully")


@app.get("/api/sheets", response_model=List[RecordResponse])
def list_sheets(station: Optional[str] = None,
                sheet_type: Optional[str] = Query(None, alias="sheetType"),
                month: Optional[str] = None):
    """Sheet records by station and form type, or by form type and month."""
    sheet_type = require_member('sheetType', sheet_type, SHEET_TYPES)
    if station:
        station = require_member('station', station, STATIONS)
        return _records(dao.find_by_station_and_sheet_type(station, sheet_type))
    if month:
        month = require_member('month', month.upper(), MONTHS)
        return _records(dao.find_by_sheet_type_and_month(sheet_type, month))
    raise RecordValidationError('station', 'station or month is required')


@app.post("/api/sheets/resolve", response_model=SheetResolveResponse)
def resolve_sheet_endpoint(request: SheetResolveRequest):
    """Find (or create) the station's sheet and record the reference.

    A sheet borrowed from the first station is returned but not recorded,
    since its id already belongs to that station.
    """
    # Validated before resolving, which may copy and share a template
    month = require_member('month', request.month.upper(), MONTHS) if request.month else None
    location = resolve_sheet(request.station, request.sheet_type)

    record = None
    if location.source != "default":
        fields = {"sheetUrl": location.url}
        if month:
            fields["month"] = month
        record = dao.upsert_sheet_record(location.identifier, request.station, request.sheet_type, fields)

    return SheetResolveResponse(
        sheet_id=location.identifier,
        sheet_url=location.url,
        source=location.source,
        persisted=record is not None,
        record=RecordResponse.from_record(record) if record else None,
    )


@app.put("/api/sheets/{sheet_id}", response_model=RecordResponse)
def upsert_sheet(sheet_id: str, request: SheetUpsertRequest):
    return RecordResponse.from_record(
        dao.upsert_sheet_record(sheet_id, request.station, request.sheet_type, request.fields)
    )


@app.post("/api/login", response_model=LoginResponse)
def station_login(request: LoginRequest):
    """Issue a signed station token."""
    token = issue_station_token(request.station, request.password)
    return LoginResponse(token=token, station=request.station, expires_in=JWT_EXPIRES_HOURS * 3600)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    body = ErrorResponse(message=message, **extra).model_dump(by_alias=True, exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(RecordValidationError)
async def validation_error_handler(request, exc: RecordValidationError):
    logger.log_validation_error(exc.field, exc.message)
    return _error(400, exc.message, field=exc.field,
                  errors=[{"field": f, "message": m} for f, m in exc.errors])


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    """Malformed request bodies get the same 400 shape as record validation."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or "body", "message": error.get("msg", "invalid value")})
    logger.log_validation_error(errors[0]["field"], errors[0]["message"])
    return _error(400, errors[0]["message"], field=errors[0]["field"], errors=errors)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request, exc):
    return _error(401, str(exc))


@app.exception_handler(NotFoundError)
async def not_found_handler(request, exc):
    return _error(404, str(exc))


@app.exception_handler(ConflictError)
async def conflict_handler(request, exc):
    return _error(409, str(exc))


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request, exc):
    return _error(502, str(exc))


@app.exception_handler(StorageError)
async def storage_error_handler(request, exc):
    return _error(503, str(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}")
    content = {"message": "Internal server error"}
    if debug_enabled():
        content["debug"] = str(exc)
    return JSONResponse(status_code=500, content=content)
