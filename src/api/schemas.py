"""
Request and response models for the records API.
Wire names are camelCase; snake_case is accepted on input as well.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..core.schema import Record


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecordResponse(_ApiModel):
    id: str
    type: str
    content: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    status: str
    sheet_type: Optional[str] = None
    sheet_id: Optional[str] = None
    sheet_url: Optional[str] = None
    station: Optional[str] = None
    month: Optional[str] = None
    observation_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Record) -> 'RecordResponse':
        return cls(**record.__dict__)


class ReportCreatedResponse(_ApiModel):
    success: bool
    message: str
    id: str


class DeleteManyResponse(_ApiModel):
    message: str
    deleted_count: int


class DeleteOneResponse(_ApiModel):
    message: str
    deleted_report: RecordResponse


class StatusUpdateRequest(_ApiModel):
    status: str


class ContactResponse(_ApiModel):
    success: bool
    message: str
    id: str
    persisted: bool = True
    notified: bool
    notification_error: Optional[str] = None


class SendReportRequest(_ApiModel):
    to: str
    subject: str = ""
    content: str

    @field_validator('to')
    @classmethod
    def to_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('to cannot be empty')
        return v.strip()


class SendReportResponse(_ApiModel):
    success: bool
    message: str


class SheetResolveRequest(_ApiModel):
    station: str
    sheet_type: str
    month: Optional[str] = None


class SheetResolveResponse(_ApiModel):
    sheet_id: str
    sheet_url: str
    source: str
    persisted: bool
    record: Optional[RecordResponse] = None


class SheetUpsertRequest(_ApiModel):
    station: str
    sheet_type: str
    fields: Dict[str, Any] = Field(default_factory=dict)


class LoginRequest(_ApiModel):
    station: str
    password: str


class LoginResponse(_ApiModel):
    token: str
    station: str
    expires_in: int


class HealthResponse(_ApiModel):
    status: str
    version: str
    db_health: bool
    record_count: int


class ErrorResponse(_ApiModel):
    message: str
    field: Optional[str] = None
    errors: Optional[List[Dict[str, str]]] = None
