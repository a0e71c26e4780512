"""
Record types and closed enumerations shared by validation, storage and the API.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Any, Dict, Optional

OBSERVATION_TYPES = ('METAR', 'SYNOP', 'ACTUALS', 'TAF')
RECORD_TYPES = OBSERVATION_TYPES + ('CONTACT', 'SHEET')

STATUSES = ('NEW', 'PROCESSED', 'ARCHIVED')
SHEET_TYPES = ('FORM626', 'CSHEET', 'FORM446', 'WX_SUMMARY', 'RCART', 'AGRO18_DEK')
STATIONS = ('Mab-Met', 'Dagoretti', 'JKIA', 'Wilson')
MONTHS = ('JAN', 'FEB', 'MAR', 'APR', 'MAY', 'JUN', 'JUL', 'AUG', 'SEP', 'OCT', 'NOV', 'DEC')

CONTACT_PLACEHOLDER_SUBJECT = 'No Subject'

# Column order of the records table
RECORD_COLUMNS = (
    'id', 'type', 'content', 'name', 'email', 'subject', 'message', 'status',
    'sheet_type', 'sheet_id', 'sheet_url', 'station', 'month', 'observation_id',
    'ip_address', 'user_agent', 'created_at', 'updated_at',
)


@dataclass
class Record:
    """A persisted record as returned by the store."""
    id: str
    type: str
    created_at: datetime
    content: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None
    status: str = 'NEW'
    sheet_type: Optional[str] = None
    sheet_id: Optional[str] = None
    sheet_url: Optional[str] = None
    station: Optional[str] = None
    month: Optional[str] = None
    observation_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with ISO timestamps."""
        data = asdict(self)
        data['created_at'] = self.created_at.isoformat()
        data['updated_at'] = self.updated_at.isoformat() if self.updated_at else None
        return data


@dataclass(frozen=True)
class SheetLocation:
    """Where a station's form lives: document identifier and sharable URL."""
    identifier: str
    url: str
    source: str = field(default='static', compare=False)  # static|copy|default
