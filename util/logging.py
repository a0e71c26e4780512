"""
Structured operation logging for the records service.
Personal fields are redacted before anything reaches the log stream.
"""

import logging
from typing import Any, Dict, List

# Fields that may carry personal or free-text data
SENSITIVE_FIELDS = ['email', 'message', 'content', 'password', 'secret', 'name', 'ip_address', 'ipAddress']


class StructuredLogger:
    """Structured logger for record, notification and sheet operations."""

    def __init__(self, name: str = "weather_records"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "error"):
            self.logger.error(message)
        else:
            self.logger.info(message)

    def log_record_operation(self, operation: str, record_type: str, record_id: str = None,
                             status: str = "success", details: Dict[str, Any] = None):
        """Log a record store operation."""
        log_details = {"type": record_type}
        if record_id is not None:
            log_details["id"] = record_id
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation(f"record.{operation}", status, log_details)

    def log_validation_error(self, field: str, message: str, payload: Dict[str, Any] = None):
        """Log a rejected payload. Only field names and non-personal values are kept."""
        log_details = {"field": field, "message": message[:100]}
        if payload:
            log_details["payload"] = sanitize_payload(payload)

        self.log_operation("validation", "rejected", log_details)

    def log_notification(self, recipient_count: int, subject: str, status: str = "success", error: str = None):
        """Log an outbound email attempt."""
        log_details = {
            "recipients": recipient_count,
            "subject": subject[:50] + "..." if subject and len(subject) > 50 else subject
        }
        if error:
            log_details["error"] = error[:100]

        self.log_operation("notification.email", status, log_details)

    def log_sheet_resolution(self, station: str, form_type: str, source: str, status: str = "success",
                             details: Dict[str, Any] = None):
        """Log a spreadsheet reference resolution (static, copy or default)."""
        log_details = {"station": station, "form_type": form_type, "source": source}
        if details:
            log_details.update(details)

        self.log_operation("sheet.resolve", status, log_details)

    def log_auth_attempt(self, station: str, status: str, reason: str = None):
        """Log a station token request."""
        log_details = {"station": station}
        if reason:
            log_details["reason"] = reason

        self.log_operation("auth.token", status, log_details)

    def log_request(self, method: str, path: str, status_code: int, duration_ms: float):
        """Log a served HTTP request."""
        self.logger.info(f"{method} {path} {status_code} - {duration_ms:.1f}ms")

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
