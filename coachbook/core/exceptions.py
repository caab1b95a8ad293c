"""
Domain exceptions for the scheduling engine.

Services raise these; the API layer converts them with
`to_http_exception()` through the handler registered in `coachbook.main`.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class InvalidFormat(SchedulingError):
    """Malformed HH:mm time or YYYY-MM-DD date."""

    status_code = HTTP_422_UNPROCESSABLE

    def __init__(self, value: Any, expected: str) -> None:
        super().__init__(
            f"Invalid value {value!r}, expected {expected}",
            details={"value": value, "expected": expected},
        )


class ValidationFailed(SchedulingError):
    """Missing required field, inverted time range, past start date, ..."""

    status_code = status.HTTP_400_BAD_REQUEST


class CapacityExceeded(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, court_number: int, limit: int) -> None:
        self.court_number = court_number
        self.limit = limit
        super().__init__(
            f"Court {court_number} exceeds the limit of {limit} clients per court",
            code=f"MAX_{limit}_CLIENTS_PER_COURT",
            details={"court_number": court_number, "limit": limit},
        )


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )


class SchedulingConflict(SchedulingError):
    """The requested slot overlaps an active appointment on the same resource."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, date: str, start_time: str, end_time: str, conflicting_ids: List[str]) -> None:
        self.conflicting_ids = conflicting_ids
        super().__init__(
            f"Time slot {start_time}-{end_time} on {date} overlaps "
            f"{len(conflicting_ids)} existing appointment(s)",
            details={
                "date": date,
                "start_time": start_time,
                "end_time": end_time,
                "conflicting_ids": conflicting_ids,
            },
        )


class InvalidStatusTransition(SchedulingError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change appointment status from {current} to {requested}",
            details={"current": current, "requested": requested},
        )
