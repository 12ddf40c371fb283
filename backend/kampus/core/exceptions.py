class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_payload(self) -> dict:
        return {"message": self.message, "details": self.details}


class ValidationError(AppError):
    """Raised for malformed input or references to records that do not exist."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)


class ConflictError(AppError):
    """Raised when an active assignment would double-book a teacher or a group.

    ``entries`` lists every colliding assignment together with the axis
    (``"teacher"`` or ``"group"``) it collides on. Both axes are reported when
    both collide.
    """
    def __init__(self, message: str, *, teacher_conflict: bool, group_conflict: bool, entries: list[dict]):
        super().__init__(
            message,
            status_code=422,
            details={"teacher_conflict": teacher_conflict, "group_conflict": group_conflict},
        )
        self.teacher_conflict = teacher_conflict
        self.group_conflict = group_conflict
        self.entries = entries

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["conflicto"] = self.entries
        return payload


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)
        self.resource_type = resource_type
        self.resource_id = resource_id


class PersistenceError(AppError):
    """Raised when the storage layer fails. Never retried here."""
    def __init__(self, message: str = "Storage is unavailable", details: dict = None):
        super().__init__(message, status_code=503, details=details)
