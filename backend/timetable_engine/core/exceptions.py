class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ScheduleValidationError(AppError):
    """Raised when an entry, block or assignment is missing or has malformed fields."""
    def __init__(self, message: str, fields: list[str] = None):
        self.fields = list(fields or [])
        super().__init__(message, status_code=422, details={"fields": self.fields})

class ScheduleConflictError(AppError):
    """Raised when a commit would double-book a teacher or room.

    ``conflicts`` holds the existing entries that clash with the candidate.
    """
    def __init__(self, message: str, conflicts: list = None, report: list = None):
        self.conflicts = list(conflicts or [])
        self.report = list(report or [])
        super().__init__(
            message,
            status_code=409,
            details={
                "conflicts": [entry.model_dump(mode="json") for entry in self.conflicts],
                "report": [item.model_dump(mode="json") for item in self.report],
            },
        )

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class InvalidTransitionError(AppError):
    """Raised when a substitution record is asked to leave a terminal state."""
    def __init__(self, message: str):
        super().__init__(message, status_code=409)
