class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ConflictError(AppError):
    """Raised when a booking would overlap an existing session or template."""
    def __init__(self, message: str, blocking=None):
        self.blocking = blocking
        details = {}
        if blocking is not None:
            details["conflict"] = blocking.model_dump(mode="json", by_alias=True)
        super().__init__(message, status_code=409, details=details)

class InvalidMergeError(AppError):
    """Raised when two sessions cannot be combined into a lab block."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class InvalidSplitError(AppError):
    """Raised when a session cannot be split back into its halves."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class NotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource": resource_type, "id": resource_id},
        )
