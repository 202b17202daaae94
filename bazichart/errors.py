"""
Error taxonomy for the service boundary.

Pipeline stages never raise these; only store lookups, external
collaborators and request validation do.
"""


class BaziError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"error": self.message}


class ValidationError(BaziError):
    status_code = 400
    default_message = "Missing required fields"


class NotFoundError(BaziError):
    status_code = 404
    default_message = "Analysis not found"


class ExternalServiceUnavailable(BaziError):
    status_code = 500
    default_message = "External service unavailable. Please try again later."


class InternalError(BaziError):
    status_code = 500
