"""Domain errors raised by the rental services and mapped to HTTP in ``app.py``."""


class RentalError(Exception):
    status_code = 400

    def __init__(self, message: str, **payload):
        super().__init__(message)
        self.message = message
        self.payload = payload

    def to_dict(self) -> dict:
        return {"error": self.message, **self.payload}


class ValidationError(RentalError):
    """Required fields missing or malformed. Never reaches the conflict check."""

    status_code = 400


class ConflictError(RentalError):
    status_code = 400

    def __init__(self, message: str, conflicting_rental: dict):
        super().__init__(message, conflictingRental=conflicting_rental)
        self.conflicting_rental = conflicting_rental


class NotFoundError(RentalError):
    status_code = 404


class DependencyFailure(RentalError):
    """An optional collaborator (calendar) failed; callers log and carry on."""

    status_code = 502
