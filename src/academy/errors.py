"""Domain error taxonomy.

Services raise these; ``middleware.error_handler`` maps them to JSON
responses using ``status_code``.
"""


class AcademyError(Exception):
    """Base class for expected, client-facing failures."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(AcademyError):
    status_code = 404


class ForbiddenError(AcademyError):
    status_code = 403


class ConflictError(AcademyError):
    status_code = 409


class InvalidStateError(AcademyError):
    """Transition attempted from a state that does not allow it."""

    status_code = 409


class InvalidRatingError(AcademyError):
    status_code = 400


class NoAvailableReviewersError(AcademyError):
    status_code = 400
