"""Error taxonomy shared by the store, media pipeline and HTTP layer.

Every error carries a machine-readable ``code`` and the HTTP ``status`` the
API answers with. Messages are shown to end users as-is.
"""


class ReportError(Exception):
    code = "REPORT_ERROR"
    status = 400

    def __init__(self, message: str, *, details: object = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body: dict = {"error_code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ReportError):
    code = "VALIDATION_ERROR"
    status = 400


class UnsupportedMediaType(ValidationError):
    code = "UNSUPPORTED_MEDIA_TYPE"
    status = 415


class FileTooLarge(ValidationError):
    code = "FILE_TOO_LARGE"
    status = 413


class UploadFailure(ReportError):
    """Storage write failed. Transient; the whole submission may be retried."""

    code = "UPLOAD_FAILED"
    status = 503


class NotFound(ReportError):
    code = "NOT_FOUND"
    status = 404


class Unauthorized(ReportError):
    code = "UNAUTHORIZED"
    status = 401


class Forbidden(Unauthorized):
    code = "FORBIDDEN"
    status = 403


class GeolocationUnavailable(ReportError):
    """Location lookup failed or timed out. Callers fall back to manual entry."""

    code = "GEOLOCATION_UNAVAILABLE"
    status = 503
