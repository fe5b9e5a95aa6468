"""Error taxonomy shared by the pipeline and the HTTP layer."""


class ReportError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidPeriod(ReportError):
    """A period parameter (or other query parameter) is missing or malformed."""

    status_code = 400


class InvalidConfiguration(ReportError):
    """The operator configured something wrong (bad timezone, missing token)."""

    status_code = 500


class LocationNotFound(ReportError):
    status_code = 404

    def __init__(self, location_id):
        super().__init__("Location not found in results", {"locationId": location_id})
        self.location_id = location_id


class UpstreamUnavailable(ReportError):
    """Square returned a non-2xx response or could not be reached."""

    status_code = 502

    def __init__(self, message="Square API error", details=None, upstream_status=None):
        super().__init__(message, details)
        self.upstream_status = upstream_status
