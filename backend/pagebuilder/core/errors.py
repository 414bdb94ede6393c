"""Error taxonomy shared by services and routes.

Services raise these; ``main.py`` turns them into JSON responses. Client
errors carry a message that is safe to show. Server-side failures keep their
detail for the log only.
"""


class PageBuilderError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message

    @property
    def client_message(self) -> str:
        if self.status_code >= 500:
            return self.public_message
        return self.message


class Unauthorized(PageBuilderError):
    status_code = 401
    public_message = "Authentication required"


class Forbidden(PageBuilderError):
    status_code = 403
    public_message = "Forbidden"


class AccessDenied(PageBuilderError):
    status_code = 403
    public_message = "Access denied"


class InvalidArguments(PageBuilderError):
    status_code = 400
    public_message = "Invalid arguments"


class InvalidName(InvalidArguments):
    public_message = "Invalid new name"


class NotFound(PageBuilderError):
    status_code = 404
    public_message = "Not found"


class UpstreamFailure(PageBuilderError):
    status_code = 500
    public_message = "Upstream service failure"
