"""
Custom exceptions for hosting platform API operations
"""


class APIError(Exception):
    """Base exception for all platform API errors"""

    def __init__(self, message: str, status_code: int = None, response_data: dict = None):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(self.message)

    def __str__(self):
        if self.status_code:
            return f"{self.__class__.__name__} (HTTP {self.status_code}): {self.message}"
        return f"{self.__class__.__name__}: {self.message}"


class AuthenticationError(APIError):
    """Raised when the access token is missing, invalid or lacks permissions"""
    pass


class NotFoundError(APIError):
    """Raised when a project, deployment or domain does not exist"""
    pass


class ConflictError(APIError):
    """Raised when the resource already exists (e.g. project name taken)"""
    pass


class RateLimitError(APIError):
    """Raised when API rate limit is exceeded"""
    pass


class NetworkError(APIError):
    """Raised when network/connection errors occur"""
    pass


class ValidationError(APIError):
    """Raised when request validation fails"""
    pass


class InvalidProjectIdError(ValidationError):
    """Raised when a project id does not have the shape a platform expects"""
    pass


class ServerError(APIError):
    """Raised when the platform returns 5xx errors"""
    pass


class OAuthNotSupportedError(APIError):
    """Raised when an OAuth helper is called on a platform without OAuth"""
    pass


class OAuthConfigurationError(APIError):
    """Raised when OAuth client credentials are not configured"""
    pass


class UnsupportedPlatformError(ValueError):
    """Raised for an unknown platform tag (a programming error)"""
    pass
