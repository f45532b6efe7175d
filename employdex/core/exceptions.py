"""Custom exception classes for EmployDEX.

Services raise these; the handler registered in ``employdex.main`` renders
them as ``{"error": message, **extra}`` with the class's status code.
"""

from typing import Any, Dict, Optional

from fastapi import status

class EmployDexError(Exception):
    """Base exception for EmployDEX."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str = "An error occurred",
        status_code: Optional[int] = None,
        **extra: Any,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}

class AuthenticationError(EmployDexError):
    """Raised when credentials or the bearer token are missing or invalid."""
    status_code = status.HTTP_401_UNAUTHORIZED

class AccountDisabledError(AuthenticationError):
    """Raised when a correctly authenticated account is deactivated."""
    pass

class AuthorizationError(EmployDexError):
    """Raised when a valid token lacks the required permissions/roles."""
    status_code = status.HTTP_403_FORBIDDEN

class FeatureDisabledError(EmployDexError):
    """Raised when a feature toggle gating the route is off or missing."""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, feature_name: str):
        self.feature_name = feature_name
        super().__init__(f"Feature '{feature_name}' is disabled")

class ResourceNotFoundError(EmployDexError):
    """Raised when a requested resource is not found."""
    status_code = status.HTTP_404_NOT_FOUND

class ResourceConflictError(EmployDexError):
    """Raised when a resource already exists."""
    status_code = status.HTTP_409_CONFLICT

class InvariantViolationError(EmployDexError):
    """Raised when a mutation would break an RBAC invariant."""
    status_code = status.HTTP_403_FORBIDDEN

class ValidationError(EmployDexError):
    """Raised when input validation fails."""
    status_code = status.HTTP_400_BAD_REQUEST

class ConfigurationError(EmployDexError):
    """Raised at startup when required configuration is missing or unsafe."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
