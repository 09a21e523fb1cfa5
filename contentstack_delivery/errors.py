# contentstack_delivery/errors.py
from __future__ import annotations

DEFAULT_ERROR_MESSAGE = "Oops! Something went wrong. Please try again."

MISSING_API_KEY = (
    "Missing API key. Provide a valid key from your stack settings and try again."
)
MISSING_DELIVERY_TOKEN = (
    "Missing delivery token. Provide a valid token from your stack settings and try again."
)
MISSING_ENVIRONMENT = (
    "Missing environment. Provide a valid environment name and try again."
)
CONTENT_TYPE_UID_REQUIRED = (
    "Content type UID is required. Provide a valid UID and try again."
)
ENTRY_UID_REQUIRED = "Missing entry UID. Provide a valid UID and try again."
ASSET_UID_REQUIRED = "Missing asset UID. Provide a valid UID and try again."
GLOBAL_FIELD_UID_REQUIRED = (
    "Missing global field UID. Provide a valid UID and try again."
)
INVALID_PARAMETER_KEY = (
    "Invalid parameter key. Use only alphanumeric characters, underscores, "
    "hyphens and dots."
)


class ContractViolation(ValueError):
    """
    Raised synchronously when the caller breaks the client-side contract.
    These are programming errors: they are never retried and never delivered
    through a result callback.
    """


class InvalidFieldPath(ContractViolation):
    def __init__(self, path: object, reason: str = INVALID_PARAMETER_KEY) -> None:
        self.path = path
        super().__init__(f"Invalid field path {path!r}: {reason}")


class InvalidRetryConfiguration(ContractViolation):
    pass


class MissingArgument(ContractViolation):
    pass


class UnboundRequest(ContractViolation):
    pass
