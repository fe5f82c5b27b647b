# backoffice/errors.py
# Domain errors raised by the services. Routers turn them into HTTP responses
# using status_code.


class BackofficeError(Exception):
    status_code = 500


class TokenExchangeError(BackofficeError):
    status_code = 502


class TokenRefreshError(BackofficeError):
    status_code = 502


class NoActiveConnection(BackofficeError):
    status_code = 404


class ProviderFetchError(BackofficeError):
    """Shop profile or listings could not be fetched from the marketplace."""
    status_code = 502


class InvalidInput(BackofficeError):
    status_code = 400


class NoRecipeConfigured(BackofficeError):
    status_code = 422


class InvalidTransition(BackofficeError):
    status_code = 409


class RecordNotFound(BackofficeError):
    status_code = 404


class AIRequestError(BackofficeError):
    status_code = 502


class AIResponseParseError(BackofficeError):
    """Model output did not match the expected JSON shape. Always recovered locally."""
    status_code = 502
