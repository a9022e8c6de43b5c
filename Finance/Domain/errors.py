class FinanceDataError(Exception):
    """Base class for every failure raised by the finance data layer."""


class ConfigurationError(FinanceDataError):
    """A prerequisite is missing: API key list, connection string, bad setting."""


class NetworkError(FinanceDataError):
    """The remote API could not be reached."""


class ApiError(FinanceDataError):
    """The remote API answered with an error status or an error payload."""


class ParseError(FinanceDataError):
    """The remote API answered, but not with the structure we expected."""


class CacheError(FinanceDataError):
    """The document store is unreachable or rejected an operation."""


class InvalidInputError(FinanceDataError, ValueError):
    """Caller supplied a malformed symbol or date."""
