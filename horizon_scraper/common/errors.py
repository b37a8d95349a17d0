"""Domain errors and failure typing."""


class ScraperError(Exception):
    """Base class for scraper failures."""

    error_code = "SCRAPER_ERROR"


class ConfigurationError(ScraperError):
    """Raised for unknown authorities and invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class NetworkError(ScraperError):
    """Raised on connection failure, timeout, or a non-success HTTP status."""

    error_code = "NETWORK_ERROR"


class RetryableNetworkError(NetworkError):
    pass


class ParseError(ScraperError):
    """Raised when a portal response is not well-formed or lacks an expected node."""

    error_code = "PARSE_ERROR"


class TotalCountError(ScraperError, ValueError):
    """Raised when the result total is not an integer."""

    error_code = "TOTAL_COUNT_ERROR"


class DateParseError(ParseError, ValueError):
    """Raised when a lodged date cannot be interpreted."""

    error_code = "DATE_PARSE_ERROR"
