"""Solver and Variomedia API exceptions."""


class SolverError(Exception):
    """Base exception for all errors raised by the solver."""


class ConfigInvalidError(SolverError):
    """The issuer configuration blob could not be decoded."""


class CredentialError(SolverError):
    """An API key could not be resolved from the secret store."""

    def __init__(self, message: str, domain: str, secret_name: str, namespace: str):
        self.domain = domain
        self.secret_name = secret_name
        self.namespace = namespace
        super().__init__(message)


class SecretNotFoundError(CredentialError):
    """The referenced secret does not exist."""

    def __init__(self, domain: str, secret_name: str, namespace: str):
        super().__init__(
            f"unable to get secret `{secret_name}` in namespace `{namespace}`",
            domain=domain,
            secret_name=secret_name,
            namespace=namespace,
        )


class SecretFieldMissingError(CredentialError):
    """The secret exists but lacks the API key field."""

    def __init__(self, domain: str, secret_name: str, namespace: str, field: str):
        self.field = field
        super().__init__(
            f"key {field!r} not found in secret \"{namespace}/{secret_name}\"",
            domain=domain,
            secret_name=secret_name,
            namespace=namespace,
        )


class SecretValueInvalidError(CredentialError):
    """The API key field holds bytes that are not valid UTF-8."""

    def __init__(self, domain: str, secret_name: str, namespace: str, field: str):
        self.field = field
        super().__init__(
            f"key {field!r} in secret \"{namespace}/{secret_name}\" is not valid UTF-8",
            domain=domain,
            secret_name=secret_name,
            namespace=namespace,
        )


class DomainNotConfiguredError(SolverError):
    """The challenge's domain has no entry in the issuer configuration."""

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"domain '{domain}' not found in config")


class ProviderError(SolverError):
    """Base exception for errors reported by the Variomedia API.

    Args:
        detail: Human readable description.
        status_code: HTTP status code of the failing exchange, if any.
    """

    def __init__(self, detail: str, status_code: int | None = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class RateLimitError(ProviderError):
    """Variomedia answered with HTTP 429 Too Many Requests."""

    def __init__(self, retry_after: int | None = None):
        self.retry_after = retry_after
        super().__init__("Variomedia rate limit reached (HTTP code 429)", status_code=429)

    @classmethod
    def from_headers(cls, headers: dict[str, str] | None) -> "RateLimitError":
        """Create a RateLimitError, honouring a Retry-After header if present.

        Args:
            headers: Response headers.

        Returns:
            RateLimitError instance.
        """
        value = headers.get("Retry-After") if headers else None
        return cls(retry_after=cls._parse_retry_after(value))

    @staticmethod
    def _parse_retry_after(value: str | None) -> int | None:
        """Parse Retry-After header (seconds or HTTP-date).

        Args:
            value: Retry-After header value.

        Returns:
            Seconds to wait, or None if not parseable.
        """
        if not value:
            return None
        try:
            return int(value)
        except ValueError:
            from datetime import UTC, datetime
            from email.utils import parsedate_to_datetime

            try:
                dt = parsedate_to_datetime(value)
            except (TypeError, ValueError):
                return None
            return max(0, int((dt - datetime.now(UTC)).total_seconds()))

    def get_retry_seconds(self, default: int = 60) -> int:
        """Get retry delay, falling back to default.

        Args:
            default: Default seconds if retry_after is not set.

        Returns:
            Number of seconds to wait before retrying.
        """
        return self.retry_after if self.retry_after is not None else default


class ProviderRejectedError(ProviderError):
    """Variomedia answered with an unexpected HTTP status code."""

    def __init__(self, operation: str, status_code: int):
        self.operation = operation
        super().__init__(
            f"failed {operation}: server reported status code {status_code}",
            status_code=status_code,
        )


class JobTimedOutError(ProviderError):
    """The DNS job was still pending after the poll budget was used up."""

    def __init__(self, last_status: str | None):
        self.last_status = last_status
        super().__init__(f"DNS update job timed out with most recent status '{last_status}'")


class JobFailedError(ProviderError):
    """The DNS job reached a terminal status other than ``done``."""

    def __init__(self, last_status: str | None):
        self.last_status = last_status
        super().__init__(f"DNS update job finished with status '{last_status}'")


class TransportError(SolverError):
    """Network failure while talking to Variomedia or the secret store."""


class MalformedResponseError(TransportError):
    """A response body was missing or could not be decoded."""


class OperationCancelledError(SolverError):
    """Polling was aborted because the cancellation signal was set."""

    def __init__(self, last_status: str | None = None):
        self.last_status = last_status
        super().__init__(f"DNS job polling cancelled with most recent status '{last_status}'")
