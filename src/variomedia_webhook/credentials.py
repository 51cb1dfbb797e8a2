"""Resolve per-domain secret references into Variomedia API keys."""

from collections.abc import Iterator, Mapping

from pydantic import SecretStr

from variomedia_webhook._logging import get_logger, redact
from variomedia_webhook.config import DEFAULT_SECRET_KEY
from variomedia_webhook.exceptions import (
    SecretFieldMissingError,
    SecretNotFoundError,
    SecretValueInvalidError,
)
from variomedia_webhook.secrets import SecretStore

logger = get_logger(__name__)


class CredentialTable(Mapping[str, SecretStr]):
    """Immutable mapping of domain (no trailing dot) to API key."""

    def __init__(self, keys: Mapping[str, str | SecretStr] | None = None):
        self._keys: dict[str, SecretStr] = {
            domain: key if isinstance(key, SecretStr) else SecretStr(key)
            for domain, key in (keys or {}).items()
        }

    def __getitem__(self, domain: str) -> SecretStr:
        return self._keys[domain]

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"CredentialTable(domains={sorted(self._keys)!r})"


def resolve_credentials(
    config: Mapping[str, str],
    namespace: str,
    store: SecretStore,
    field: str = DEFAULT_SECRET_KEY,
) -> CredentialTable:
    """Replace each configured secret name with the API key it holds.

    Trailing carriage returns, newlines and blanks are stripped from the
    secret value; Variomedia rejects keys carrying them.

    Args:
        config: Mapping of domain to secret name.
        namespace: Namespace the secrets live in.
        store: Secret store to read from.
        field: Name of the secret field holding the API key.

    Returns:
        The resolved CredentialTable.

    Raises:
        SecretNotFoundError: If a referenced secret does not exist.
        SecretFieldMissingError: If a secret lacks ``field``.
        SecretValueInvalidError: If ``field`` is not valid UTF-8.
        TransportError: If the secret store could not be reached.
    """
    keys: dict[str, str] = {}
    for domain, secret_name in config.items():
        logger.debug(
            "Loading API key",
            extra={"domain": domain, "secret": secret_name, "namespace": namespace},
        )
        secret = store.get_secret(namespace, secret_name)
        if secret is None:
            logger.error(
                "Secret not found",
                extra={"domain": domain, "secret": secret_name, "namespace": namespace},
            )
            raise SecretNotFoundError(domain, secret_name, namespace)

        raw = secret.get(field)
        if raw is None:
            logger.error(
                "Secret lacks API key field",
                extra={"secret": secret_name, "namespace": namespace, "field": field},
            )
            raise SecretFieldMissingError(domain, secret_name, namespace, field)

        try:
            keys[domain] = raw.decode().rstrip("\r\n ")
        except UnicodeDecodeError as e:
            logger.error(
                "Secret API key field is not valid UTF-8",
                extra={"secret": secret_name, "namespace": namespace, "field": field},
            )
            raise SecretValueInvalidError(domain, secret_name, namespace, field) from e
        logger.debug(
            "Stored API key",
            extra={"domain": domain, "api_key": redact(keys[domain])},
        )

    return CredentialTable(keys)
