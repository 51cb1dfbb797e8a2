"""Secret stores holding Variomedia API keys."""

import base64
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path

import httpx

from variomedia_webhook._logging import get_logger
from variomedia_webhook.exceptions import MalformedResponseError, TransportError

logger = get_logger(__name__)

_SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
_IN_CLUSTER_API = "https://kubernetes.default.svc"


class SecretStore(ABC):
    """Abstract interface for secret lookup.

    Secrets are addressed by namespace and name and hold a mapping of
    field names to raw bytes.
    """

    @abstractmethod
    def get_secret(self, namespace: str, name: str) -> dict[str, bytes] | None:
        """Fetch a secret.

        Args:
            namespace: Namespace the secret lives in.
            name: Secret name.

        Returns:
            Mapping of field name to raw value, or None if the secret does
            not exist.

        Raises:
            TransportError: If the store could not be reached.
        """
        ...


class InMemorySecretStore(SecretStore):
    """Secret store backed by a dict, keyed by ``(namespace, name)``."""

    def __init__(self, secrets: Mapping[tuple[str, str], Mapping[str, bytes | str]] | None = None):
        self._secrets: dict[tuple[str, str], dict[str, bytes]] = {}
        for (namespace, name), data in (secrets or {}).items():
            self.set_secret(namespace, name, data)

    def set_secret(self, namespace: str, name: str, data: Mapping[str, bytes | str]) -> None:
        self._secrets[(namespace, name)] = {
            field: value.encode() if isinstance(value, str) else bytes(value)
            for field, value in data.items()
        }

    def get_secret(self, namespace: str, name: str) -> dict[str, bytes] | None:
        data = self._secrets.get((namespace, name))
        return None if data is None else dict(data)


class KubernetesSecretStore(SecretStore):
    """Secret store reading Kubernetes ``Secret`` objects via the core API.

    Args:
        api_url: Base URL of the Kubernetes API server.
        token: Bearer token (usually the pod's service account token).
        verify: CA bundle path, False to disable verification, or True.
        timeout: HTTP request timeout in seconds (default: 30).
    """

    def __init__(
        self,
        api_url: str,
        token: str,
        verify: str | bool = True,
        timeout: float = 30,
        http_client: httpx.Client | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._http = http_client or httpx.Client(
            headers={"Authorization": f"Bearer {token}"},
            verify=verify,
            timeout=timeout,
        )

    @classmethod
    def in_cluster(
        cls, service_account_dir: Path = _SERVICE_ACCOUNT_DIR
    ) -> "KubernetesSecretStore":
        """Build a store from the mounted service account of the current pod."""
        token = (service_account_dir / "token").read_text().strip()
        ca_cert = service_account_dir / "ca.crt"
        return cls(
            api_url=_IN_CLUSTER_API,
            token=token,
            verify=str(ca_cert) if ca_cert.exists() else True,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()

    def __enter__(self) -> "KubernetesSecretStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def get_secret(self, namespace: str, name: str) -> dict[str, bytes] | None:
        url = f"{self.api_url}/api/v1/namespaces/{namespace}/secrets/{name}"
        try:
            response = self._http.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"unable to reach Kubernetes API: {e}") from e

        if response.status_code == 404:
            logger.debug("Secret not found", extra={"namespace": namespace, "secret": name})
            return None
        if response.status_code != 200:
            raise TransportError(
                f"Kubernetes API returned status {response.status_code} "
                f"for secret `{namespace}/{name}`"
            )

        try:
            data = response.json().get("data") or {}
            return {field: base64.b64decode(value) for field, value in data.items()}
        except (ValueError, AttributeError) as e:
            raise MalformedResponseError(
                f"cannot decode secret `{namespace}/{name}`: {e}"
            ) from e
