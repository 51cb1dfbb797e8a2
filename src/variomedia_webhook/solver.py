"""DNS-01 solver exposing present/clean up to the host framework."""

import threading
from collections.abc import Callable
from typing import Any

from pydantic import SecretStr, ValidationError

from variomedia_webhook._logging import bind_challenge, get_logger, reset_challenge
from variomedia_webhook.cache import EntryLocationCache
from variomedia_webhook.client import VariomediaClient
from variomedia_webhook.config import SolverSettings, load_solver_config
from variomedia_webhook.credentials import resolve_credentials
from variomedia_webhook.exceptions import ConfigInvalidError, SolverError
from variomedia_webhook.mapping import map_challenge
from variomedia_webhook.models import ChallengeRequest, ChallengeTarget
from variomedia_webhook.secrets import SecretStore

logger = get_logger(__name__)

ClientFactory = Callable[[SecretStr], VariomediaClient]


class VariomediaSolver:
    """Present and clean up ACME DNS-01 TXT records at Variomedia.

    Both operations tolerate being called repeatedly with the same
    challenge. Only the record carrying the challenge's ``key`` is removed
    on clean up, so concurrent validations of one name do not interfere.

    Args:
        secret_store: Where the per-domain API keys are read from.
        settings: Runtime settings (default: SolverSettings()).
        cache: Record URL cache; one is created if not given.
        client_factory: Builds a VariomediaClient for an API key.
    """

    name = "variomedia-APIv2019"

    def __init__(
        self,
        secret_store: SecretStore,
        settings: SolverSettings | None = None,
        cache: EntryLocationCache | None = None,
        client_factory: ClientFactory | None = None,
    ):
        self.secret_store = secret_store
        self.settings = settings or SolverSettings()
        self.cache = cache if cache is not None else EntryLocationCache()
        self._client_factory = client_factory or self._default_client
        self._stop_event: threading.Event | None = None

    def _default_client(self, api_key: SecretStr) -> VariomediaClient:
        return VariomediaClient(
            api_key,
            api_url=self.settings.api_url,
            timeout=self.settings.request_timeout,
            poll_interval=self.settings.poll_interval,
            max_polls=self.settings.max_polls,
        )

    def initialize(self, stop_event: threading.Event | None = None) -> None:
        """Register the host's shutdown signal.

        Once set, pending job polling is aborted instead of running to
        completion.
        """
        self._stop_event = stop_event
        logger.debug("Solver initialized", extra={"solver": self.name})

    def _resolve(self, challenge: ChallengeRequest) -> ChallengeTarget:
        config = load_solver_config(challenge.config)
        credentials = resolve_credentials(
            config,
            challenge.resource_namespace,
            self.secret_store,
            field=self.settings.secret_key,
        )
        return map_challenge(challenge.resolved_fqdn, challenge.resolved_zone, credentials)

    def _run(
        self,
        operation: str,
        challenge: ChallengeRequest | dict[str, Any],
        action: Callable[[ChallengeRequest, ChallengeTarget], None],
    ) -> None:
        if not isinstance(challenge, ChallengeRequest):
            try:
                challenge = ChallengeRequest.model_validate(challenge)
            except ValidationError as e:
                raise ConfigInvalidError(f"malformed challenge request: {e}") from e

        token = bind_challenge(challenge.resolved_fqdn, challenge.resolved_zone)
        try:
            logger.debug(f"{operation}() called", extra={"uid": challenge.uid})
            target = None
            try:
                target = self._resolve(challenge)
                action(challenge, target)
            except SolverError as e:
                context = f"zone {challenge.resolved_zone}"
                if target is not None:
                    context = f"domain {target.domain}, entry {target.host_label!r}"
                e.add_note(f"{operation}() failed for {context}")
                logger.error(
                    f"{operation}() finished with error",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )
                raise
            logger.debug(f"{operation}() finished")
        finally:
            reset_challenge(token)

    def _cancel_signal(self, cancel: threading.Event | None) -> threading.Event | None:
        return cancel if cancel is not None else self._stop_event

    def present(
        self,
        challenge: ChallengeRequest | dict[str, Any],
        cancel: threading.Event | None = None,
    ) -> None:
        """Create the challenge TXT record and remember its URL.

        Args:
            challenge: The challenge, as model or cert-manager JSON dict.
            cancel: Optional signal aborting job polling.

        Raises:
            SolverError: Any failure; the host framework owns retries.
        """

        def action(ch: ChallengeRequest, target: ChallengeTarget) -> None:
            with self._client_factory(target.api_key) as client:
                url = client.create_or_update_txt_record(
                    target.domain,
                    target.host_label,
                    ch.key,
                    self.settings.ttl,
                    cancel=self._cancel_signal(cancel),
                )
            self.cache.put(target.domain, target.host_label, ch.key, url)
            logger.debug(
                "Updated DNS entry cache",
                extra={"entries": len(self.cache), "record_url": url},
            )

        self._run("present", challenge, action)

    def clean_up(
        self,
        challenge: ChallengeRequest | dict[str, Any],
        cancel: threading.Event | None = None,
    ) -> None:
        """Delete the TXT record created for this challenge's key.

        A record unknown to the cache (e.g. after a restart or a second
        clean up) is treated as already deleted.

        Args:
            challenge: The challenge, as model or cert-manager JSON dict.
            cancel: Optional signal aborting job polling.

        Raises:
            SolverError: Any failure; the host framework owns retries.
        """

        def action(ch: ChallengeRequest, target: ChallengeTarget) -> None:
            url = self.cache.get(target.domain, target.host_label, ch.key) or ""
            with self._client_factory(target.api_key) as client:
                client.delete_txt_record(
                    url, self.settings.ttl, cancel=self._cancel_signal(cancel)
                )
            self.cache.delete(target.domain, target.host_label, ch.key)
            logger.debug("Updated DNS entry cache", extra={"entries": len(self.cache)})

        self._run("clean_up", challenge, action)
