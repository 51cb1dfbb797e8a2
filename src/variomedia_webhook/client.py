"""Client for Variomedia's job based DNS API (API version 2019)."""

import threading
from typing import Any, NamedTuple

import httpx
from pydantic import SecretStr, ValidationError

from variomedia_webhook._logging import Timer, get_challenge_extra, get_logger, redact
from variomedia_webhook.config import DEFAULT_API_URL, MIN_TTL
from variomedia_webhook.exceptions import (
    JobFailedError,
    JobTimedOutError,
    MalformedResponseError,
    OperationCancelledError,
    ProviderRejectedError,
    RateLimitError,
    TransportError,
)
from variomedia_webhook.models import HttpOutcome, JobResponse, RecordMutationRequest
from variomedia_webhook.polling import Cancelled, Done, Failed, poll_until

logger = get_logger(__name__)

CONTENT_TYPE = "application/vnd.api+json"
ACCEPT = "application/vnd.variomedia.v1+json"

_ACCEPTED_STATUS = frozenset({200, 201, 202})
_BODY_STATUS = frozenset({200, 202})


class ProviderReply(NamedTuple):
    """Status code and, for 200/202 only, the decoded body of an exchange."""

    status_code: int
    body: dict[str, Any] | None
    headers: dict[str, str]


class VariomediaClient:
    """Synchronous create/delete of TXT records on top of Variomedia jobs.

    Every mutation returns a queue job which is polled until it is done,
    the poll budget is used up, or the provider reports an error.

    Args:
        api_key: Customer specific API key issued by Variomedia.
        api_url: Base URL of the API (default: https://api.variomedia.de).
        timeout: HTTP request timeout in seconds (default: 30).
        poll_interval: Seconds between job status lookups (default: 2).
        max_polls: Maximum number of job status lookups (default: 5).
        http_client: Optional preconfigured httpx client.
    """

    def __init__(
        self,
        api_key: str | SecretStr,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30,
        poll_interval: float = 2,
        max_polls: int = 5,
        http_client: httpx.Client | None = None,
    ):
        self._api_key = api_key if isinstance(api_key, SecretStr) else SecretStr(api_key)
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._http = http_client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()

    def __enter__(self) -> "VariomediaClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @property
    def records_url(self) -> str:
        return f"{self.api_url}/dns-records"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self._api_key.get_secret_value()}",
            "Content-Type": CONTENT_TYPE,
            "Accept": ACCEPT,
        }

    def _request(self, method: str, url: str, payload: dict | None = None) -> ProviderReply:
        """Send a request and return its status and, for 200/202, its body.

        Raises:
            TransportError: On network failure.
            MalformedResponseError: If a 200/202 body is not a JSON object.
        """
        logger.debug(
            "Variomedia request",
            extra={
                "method": method,
                "url": url,
                "api_key": redact(self._api_key.get_secret_value()),
            },
        )
        try:
            response = self._http.request(
                method, url, json=payload, headers=self._headers(), timeout=self.timeout
            )
        except httpx.HTTPError as e:
            logger.error("Variomedia request failed", extra={"method": method, "url": url})
            raise TransportError(f"{method} {url} failed: {e}") from e

        body = None
        if response.status_code in _BODY_STATUS:
            try:
                body = response.json()
            except ValueError as e:
                raise MalformedResponseError(f"cannot decode response from {url}: {e}") from e
            if not isinstance(body, dict):
                raise MalformedResponseError(f"unexpected response document from {url}")

        logger.debug(
            "Variomedia response",
            extra={"method": method, "url": url, "status_code": response.status_code},
        )
        return ProviderReply(response.status_code, body, dict(response.headers))

    @staticmethod
    def classify(status_code: int, tolerate_not_found: bool = False) -> HttpOutcome:
        """Classify an HTTP status code for job handling."""
        if status_code == 429:
            return HttpOutcome.RATE_LIMITED
        if status_code == 404 and tolerate_not_found:
            return HttpOutcome.NOT_FOUND
        if status_code in _ACCEPTED_STATUS:
            return HttpOutcome.SUCCESS
        return HttpOutcome.ERROR

    def _interpret(
        self, reply: ProviderReply, operation: str, tolerate_not_found: bool
    ) -> JobResponse | None:
        """Turn a reply into a job, or None if the record is gone.

        Raises:
            RateLimitError: On HTTP 429.
            ProviderRejectedError: On any other unexpected status.
            MalformedResponseError: If the body is not a job document.
        """
        outcome = self.classify(reply.status_code, tolerate_not_found)
        if outcome is HttpOutcome.RATE_LIMITED:
            logger.error(
                "Variomedia rate limit reached",
                extra={"operation": operation, **get_challenge_extra()},
            )
            raise RateLimitError.from_headers(reply.headers)
        if outcome is HttpOutcome.NOT_FOUND:
            return None
        if outcome is HttpOutcome.ERROR:
            logger.error(
                "Variomedia rejected request",
                extra={
                    "operation": operation,
                    "status_code": reply.status_code,
                    **get_challenge_extra(),
                },
            )
            raise ProviderRejectedError(operation, reply.status_code)

        if reply.body is None:
            raise MalformedResponseError(
                f"{operation}: status {reply.status_code} response carried no job document"
            )
        try:
            return JobResponse.model_validate(reply.body)
        except ValidationError as e:
            raise MalformedResponseError(f"{operation}: cannot decode job document: {e}") from e

    def _fetch_job(
        self, job: JobResponse, operation: str, tolerate_not_found: bool
    ) -> JobResponse | None:
        """Re-read the status of a pending job."""
        link = job.status_link
        if not link:
            raise MalformedResponseError(
                f"{operation}: pending job {job.data.id!r} has no queue-job link"
            )
        reply = self._request("GET", link)
        return self._interpret(reply, operation, tolerate_not_found)

    def _await_job(
        self,
        job: JobResponse | None,
        operation: str,
        tolerate_not_found: bool,
        cancel: threading.Event | None,
    ) -> JobResponse | None:
        """Poll a job until it is done.

        Returns:
            The finished job, or None if the record turned out to be gone
            (only when ``tolerate_not_found``).
        """
        with Timer() as timer:
            result = poll_until(
                job,
                fetch=lambda last: self._fetch_job(last, operation, tolerate_not_found),
                is_terminal=lambda current: current is None or not current.is_pending,
                max_attempts=self.max_polls,
                delay=self.poll_interval,
                cancel=cancel,
            )

        if isinstance(result, Failed):
            raise result.error

        extra = {
            "operation": operation,
            "polls": result.attempts,
            "duration_ms": round(timer.elapsed_ms, 2),
            **get_challenge_extra(),
        }
        if isinstance(result, Done):
            current = result.value
            if current is None:
                logger.info("DNS record is gone", extra=extra)
                return None
            if current.is_done:
                logger.info("DNS job finished", extra={**extra, "job_id": current.data.id})
                return current
            logger.error("DNS job failed", extra={**extra, "status": current.status})
            raise JobFailedError(current.status)

        last_status = result.last.status if result.last is not None else None
        if isinstance(result, Cancelled):
            logger.warning("DNS job polling cancelled", extra={**extra, "status": last_status})
            raise OperationCancelledError(last_status)

        logger.error("DNS job timed out", extra={**extra, "status": last_status})
        raise JobTimedOutError(last_status)

    def create_or_update_txt_record(
        self,
        domain: str,
        name: str,
        value: str,
        ttl: int = MIN_TTL,
        cancel: threading.Event | None = None,
    ) -> str:
        """Create or update a TXT record and wait for the job to finish.

        Args:
            domain: DNS domain registered with Variomedia (no trailing dot).
            name: Host label within the domain ("" for the apex).
            value: TXT record value.
            ttl: Record TTL; Variomedia rejects values below 300.
            cancel: Optional signal aborting the job polling.

        Returns:
            URL of the resulting DNS record, needed to delete it later.

        Raises:
            RateLimitError: If Variomedia throttles the request.
            ProviderRejectedError: On an unexpected HTTP status.
            JobTimedOutError: If the job stays pending too long.
            JobFailedError: If the job ends in a status other than done.
            OperationCancelledError: If ``cancel`` is set while polling.
            TransportError: On network or decoding failures.
        """
        operation = "creating TXT record"
        payload = RecordMutationRequest.txt(domain, name, value, ttl).model_dump()
        reply = self._request("POST", self.records_url, payload)
        job = self._interpret(reply, operation, tolerate_not_found=False)

        job = self._await_job(job, operation, tolerate_not_found=False, cancel=cancel)
        if job is None:
            raise MalformedResponseError(f"{operation}: job document vanished while polling")
        record_url = job.record_link
        if not record_url:
            raise MalformedResponseError(f"{operation}: finished job has no dns-record link")

        logger.info(
            "TXT record created",
            extra={"domain": domain, "record_name": name, "record_url": record_url},
        )
        return record_url

    def delete_txt_record(
        self,
        url: str,
        ttl: int = MIN_TTL,
        cancel: threading.Event | None = None,
    ) -> None:
        """Delete a TXT record by URL and wait for the job to finish.

        An empty URL or a record that is already gone counts as success.

        Args:
            url: DNS record URL as returned by create_or_update_txt_record().
            ttl: Record TTL (unused by the DELETE request itself).
            cancel: Optional signal aborting the job polling.

        Raises:
            Same as create_or_update_txt_record(), except that HTTP 404 is
            treated as success.
        """
        if not url:
            logger.warning(
                "No DNS record URL known, nothing to delete",
                extra={"ttl": ttl, **get_challenge_extra()},
            )
            return

        operation = "deleting TXT record"
        reply = self._request("DELETE", url)
        job = self._interpret(reply, operation, tolerate_not_found=True)
        self._await_job(job, operation, tolerate_not_found=True, cancel=cancel)
        logger.info("TXT record deleted", extra={"record_url": url})
