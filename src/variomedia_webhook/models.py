"""Pydantic models for the Variomedia DNS API and solver inputs."""

from enum import StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, Field, SecretStr

# =============================================================================
# Enums
# =============================================================================


class JobStatus(StrEnum):
    """Queue job statuses reported by Variomedia."""

    PENDING = "pending"
    DONE = "done"


class HttpOutcome(StrEnum):
    """Classification of a single HTTP exchange with Variomedia."""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    ERROR = "error"


# =============================================================================
# Wire models (JSON:API, application/vnd.api+json)
# =============================================================================


class DnsRecordAttributes(BaseModel):
    """Attributes of a ``dns-record`` resource."""

    record_type: str = "TXT"
    name: str
    domain: str
    data: str
    ttl: int


class DnsRecordData(BaseModel):
    """Resource object wrapping DNS record attributes."""

    type: str = "dns-record"
    attributes: DnsRecordAttributes


class RecordMutationRequest(BaseModel):
    """Request body for ``POST /dns-records``."""

    data: DnsRecordData

    @classmethod
    def txt(cls, domain: str, name: str, value: str, ttl: int) -> "RecordMutationRequest":
        """Build a TXT record mutation for ``name`` within ``domain``."""
        return cls(
            data=DnsRecordData(
                attributes=DnsRecordAttributes(name=name, domain=domain, data=value, ttl=ttl)
            )
        )


class JobData(BaseModel):
    """The ``queue-job`` resource returned for every DNS mutation."""

    type: str = ""
    id: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)
    links: dict[str, str] = Field(default_factory=dict)


class JobResponse(BaseModel):
    """Top level document describing a DNS job."""

    data: JobData
    links: dict[str, str] = Field(default_factory=dict)

    @property
    def status(self) -> str | None:
        """Raw status string as reported by the provider."""
        status = self.data.attributes.get("status")
        return None if status is None else str(status)

    @property
    def is_pending(self) -> bool:
        return self.status == JobStatus.PENDING

    @property
    def is_done(self) -> bool:
        return self.status == JobStatus.DONE

    @property
    def status_link(self) -> str | None:
        """URL to poll for job status."""
        return self.data.links.get("queue-job")

    @property
    def record_link(self) -> str | None:
        """URL of the DNS record affected by the job."""
        return self.data.links.get("dns-record")


# =============================================================================
# Solver inputs
# =============================================================================


class ChallengeRequest(BaseModel):
    """DNS-01 challenge as handed over by the host framework.

    Field aliases follow cert-manager's ``ChallengeRequest`` JSON names.
    ``resolved_fqdn`` and ``resolved_zone`` are dot-terminated.
    """

    uid: str = ""
    action: str = ""
    type: str = "dns-01"
    dns_name: str = Field(default="", alias="dnsName")
    key: str
    resource_namespace: str = Field(default="", alias="resourceNamespace")
    resolved_fqdn: str = Field(alias="resolvedFQDN")
    resolved_zone: str = Field(alias="resolvedZone")
    allow_ambient_credentials: bool = Field(default=False, alias="allowAmbientCredentials")
    config: Any = None

    model_config = {"populate_by_name": True}


class ChallengeTarget(NamedTuple):
    """Where a challenge's TXT record lives and which key may change it."""

    host_label: str
    domain: str
    api_key: SecretStr
