"""Map a DNS-01 challenge onto a Variomedia domain, host label and API key."""

from collections.abc import Mapping

from pydantic import SecretStr

from variomedia_webhook.exceptions import DomainNotConfiguredError
from variomedia_webhook.models import ChallengeTarget


def map_challenge(fqdn: str, zone: str, credentials: Mapping[str, SecretStr]) -> ChallengeTarget:
    """Split a challenge record name into domain and host label.

    Both ``fqdn`` and ``zone`` end with a dot. The zone is the domain as
    registered with Variomedia; the host label is whatever precedes it and
    is empty for a record at the zone apex.

    Args:
        fqdn: Resolved FQDN, e.g. ``_acme-challenge.foo.example.com.``.
        zone: Resolved zone, e.g. ``example.com.``.
        credentials: Mapping of domain to API key.

    Returns:
        ChallengeTarget(host_label, domain, api_key).

    Raises:
        DomainNotConfiguredError: If no API key is configured for the domain.
    """
    host_label = fqdn.removesuffix(zone).removesuffix(".")
    domain = zone.removesuffix(".")
    api_key = credentials.get(domain)
    if api_key is None:
        raise DomainNotConfiguredError(domain)
    return ChallengeTarget(host_label=host_label, domain=domain, api_key=api_key)
