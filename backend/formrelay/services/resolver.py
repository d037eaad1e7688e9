"""
Domain resolution for the email validator.

The email check asks one question: does this domain accept mail (has at
least one MX record)? That question goes through a DomainResolver so the
validator stays pure and tests never touch the network.

Implementations:
  DnsMxResolver     - live lookup with dnspython, bounded by a lifetime timeout
  StaticMxResolver  - fixed in-memory set of mail domains (tests, local dev)
"""

import logging
from typing import Iterable, Optional, Protocol

import dns.exception
import dns.resolver

logger = logging.getLogger(__name__)


class DomainResolver(Protocol):
    def has_mx(self, domain: str) -> bool:
        ...


class DnsMxResolver:
    """
    Resolve MX records over DNS.

    Every failure mode (NXDOMAIN, empty answer, no nameservers, timeout) is
    reported as "no MX". The lifetime timeout caps the whole lookup,
    including retries across nameservers.
    """

    def __init__(self, timeout: float = 5.0, resolver: Optional[dns.resolver.Resolver] = None):
        self.timeout = timeout
        self._resolver = resolver or dns.resolver.Resolver()

    def has_mx(self, domain: str) -> bool:
        try:
            answer = self._resolver.resolve(domain, "MX", lifetime=self.timeout)
        except dns.exception.DNSException as e:
            logger.info(f"MX lookup failed for {domain!r}: {type(e).__name__}")
            return False
        return len(answer) > 0


class StaticMxResolver:
    """Answer MX lookups from a fixed set of domains (case-insensitive)."""

    def __init__(self, domains: Iterable[str] = ()):
        self.domains = {d.lower().rstrip(".") for d in domains}
        self.lookups: list[str] = []

    def has_mx(self, domain: str) -> bool:
        self.lookups.append(domain)
        return domain.lower().rstrip(".") in self.domains
