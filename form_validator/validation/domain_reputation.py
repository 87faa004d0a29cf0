"""
Email Domain Reputation

Decides whether the domain part of a submitted email address looks like a
throwaway or hostile service. The decision is split in two:

- ``HttpDomainReputationOracle`` fetches ``https://{domain}`` with httpx and
  inspects the status code, page title and page text for spam markers.
- ``DomainReputationChecker`` consults the shared cache first and stores
  every oracle verdict for ``DOMAIN_CACHE_TTL`` seconds under
  ``email_domain:{domain}``.

Unknown reputation is treated as bad: timeouts and transport failures are
reject verdicts and are cached like any other.

Dependencies:
- httpx 0.24+ for the outbound HTTPS probe
- bleach 6.0+ for reducing the fetched HTML to text
"""

import re
from typing import Optional, Protocol

import bleach
import httpx
import structlog

from form_validator.cache.exceptions import CacheError
from form_validator.monitoring import DOMAIN_CHECKS

logger = structlog.get_logger("validation.domain_reputation")

CACHE_KEY_PREFIX = "email_domain:"
DEFAULT_CACHE_TTL = 86400
DEFAULT_TIMEOUT_SECONDS = 5.0
MAX_BODY_BYTES = 512 * 1024

VALID_STATUS_CODES = frozenset({200, 301, 302, 307, 308})
SPAM_MARKERS = (
    "fake", "temporary", "spam", "prevent", "anonymous", "disposable", "hacking", "attacking",
)

FLAGGED_BEFORE = "Domain previously flagged"
INVALID_RESPONSE = "Email domain doesn't return a valid HTTP response"
SPAMMY_CONTENT = "Email domain page contains spammy content"
TIMED_OUT = "Email domain timed out"
UNREACHABLE = "Email domain does not support HTTPS or is invalid"

_TITLE = re.compile(r'<title[^>]*>(.*?)</title>', re.IGNORECASE | re.DOTALL)


class DomainReputationOracle(Protocol):
    """Anything that can judge a domain; returns a reject reason or None."""

    def evaluate(self, domain: str) -> Optional[str]:
        ...


class HttpDomainReputationOracle:
    """
    Judge a domain by fetching its HTTPS landing page.

    Redirects are not followed: a redirecting status is itself a valid
    response and its body is scanned as-is.

    Args:
        timeout: Total request timeout in seconds
        max_body_bytes: Upper bound on the number of body bytes inspected
        client: Optional httpx.Client, mainly for tests
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 max_body_bytes: int = MAX_BODY_BYTES,
                 client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self.max_body_bytes = max_body_bytes
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
            headers={'User-Agent': 'form-validator/2.2.2'},
        )

    def evaluate(self, domain: str) -> Optional[str]:
        url = f"https://{domain}"
        try:
            with self._client.stream('GET', url) as response:
                if response.status_code not in VALID_STATUS_CODES:
                    logger.info("Domain returned unexpected status",
                                domain=domain, status_code=response.status_code)
                    return INVALID_RESPONSE
                raw = self._read_body(response)
        except httpx.TimeoutException:
            logger.info("Domain probe timed out", domain=domain, timeout=self.timeout)
            return TIMED_OUT
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.info("Domain probe failed", domain=domain, error_type=type(e).__name__)
            return UNREACHABLE

        if self._contains_spam_markers(raw):
            return SPAMMY_CONTENT
        return None

    def _read_body(self, response: httpx.Response) -> str:
        chunks = []
        received = 0
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            received += len(chunk)
            if received >= self.max_body_bytes:
                break
        body = b''.join(chunks)[:self.max_body_bytes]
        return body.decode(response.encoding or 'utf-8', errors='replace')

    @staticmethod
    def _contains_spam_markers(raw: str) -> bool:
        title_match = _TITLE.search(raw)
        title = title_match.group(1).lower() if title_match else ''
        text = bleach.clean(raw, tags=[], strip=True).lower()
        return any(marker in title or marker in text for marker in SPAM_MARKERS)

    def close(self) -> None:
        self._client.close()


class DomainReputationChecker:
    """
    Cache-first domain reputation lookups.

    Args:
        oracle: Verdict source consulted on cache misses
        cache: Shared cache exposing ``get`` and ``set``
        ttl: Seconds a verdict stays cached
        enabled: When False every domain is accepted without a lookup
    """

    def __init__(self, oracle: DomainReputationOracle, cache, ttl: int = DEFAULT_CACHE_TTL,
                 enabled: bool = True):
        self.oracle = oracle
        self.cache = cache
        self.ttl = ttl
        self.enabled = enabled

    def check(self, domain: str) -> Optional[str]:
        """
        Return a reject message for ``domain``, or None when it is acceptable.
        """
        if not self.enabled or not domain:
            return None

        domain = domain.strip().lower()
        cache_key = f"{CACHE_KEY_PREFIX}{domain}"

        cached = self._cached_verdict(cache_key)
        if cached is not None:
            flagged = cached == 'true'
            DOMAIN_CHECKS.labels(source='cache', verdict='flagged' if flagged else 'accepted').inc()
            return FLAGGED_BEFORE if flagged else None

        reason = self.oracle.evaluate(domain)
        DOMAIN_CHECKS.labels(source='oracle', verdict='flagged' if reason else 'accepted').inc()
        self._store_verdict(cache_key, reason is not None)

        if reason:
            logger.info("Email domain flagged", domain=domain, reason=reason)
        return reason

    def _cached_verdict(self, cache_key: str) -> Optional[str]:
        try:
            return self.cache.get(cache_key)
        except CacheError as e:
            logger.warning("Domain verdict lookup failed", key=cache_key, error=e.message)
            return None

    def _store_verdict(self, cache_key: str, flagged: bool) -> None:
        try:
            self.cache.set(cache_key, 'true' if flagged else 'false', self.ttl)
        except CacheError as e:
            logger.warning("Domain verdict not cached", key=cache_key, error=e.message)


__all__ = [
    'DomainReputationOracle',
    'HttpDomainReputationOracle',
    'DomainReputationChecker',
]
