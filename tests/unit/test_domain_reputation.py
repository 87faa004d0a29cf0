"""
Email domain reputation unit tests.

The HTTPS oracle is exercised through ``httpx.MockTransport``; the checker is
exercised against the in-memory cache and a recording stub oracle.
"""

import httpx
import pytest

from form_validator.cache import CacheOperationError
from form_validator.validation.domain_reputation import (
    FLAGGED_BEFORE,
    INVALID_RESPONSE,
    SPAMMY_CONTENT,
    TIMED_OUT,
    UNREACHABLE,
    DomainReputationChecker,
    HttpDomainReputationOracle,
)


def _oracle(handler, **kwargs):
    client = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=False)
    return HttpDomainReputationOracle(client=client, **kwargs)


class TestHttpDomainReputationOracle:
    """Verdicts derived from the landing page."""

    def test_clean_page_is_accepted(self):
        requested = []

        def handler(request):
            requested.append((request.url.scheme, request.url.host))
            return httpx.Response(200, html="<html><title>Acme Corp</title><p>Welcome</p></html>")

        assert _oracle(handler).evaluate('acme.com') is None
        assert requested == [('https', 'acme.com')]

    def test_redirect_status_is_a_valid_response(self):
        def handler(request):
            return httpx.Response(301, headers={'Location': 'https://www.acme.com/'})

        assert _oracle(handler).evaluate('acme.com') is None

    def test_unexpected_status_is_rejected(self):
        def handler(request):
            return httpx.Response(404, html="<title>Not found</title>")

        assert _oracle(handler).evaluate('acme.com') == INVALID_RESPONSE

    @pytest.mark.parametrize('body', [
        "<html><title>Free DISPOSABLE inbox</title></html>",
        "<html><title>Mail</title><body><p>Get a <b>temporary</b> address</p></body></html>",
    ])
    def test_spam_markers_in_title_or_text(self, body):
        def handler(request):
            return httpx.Response(200, html=body)

        assert _oracle(handler).evaluate('throwaway.io') == SPAMMY_CONTENT

    def test_markers_beyond_the_body_limit_are_not_seen(self):
        def handler(request):
            return httpx.Response(200, html="<p>" + "a" * 200 + " spam</p>")

        assert _oracle(handler, max_body_bytes=64).evaluate('acme.com') is None

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        assert _oracle(handler).evaluate('slow.example') == TIMED_OUT

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert _oracle(handler).evaluate('nothing.invalid') == UNREACHABLE


class TestDomainReputationChecker:
    """Cache-first lookups."""

    def test_second_lookup_is_served_from_cache(self, cache, domain_oracle):
        checker = DomainReputationChecker(domain_oracle, cache)

        assert checker.check('example.com') is None
        assert checker.check('example.com') is None
        assert domain_oracle.calls == ['example.com']

    def test_cached_flag_reports_previous_verdict(self, cache, domain_oracle):
        domain_oracle.verdicts['spam.io'] = SPAMMY_CONTENT
        checker = DomainReputationChecker(domain_oracle, cache)

        assert checker.check('spam.io') == SPAMMY_CONTENT
        assert checker.check('spam.io') == FLAGGED_BEFORE
        assert domain_oracle.calls == ['spam.io']

    def test_domain_is_lower_cased(self, cache, domain_oracle):
        checker = DomainReputationChecker(domain_oracle, cache)

        checker.check('Example.COM')
        checker.check('example.com')

        assert domain_oracle.calls == ['example.com']
        assert cache.get('email_domain:example.com') == 'false'

    def test_verdict_ttl(self, cache, domain_oracle, mocker):
        set_spy = mocker.spy(cache, 'set')
        DomainReputationChecker(domain_oracle, cache, ttl=120).check('example.com')
        set_spy.assert_called_once_with('email_domain:example.com', 'false', 120)

    def test_disabled_checker_never_calls_oracle(self, cache, domain_oracle):
        checker = DomainReputationChecker(domain_oracle, cache, enabled=False)
        assert checker.check('spam.io') is None
        assert domain_oracle.calls == []

    def test_cache_failures_fall_through_to_oracle(self, cache, domain_oracle, mocker):
        error = CacheOperationError("Redis get failed", operation='get')
        mocker.patch.object(cache, 'get', side_effect=error)
        mocker.patch.object(cache, 'set', side_effect=error)
        domain_oracle.verdicts['spam.io'] = SPAMMY_CONTENT

        checker = DomainReputationChecker(domain_oracle, cache)

        assert checker.check('spam.io') == SPAMMY_CONTENT
        assert checker.check('spam.io') == SPAMMY_CONTENT
        assert domain_oracle.calls == ['spam.io', 'spam.io']
