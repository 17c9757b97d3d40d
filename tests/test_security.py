"""Tests for the URL policy and the fixed-window rate limiter."""

from __future__ import annotations

import pytest

from backend.security import RateLimiter, UrlPolicy


class TestUrlPolicy:
    def test_empty_policy_allows_http_and_https(self) -> None:
        policy = UrlPolicy()
        assert policy.is_allowed("https://example.com/page")
        assert policy.is_allowed("http://example.com")

    @pytest.mark.parametrize(
        "url",
        ["ftp://example.com/file", "file:///etc/passwd", "javascript:alert(1)", "not a url", ""],
    )
    def test_rejects_non_http_urls(self, url: str) -> None:
        assert UrlPolicy().is_allowed(url) is False

    def test_blocked_domain_and_subdomains(self) -> None:
        policy = UrlPolicy.from_domains(blocked=["Bad.com"])
        assert not policy.is_allowed("https://bad.com/")
        assert not policy.is_allowed("https://www.bad.com/x")
        assert policy.is_allowed("https://notbad.com/")

    def test_allow_list(self) -> None:
        policy = UrlPolicy.from_domains(allowed=["example.com"])
        assert policy.is_allowed("https://example.com/")
        assert policy.is_allowed("https://docs.example.com/")
        assert not policy.is_allowed("https://example.org/")
        assert not policy.is_allowed("https://example.com.evil.net/")

    def test_block_wins_over_allow(self) -> None:
        policy = UrlPolicy.from_domains(allowed=["example.com"], blocked=["private.example.com"])
        assert policy.is_allowed("https://www.example.com/")
        assert not policy.is_allowed("https://private.example.com/")

    def test_from_settings(self, monkeypatch) -> None:
        monkeypatch.setattr("backend.config.settings.allowed_domains", [])
        monkeypatch.setattr("backend.config.settings.blocked_domains", ["blocked.test"])
        policy = UrlPolicy.from_settings()
        assert policy.blocked_domains == ("blocked.test",)
        assert not policy.is_allowed("http://blocked.test/")


class TestRateLimiter:
    def test_allows_up_to_limit(self) -> None:
        now = [0.0]
        limiter = RateLimiter(clock=lambda: now[0])
        decisions = [limiter.hit("ip", limit=3, window=60) for _ in range(4)]
        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert decisions[0].remaining == 2
        assert decisions[-1].retry_after == 60

    def test_window_resets(self) -> None:
        now = [0.0]
        limiter = RateLimiter(clock=lambda: now[0])
        limiter.hit("ip", 1, 10)
        assert not limiter.hit("ip", 1, 10).allowed
        now[0] = 10.0
        assert limiter.hit("ip", 1, 10).allowed

    def test_keys_are_independent(self) -> None:
        limiter = RateLimiter()
        assert limiter.hit("a", 1, 60).allowed
        assert limiter.hit("b", 1, 60).allowed
        assert not limiter.hit("a", 1, 60).allowed

    def test_purge_expired(self) -> None:
        now = [0.0]
        limiter = RateLimiter(clock=lambda: now[0])
        limiter.hit("a", 1, 5)
        limiter.hit("b", 1, 50)
        now[0] = 6.0
        assert limiter.purge_expired() == 1
        limiter.reset()
        assert limiter.purge_expired() == 0

    def test_hit_sweeps_expired_windows(self) -> None:
        now = [0.0]
        limiter = RateLimiter(clock=lambda: now[0])
        for i in range(1000):
            limiter.hit(f"scrape:10.0.{i // 256}.{i % 256}", 10, 60)
        assert len(limiter) == 1000

        now[0] = 61.0
        assert limiter.hit("scrape:192.0.2.1", 10, 60).allowed
        assert len(limiter) == 1

    def test_sweep_keeps_live_windows(self) -> None:
        now = [0.0]
        limiter = RateLimiter(clock=lambda: now[0])
        limiter.hit("short", 1, 5)
        limiter.hit("long", 1, 500)
        now[0] = 6.0
        limiter.hit("other", 1, 5)
        assert len(limiter) == 2
        assert not limiter.hit("long", 1, 500).allowed
