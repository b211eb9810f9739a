# Copyright (C) 2024 Mini Couple Journal Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Sliding-window limiter tests with a pinned clock."""

from minijournal_server.rate_limit import RateLimiter


def test_window_slides():
    limiter = RateLimiter({"/auth/login": 2}, window=60)
    assert limiter.hit("1.2.3.4", "/auth/login", now=0)
    assert limiter.hit("1.2.3.4", "/auth/login", now=10)
    assert not limiter.hit("1.2.3.4", "/auth/login", now=59)
    assert limiter.hit("1.2.3.4", "/auth/login", now=61)


def test_unlimited_path_keeps_no_state():
    limiter = RateLimiter({"/auth/login": 2})
    for i in range(100):
        assert limiter.hit(f"10.0.0.{i}", "/auth/google", now=i)
    assert len(limiter) == 0


def test_idle_clients_are_evicted():
    limiter = RateLimiter({"/auth/login": 5}, window=60)
    for i in range(30):
        limiter.hit(f"10.0.{i}.1", "/auth/login", now=i)
    assert len(limiter) == 30

    limiter.hit("192.0.2.1", "/auth/login", now=200)
    assert len(limiter) == 1
