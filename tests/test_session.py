"""
Tests for preview sessions and tick-based nonces.
"""

from __future__ import annotations

import pytest

from bound_preview.core.errors import SessionExpiredError
from bound_preview.session import NonceIssuer, PreviewSession

LIFETIME = 86400
HALF = LIFETIME / 2


class TestNonceIssuer:
    def test_nonce_shape(self, clock):
        nonce = NonceIssuer("secret", LIFETIME, clock=clock).create("preview-customize_a", "tok")
        assert len(nonce) == 10
        int(nonce, 16)

    def test_verify_in_issuing_tick(self, clock):
        issuer = NonceIssuer("secret", LIFETIME, clock=clock)
        nonce = issuer.create("act", "tok")
        assert issuer.verify(nonce, "act", "tok") == 1

    def test_verify_in_following_tick(self, clock):
        issuer = NonceIssuer("secret", LIFETIME, clock=clock)
        nonce = issuer.create("act", "tok")
        clock.advance(HALF)
        assert issuer.verify(nonce, "act", "tok") == 2
        clock.advance(HALF)
        assert issuer.verify(nonce, "act", "tok") == 0

    def test_verify_rejects_other_action_token_or_secret(self, clock):
        issuer = NonceIssuer("secret", LIFETIME, clock=clock)
        nonce = issuer.create("act", "tok")
        assert issuer.verify(nonce, "other", "tok") == 0
        assert issuer.verify(nonce, "act", "other") == 0
        assert NonceIssuer("different", LIFETIME, clock=clock).verify(nonce, "act", "tok") == 0
        assert issuer.verify(None, "act", "tok") == 0
        assert issuer.verify("", "act", "tok") == 0

    def test_verify_rejects_non_ascii_nonce(self, clock):
        issuer = NonceIssuer("secret", LIFETIME, clock=clock)
        assert issuer.verify("ééé", "act", "tok") == 0
        assert issuer.verify("é" + issuer.create("act", "tok")[1:], "act", "tok") == 0


class TestPreviewSession:
    def test_start(self, clock):
        session = PreviewSession.start(
            "twentytwenty", NonceIssuer("s", clock=clock), ttl_seconds=60, snapshot={"blogname": "x"}, clock=clock
        )
        assert len(session.session_id) == 32
        assert session.nonce_action == "preview-customize_twentytwenty"
        assert session.snapshot == {"blogname": "x"}
        assert session.is_active

    def test_nonce_round_trip(self, clock):
        session = PreviewSession.start("t", NonceIssuer("s", clock=clock), clock=clock)
        assert session.check_nonce(session.issue_nonce()) == 1

    def test_nonce_is_bound_to_session(self, clock):
        issuer = NonceIssuer("s", clock=clock)
        first = PreviewSession.start("t", issuer, clock=clock)
        second = PreviewSession.start("t", issuer, clock=clock)
        with pytest.raises(SessionExpiredError):
            second.check_nonce(first.issue_nonce())

    def test_expiry(self, clock):
        session = PreviewSession.start("t", NonceIssuer("s", clock=clock), ttl_seconds=60, clock=clock)
        clock.advance(60)
        assert not session.is_active
        with pytest.raises(SessionExpiredError, match="expired"):
            session.ensure_active()
        with pytest.raises(SessionExpiredError):
            session.issue_nonce()

    def test_end(self, clock):
        session = PreviewSession.start("t", NonceIssuer("s", clock=clock), clock=clock)
        session.end()
        session.end()
        assert not session.is_active
        with pytest.raises(SessionExpiredError, match="ended"):
            session.ensure_active()
