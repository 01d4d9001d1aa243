"""Preview sessions and nonces.

A preview session ties a random session id to the previewed theme
(stylesheet) and a snapshot of configuration values. Clients prove they
belong to the session with a nonce for the action
``preview-customize_<stylesheet>``.

Nonces are tick-based: the lifetime is split into two ticks and a nonce
verifies in the tick it was issued in (``1``) or the one after (``2``).
Anything else verifies as ``0``.
"""

from __future__ import annotations

import hashlib
import hmac
import math
import secrets
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from bound_preview.core.errors import SessionExpiredError
from bound_preview.core.logging import get_logger

log = get_logger(__name__)

Clock = Callable[[], float]


class NonceIssuer:
    """HMAC-SHA256 nonces with a two-tick validity window."""

    def __init__(self, secret: str, lifetime_seconds: int = 86400, clock: Clock = time.time) -> None:
        self._secret = secret.encode("utf-8")
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock

    def tick(self) -> int:
        return math.ceil(self._clock() / (self.lifetime_seconds / 2))

    def _digest(self, tick: int, action: str, token: str) -> str:
        message = f"{tick}|{action}|{token}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()[-12:-2]

    def create(self, action: str, token: str = "") -> str:
        return self._digest(self.tick(), action, token)

    def verify(self, nonce: str | None, action: str, token: str = "") -> int:
        if not nonce:
            return 0
        # Headers may carry arbitrary latin-1 text; compare as bytes.
        given = nonce.encode("utf-8")
        tick = self.tick()
        if hmac.compare_digest(given, self._digest(tick, action, token).encode()):
            return 1
        if hmac.compare_digest(given, self._digest(tick - 1, action, token).encode()):
            return 2
        return 0


@dataclass
class PreviewSession:
    """A token-scoped live-editing session.

    Attributes:
        session_id: Random token identifying the session
        stylesheet: Previewed theme
        snapshot: Configuration values the session started from
        expires_at: Epoch seconds after which the session is invalid
        ended: Set by ``end()``
    """

    session_id: str
    stylesheet: str
    issuer: NonceIssuer
    expires_at: float
    snapshot: dict[str, Any] = field(default_factory=dict)
    ended: bool = False
    clock: Clock = time.time

    @classmethod
    def start(
        cls,
        stylesheet: str,
        issuer: NonceIssuer,
        *,
        ttl_seconds: int = 3600,
        snapshot: Mapping[str, Any] | None = None,
        clock: Clock = time.time,
    ) -> PreviewSession:
        session = cls(
            session_id=secrets.token_hex(16),
            stylesheet=stylesheet,
            issuer=issuer,
            expires_at=clock() + ttl_seconds,
            snapshot=dict(snapshot or {}),
            clock=clock,
        )
        log.info("session.started", session_id=session.session_id, stylesheet=stylesheet)
        return session

    @property
    def nonce_action(self) -> str:
        return f"preview-customize_{self.stylesheet}"

    @property
    def is_active(self) -> bool:
        return not self.ended and self.clock() < self.expires_at

    def ensure_active(self) -> None:
        """Raise ``SessionExpiredError`` unless the session is usable."""
        if self.ended:
            raise SessionExpiredError("Preview session has ended").with_context(session_id=self.session_id)
        if self.clock() >= self.expires_at:
            raise SessionExpiredError("Preview session has expired").with_context(session_id=self.session_id)

    def issue_nonce(self) -> str:
        self.ensure_active()
        return self.issuer.create(self.nonce_action, self.session_id)

    def check_nonce(self, nonce: str | None) -> int:
        """Verify ``nonce`` for this session; raise if the session or nonce is invalid."""
        self.ensure_active()
        result = self.issuer.verify(nonce, self.nonce_action, self.session_id)
        if not result:
            raise SessionExpiredError("Preview nonce is invalid or expired").with_context(
                session_id=self.session_id
            )
        return result

    def end(self) -> None:
        if not self.ended:
            self.ended = True
            log.info("session.ended", session_id=self.session_id)
