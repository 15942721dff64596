"""Request signing for the Coincheck private API.

``ACCESS-SIGNATURE`` is the lower-case hex HMAC-SHA256 of
``nonce + url + body`` keyed with the secret.  ``url`` is the base endpoint
followed by the request path (query string included); ``body`` is the empty
string for requests without one.
"""

import hashlib
import hmac
import threading
import time
from typing import Callable, Optional


def generate_signature(secret: str, nonce: str, url: str, body: str = "") -> str:
    """Return the hex signature for one request."""
    message = nonce + url + body
    mac = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256)
    return mac.hexdigest()


class NonceSource:
    """Strictly increasing millisecond nonces for one credential.

    Share one instance per credential pair.  When the clock stalls or moves
    backwards the previous value is bumped by one.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None) -> None:
        self._clock = clock or time.time
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> str:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return str(candidate)
