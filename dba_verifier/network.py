"""
Shared HTTP plumbing for the network-bound stages.

Every outbound call goes through a bounded timeout and checks the
cancellation signal first. Callers may pass their own httpx.Client (tests
inject one backed by httpx.MockTransport); otherwise a short-lived client
is opened per call.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

import httpx

from .exceptions import VerificationCancelled


def raise_if_cancelled(cancel: Optional[threading.Event], stage: str) -> None:
    """Stop before a network call if the run has been cancelled."""
    if cancel is not None and cancel.is_set():
        raise VerificationCancelled(
            f"Verification cancelled before {stage}", details={"stage": stage}
        )


@contextmanager
def client_scope(client: Optional[httpx.Client], timeout: float) -> Iterator[httpx.Client]:
    """Yield the caller's client, or a fresh one closed on exit."""
    if client is not None:
        yield client
        return
    with httpx.Client(timeout=timeout, follow_redirects=True) as owned:
        yield owned
