from __future__ import annotations

import signal

import pytest

from dvr_pipeline.errors import InterruptedFailure
from dvr_pipeline.runtime.signals import deferred_interrupts, interruptible, uninterruptible


def _deliver(signum: int) -> None:
    signal.getsignal(signum)(signum, None)


def test_interruptible_raises_immediately() -> None:
    before = signal.getsignal(signal.SIGTERM)
    with pytest.raises(InterruptedFailure) as exc:
        with interruptible():
            _deliver(signal.SIGTERM)
            pytest.fail("handler should have raised")
    assert exc.value.signame == "SIGTERM"
    assert exc.value.exit_code == 130
    assert signal.getsignal(signal.SIGTERM) is before


def test_deferred_interrupt_raises_after_block() -> None:
    done: list[str] = []
    with pytest.raises(InterruptedFailure) as exc:
        with interruptible():
            with deferred_interrupts():
                _deliver(signal.SIGINT)
                done.append("assigned")
    assert done == ["assigned"]
    assert exc.value.signame == "SIGINT"


def test_deferred_without_signal_is_silent() -> None:
    with deferred_interrupts():
        pass


def test_uninterruptible_ignores() -> None:
    with uninterruptible():
        assert signal.getsignal(signal.SIGINT) is signal.SIG_IGN
