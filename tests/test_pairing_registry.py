"""
Tests for the pairing registry
"""
import pytest

from callpanel.auth.tokens import verify_token
from callpanel.errors import ExpiredOrInvalidCode
from callpanel.services.pairing import PAIRED_EVENT, PairingRegistry, is_valid_code, pairing_room

SECRET = "0f4c2d8e-5b1a-4c7e-9d3f-6a2b8e1c4d70"


class RecordingEmitter:
    def __init__(self):
        self.events = []

    def __call__(self, room, event, data):
        self.events.append((room, event, data))
        return 1


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def registry(emitter, clock):
    return PairingRegistry(emit=emitter, clock=clock, default_ttl=300)


def test_validate_emits_once_and_consumes_code(registry, emitter):
    registry.register("123456")
    token = registry.validate("123456", "recepcao-principal", SECRET)

    assert emitter.events == [
        (pairing_room("123456"), PAIRED_EVENT, {"slug": "recepcao-principal", "token": token}),
    ]
    assert verify_token(token, SECRET)["channel"] == "recepcao-principal"
    assert not registry.is_pending("123456")

    with pytest.raises(ExpiredOrInvalidCode):
        registry.validate("123456", "recepcao-principal", SECRET)
    assert len(emitter.events) == 1


def test_unknown_code(registry, emitter):
    with pytest.raises(ExpiredOrInvalidCode) as exc:
        registry.validate("654321", "recepcao-principal", SECRET)
    assert str(exc.value) == "Invalid or expired code"
    assert emitter.events == []


def test_code_expires_at_ttl(registry, emitter, clock):
    registry.register("123456")

    clock.advance(299)
    assert registry.is_pending("123456")

    clock.advance(1)
    assert not registry.is_pending("123456")
    with pytest.raises(ExpiredOrInvalidCode):
        registry.validate("123456", "recepcao-principal", SECRET)
    # Evicted on the failed attempt
    assert registry.pending_count() == 0
    assert emitter.events == []


def test_reregister_refreshes_expiry(registry, clock):
    registry.register("123456")
    clock.advance(200)
    registry.register("123456")
    clock.advance(200)
    assert registry.is_pending("123456")
    assert registry.pending_count() == 1


def test_custom_ttl(registry, clock):
    assert registry.register("111111", ttl_seconds=5) == clock.now + 5


@pytest.mark.parametrize("code,ok", [
    ("123456", True),
    ("12345", False),
    ("1234567", False),
    ("12a456", False),
    (123456, False),
    (None, False),
])
def test_code_shape(code, ok):
    assert is_valid_code(code) is ok
