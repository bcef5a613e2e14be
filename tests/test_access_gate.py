"""
Access Gate Tests
=================
"""

import asyncio

from aiogram.enums import ChatMemberStatus

from services.access_gate import AccessGate

ADMIN = 1
USER = 2
CHANNEL = "-1001234567890"


class FakeLookup:
    def __init__(self, status="member", error=None):
        self.status = status
        self.error = error
        self.calls = []

    async def __call__(self, chat_id, user_id):
        self.calls.append((chat_id, user_id))
        if self.error is not None:
            raise self.error
        return self.status


class TestAccessGate:

    def test_admin_bypasses_failing_lookup(self):
        lookup = FakeLookup(error=RuntimeError("bot is not a member of the channel"))
        gate = AccessGate({ADMIN}, CHANNEL, lookup)

        assert asyncio.run(gate.is_allowed(ADMIN)) is True
        assert lookup.calls == []

    def test_lookup_error_denies(self):
        gate = AccessGate({ADMIN}, CHANNEL, FakeLookup(error=RuntimeError("timeout")))
        assert asyncio.run(gate.is_allowed(USER)) is False

    def test_no_channel_allows_everyone(self):
        lookup = FakeLookup(status="left")
        gate = AccessGate({ADMIN}, "", lookup)

        assert asyncio.run(gate.is_allowed(USER)) is True
        assert lookup.calls == []

    def test_accepted_statuses(self):
        for status in ("creator", "administrator", "member", "restricted"):
            gate = AccessGate(set(), CHANNEL, FakeLookup(status=status))
            assert asyncio.run(gate.is_allowed(USER)) is True, status

    def test_rejected_statuses(self):
        for status in ("left", "kicked"):
            gate = AccessGate(set(), CHANNEL, FakeLookup(status=status))
            assert asyncio.run(gate.is_allowed(USER)) is False, status

    def test_enum_status(self):
        gate = AccessGate(set(), CHANNEL, FakeLookup(status=ChatMemberStatus.MEMBER))
        assert asyncio.run(gate.is_allowed(USER)) is True

    def test_lookup_receives_channel_and_user(self):
        lookup = FakeLookup()
        gate = AccessGate(set(), CHANNEL, lookup)
        asyncio.run(gate.is_allowed(USER))
        assert lookup.calls == [(CHANNEL, USER)]

    def test_empty_admin_set(self):
        gate = AccessGate(None, CHANNEL, FakeLookup(status="left"))
        assert gate.is_admin(ADMIN) is False
        assert asyncio.run(gate.is_allowed(ADMIN)) is False
