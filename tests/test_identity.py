import logging

import pytest

from planify.errors import AuthenticationError
from planify.identity import SessionActorResolver, require_actor


def test_require_actor():
    assert require_actor("ana@example.com") == "ana@example.com"
    with pytest.raises(AuthenticationError):
        require_actor("")
    with pytest.raises(AuthenticationError):
        require_actor(None)


@pytest.mark.asyncio
async def test_who_am_i(registry):
    await registry.users.create({"email": "ana@example.com", "full_name": "Ana Ruiz"})

    user = await SessionActorResolver(registry.users, "ana@example.com").who_am_i()

    assert user.full_name == "Ana Ruiz"


@pytest.mark.asyncio
async def test_who_am_i_without_session(registry):
    with pytest.raises(AuthenticationError):
        await SessionActorResolver(registry.users, None).who_am_i()


@pytest.mark.asyncio
async def test_unknown_session_email_is_logged(registry, caplog):
    with caplog.at_level(logging.WARNING, logger="planify.identity"):
        with pytest.raises(AuthenticationError):
            await SessionActorResolver(registry.users, "ghost@example.com").who_am_i()
    assert "ghost@example.com" in caplog.text
