"""Tests for guildgate.services.guilds and guildgate.services.members."""

from __future__ import annotations

from dataclasses import replace

import pytest

from guildgate.core.errors import RateLimitedError, UpstreamError
from guildgate.services import GuildService, MemberService
from tests.fakes import HTTP429, make_member


# ── GuildService ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_guilds(connection, fake):
    fake.add_guild("g1", "One", [make_member("1", "a"), make_member("2", "b")])
    fake.add_guild("g2", "Two", [make_member("3", "c")])

    result = await GuildService(connection).list_guilds()

    assert result.guilds_count == 2
    assert [g.id for g in result.guilds] == ["g1", "g2"]
    assert result.guilds[0].member_count == 2
    assert "view_channel" in result.guilds[0].permissions
    assert all(g.error is None for g in result.guilds)


@pytest.mark.asyncio
async def test_list_guilds_isolates_detail_failure(connection, fake):
    """One failing guild among N → still N entries, only that one marked."""
    for i in range(1, 4):
        fake.add_guild(f"g{i}", f"Guild {i}", [make_member(str(i), f"user{i}")])
    fake.fail("fetch_guild_detail", "g2")

    result = await GuildService(connection).list_guilds()

    assert result.guilds_count == 3
    assert len(result.guilds) == 3
    failed = [g for g in result.guilds if g.error]
    assert len(failed) == 1
    assert failed[0].id == "g2"
    assert failed[0].name == "Unknown"
    assert failed[0].member_count == 0
    assert failed[0].error == "Failed to fetch guild details"
    assert failed[0].permissions is None


@pytest.mark.asyncio
async def test_list_guilds_unknown_permissions(connection, fake):
    fake.add_guild("g1", "Remote", [make_member("1", "a")])
    fake.details["g1"] = replace(fake.details["g1"], permissions=None)

    result = await GuildService(connection).list_guilds()

    assert result.guilds[0].permissions is None
    assert result.guilds[0].error is None


@pytest.mark.asyncio
async def test_list_guilds_empty(connection, fake):
    result = await GuildService(connection).list_guilds()
    assert result.guilds_count == 0
    assert result.guilds == []


@pytest.mark.asyncio
async def test_list_guilds_enumeration_rate_limited(connection, fake):
    fake.fail("fetch_guilds", error=HTTP429())
    with pytest.raises(RateLimitedError):
        await GuildService(connection).list_guilds()


@pytest.mark.asyncio
async def test_list_guilds_enumeration_failure(connection, fake):
    fake.fail("fetch_guilds")
    with pytest.raises(UpstreamError, match="Error fetching Discord guilds"):
        await GuildService(connection).list_guilds()


# ── MemberService ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_list_members_flattens_guilds(connection, fake):
    fake.add_guild("g1", "One", [make_member("1", "a", nickname="Ann"), make_member("2", "b", status="invisible")])
    fake.add_guild("g2", "Two", [make_member("1", "a")])

    result = await MemberService(connection).list_members()

    assert result.count == 3
    assert [(u.id, u.guild_name) for u in result.users] == [("1", "One"), ("2", "One"), ("1", "Two")]
    assert result.users[0].nickname == "Ann"
    assert result.users[0].display_name == "Ann"
    assert result.users[1].status == "offline"


@pytest.mark.asyncio
async def test_list_members_skips_failing_guild(connection, fake):
    fake.add_guild("g1", "Broken", [make_member("1", "a")])
    fake.add_guild("g2", "Fine", [make_member("2", "b")])
    fake.fail("fetch_members", "g1")

    result = await MemberService(connection).list_members()

    assert result.count == 1
    assert result.users[0].guild_id == "g2"
