import pytest

from huddle.chat.cues import CueKind
from huddle.errors import AuthorizationError
from huddle.models import NotificationType


@pytest.mark.asyncio
async def test_create_and_list_newest_first(chat):
    first = await chat.notifications.create("bob", "one", "first")
    second = await chat.notifications.create("bob", "two", "second", type="success")

    listed = await chat.notifications.list_for("bob")
    assert [n.notification_id for n in listed] == [second, first]
    assert listed[0].type == NotificationType.SUCCESS.value


@pytest.mark.asyncio
async def test_create_rejects_unknown_type(chat):
    with pytest.raises(ValueError):
        await chat.notifications.create("bob", "t", "m", type="shout")


@pytest.mark.asyncio
async def test_create_with_existing_id_is_a_noop(chat):
    assert await chat.notifications.create("bob", "t", "m", notification_id="n1") == "n1"
    assert await chat.notifications.create("bob", "t2", "m2", notification_id="n1") is None
    assert (await chat.notifications.get("n1")).title == "t"


@pytest.mark.asyncio
async def test_mark_read_and_unread_count(chat):
    first = await chat.notifications.create("bob", "one", "first")
    await chat.notifications.create("bob", "two", "second")
    assert await chat.notifications.unread_count("bob") == 2

    assert await chat.notifications.mark_read(first, "bob") is True
    assert await chat.notifications.mark_read(first, "bob") is False
    assert await chat.notifications.mark_read("missing", "bob") is False
    assert await chat.notifications.unread_count("bob") == 1
    assert [n.title for n in await chat.notifications.list_for("bob", unread_only=True)] == ["two"]


@pytest.mark.asyncio
async def test_only_recipient_may_change_notification(chat):
    notification_id = await chat.notifications.create("bob", "t", "m")
    with pytest.raises(AuthorizationError):
        await chat.notifications.mark_read(notification_id, "carol")
    with pytest.raises(AuthorizationError):
        await chat.notifications.remove(notification_id, "carol")


@pytest.mark.asyncio
async def test_mark_all_read_and_clear_all(chat):
    for i in range(3):
        await chat.notifications.create("bob", f"n{i}", "m")
    await chat.notifications.create("carol", "other", "m")

    assert await chat.notifications.mark_all_read("bob") == 3
    assert await chat.notifications.mark_all_read("bob") == 0
    assert await chat.notifications.clear_all("bob") == 3
    assert await chat.notifications.list_for("bob") == []
    assert len(await chat.notifications.list_for("carol")) == 1


@pytest.mark.asyncio
async def test_feed_does_not_cue_on_initial_load(chat, player):
    await chat.notifications.create("bob", "a", "m", type="mention")
    await chat.notifications.create("bob", "b", "m", type="mention")

    seen = []
    chat.feed.subscribe("bob", seen.append)

    assert len(seen[0]) == 2
    assert player.played == []


@pytest.mark.asyncio
async def test_feed_cues_for_new_unread_mentions_only(chat, player, timers):
    chat.feed.subscribe("bob", lambda items: None)

    await chat.notifications.create("bob", "info", "m")
    assert player.played == []

    await chat.notifications.create("carol", "not mine", "m", type="mention")
    assert player.played == []

    await chat.notifications.create("bob", "ping", "m", type="mention")
    assert player.played == [CueKind.MENTION]


@pytest.mark.asyncio
async def test_feed_is_not_redelivered_for_other_recipients(chat):
    seen = []
    chat.feed.subscribe("bob", seen.append)

    await chat.notifications.create("carol", "not mine", "m", type="mention")
    assert seen == [[]]

    await chat.notifications.create("bob", "ping", "m")
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_feed_ignores_changes_to_existing_records(chat, player):
    notification_id = await chat.notifications.create("bob", "ping", "m", type="mention")
    chat.feed.subscribe("bob", lambda items: None)

    await chat.notifications.mark_read(notification_id, "bob")
    assert player.played == []


@pytest.mark.asyncio
async def test_mention_flow_reaches_feed_and_cue(chat, team, player):
    seen = []
    chat.feed.subscribe("bob", seen.append)

    await chat.messages.append(team.team_id, "alice", "@bob review please")
    await chat.messages.drain()

    assert [n.title for n in seen[-1]] == ["Alice Smith mentioned you"]
    assert player.played == [CueKind.MENTION]
