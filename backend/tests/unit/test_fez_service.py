import asyncio
import base64
from datetime import datetime, timedelta, timezone

import pytest

from fezhub.domain.barrels import BarrelService, BarrelType
from fezhub.domain.fez import FezService, schemas
from fezhub.domain.fez.exceptions import (
    AlreadyMember,
    FezHidden,
    Forbidden,
    InvariantViolation,
    NotFound,
    NotMember,
    TargetNotFound,
    WrongCategory,
)
from fezhub.domain.fez.models import FezType
from fezhub.domain.users import UserAccessLevel
from fezhub.infra.auth import AuthenticatedUser
from fezhub.infra.images import ImageError
from fezhub.settings import settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _user(user_id: str, level: UserAccessLevel = UserAccessLevel.VERIFIED) -> AuthenticatedUser:
    return AuthenticatedUser(id=user_id, access_level=level)


def _content(max_capacity: int = 2, **overrides) -> schemas.FezContentData:
    fields = {
        "fez_type": FezType.DINING,
        "title": "Steakhouse dinner",
        "info": "Reservations for the 7pm seating",
        "start_time": "1574364635",
        "end_time": "",
        "location": "Deck 3 aft",
        "min_capacity": 0,
        "max_capacity": max_capacity,
    }
    fields.update(overrides)
    return schemas.FezContentData(**fields)


def _names(monkeys) -> list[str]:
    return [m.username for m in monkeys]


@pytest.mark.asyncio
async def test_create_makes_owner_sole_member(users):
    service = FezService()
    view = await service.create(_user("alice"), _content(max_capacity=3))
    assert view.owner_id == "alice"
    assert view.title == "Steakhouse dinner"
    assert view.fez_type == "dining"
    assert view.start_time == "Thu, 7:30 PM"
    assert view.end_time == "TBD"
    assert _names(view.seamonkeys) == ["Alice", "AvailableSlot", "AvailableSlot"]
    assert view.waiting_list == []
    assert view.posts is None


@pytest.mark.asyncio
async def test_create_requires_content_access(users):
    with pytest.raises(Forbidden):
        await FezService().create(_user("alice", UserAccessLevel.QUARANTINED), _content())


@pytest.mark.asyncio
async def test_waitlist_example_sequence(users):
    service = FezService()
    alice, bob, carol, dave = (_user(uid) for uid in ("alice", "bob", "carol", "dave"))
    fez = await service.create(alice, _content(max_capacity=2))

    await service.join(fez.fez_id, bob)
    view = await service.join(fez.fez_id, carol)
    assert _names(view.seamonkeys) == ["Alice", "Bob"]
    assert _names(view.waiting_list) == ["Carol"]

    await service.unjoin(fez.fez_id, carol)
    view = await service.join(fez.fez_id, dave)
    assert _names(view.seamonkeys) == ["Alice", "Bob"]
    assert _names(view.waiting_list) == ["Dave"]

    view = await service.unjoin(fez.fez_id, bob)
    assert _names(view.seamonkeys) == ["Alice", "Dave"]
    assert view.waiting_list == []


@pytest.mark.asyncio
async def test_join_twice_is_rejected_and_roster_stays_unique(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content(max_capacity=0))
    await service.join(fez.fez_id, _user("bob"))
    with pytest.raises(AlreadyMember):
        await service.join(fez.fez_id, _user("bob"))
    view = await service.get(fez.fez_id, _user("alice"))
    assert _names(view.seamonkeys) == ["Alice", "Bob"]


@pytest.mark.asyncio
async def test_unjoin_when_absent_is_a_no_op(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content(max_capacity=2))
    view = await service.unjoin(fez.fez_id, _user("erin"))
    assert _names(view.seamonkeys) == ["Alice", "AvailableSlot"]


@pytest.mark.asyncio
async def test_join_blocked_by_owner_reports_hidden(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content())
    await users.block("bob", "alice")
    with pytest.raises(FezHidden) as excinfo:
        await service.join(fez.fez_id, _user("bob"))
    assert excinfo.value.status_code == 404
    with pytest.raises(FezHidden):
        await service.get(fez.fez_id, _user("bob"))


@pytest.mark.asyncio
async def test_join_wrong_category(users):
    barrel = await BarrelService().create("alice", BarrelType.SEAMONKEY, "Friends", ["alice"])
    with pytest.raises(WrongCategory):
        await FezService().join(barrel.id, _user("bob"))


@pytest.mark.asyncio
async def test_missing_capacity_is_an_invariant_violation(users):
    barrel = await BarrelService().create("alice", BarrelType.FRIENDLY_FEZ, "Broken", ["alice"], {"info": ["x"]})
    with pytest.raises(InvariantViolation):
        await FezService().join(barrel.id, _user("bob"))


@pytest.mark.asyncio
async def test_blocked_member_is_masked_but_keeps_slot(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content(max_capacity=2))
    await service.join(fez.fez_id, _user("bob"))
    await service.join(fez.fez_id, _user("carol"))
    await users.block("dave", "bob")

    view = await service.get(fez.fez_id, _user("dave"))
    assert _names(view.seamonkeys) == ["Alice", "BlockedUser"]
    assert view.seamonkeys[1].user_id == settings.friendly_fez_id
    assert _names(view.waiting_list) == ["Carol"]


@pytest.mark.asyncio
async def test_open_lists_fez_with_room_and_skips_blocked_owners(users):
    service = FezService()
    roomy = await service.create(_user("alice"), _content(max_capacity=3, start_time=""))
    full = await service.create(_user("bob"), _content(max_capacity=1, start_time=""))
    unlimited = await service.create(_user("carol"), _content(max_capacity=0, start_time=""))
    await service.create(_user("dave"), _content(max_capacity=3, start_time="1574364635"))
    await users.block("erin", "carol")

    open_ids = [view.fez_id for view in await service.open(_user("erin"))]
    assert open_ids == [roomy.fez_id]

    open_ids = [view.fez_id for view in await service.open(_user("alice"))]
    assert open_ids == [roomy.fez_id, unlimited.fez_id]
    assert full.fez_id not in open_ids


@pytest.mark.asyncio
async def test_joined_and_owned_lists(users):
    service = FezService()
    mine = await service.create(_user("alice"), _content())
    theirs = await service.create(_user("bob"), _content())
    await service.join(theirs.fez_id, _user("alice"))

    joined = await service.joined(_user("alice"))
    assert [v.fez_id for v in joined] == [mine.fez_id, theirs.fez_id]
    owned = await service.owned(_user("alice"))
    assert [v.fez_id for v in owned] == [mine.fez_id]


@pytest.mark.asyncio
async def test_owner_add_and_remove(users):
    service = FezService()
    alice = _user("alice")
    fez = await service.create(alice, _content(max_capacity=2))

    view = await service.add_member(fez.fez_id, alice, "carol")
    assert _names(view.seamonkeys) == ["Alice", "Carol"]
    with pytest.raises(AlreadyMember):
        await service.add_member(fez.fez_id, alice, "carol")
    with pytest.raises(TargetNotFound):
        await service.add_member(fez.fez_id, alice, "ghost")
    with pytest.raises(Forbidden):
        await service.add_member(fez.fez_id, _user("bob"), "dave")

    view = await service.remove_member(fez.fez_id, alice, "carol")
    assert _names(view.seamonkeys) == ["Alice", "AvailableSlot"]
    with pytest.raises(NotMember):
        await service.remove_member(fez.fez_id, alice, "carol")
    with pytest.raises(TargetNotFound):
        await service.remove_member(fez.fez_id, alice, "ghost")


@pytest.mark.asyncio
async def test_update_shrinking_capacity_resplits_immediately(users):
    service = FezService()
    alice = _user("alice")
    fez = await service.create(alice, _content(max_capacity=4))
    for uid in ("bob", "carol", "dave"):
        await service.join(fez.fez_id, _user(uid))

    view = await service.update(fez.fez_id, alice, _content(max_capacity=2, title="Smaller table"))
    assert view.title == "Smaller table"
    assert _names(view.seamonkeys) == ["Alice", "Bob"]
    assert _names(view.waiting_list) == ["Carol", "Dave"]

    again = await service.get(fez.fez_id, _user("erin"))
    assert _names(again.waiting_list) == ["Carol", "Dave"]


@pytest.mark.asyncio
async def test_update_is_owner_only(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content())
    with pytest.raises(Forbidden):
        await service.update(fez.fez_id, _user("bob"), _content(title="Mine now"))


@pytest.mark.asyncio
async def test_cancel_is_not_persisted(users):
    service = FezService()
    alice = _user("alice")
    fez = await service.create(alice, _content())
    await service.join(fez.fez_id, _user("bob"))

    cancelled = await service.cancel(fez.fez_id, alice)
    assert cancelled.title == "[CANCELLED] Steakhouse dinner"
    assert cancelled.location == "[CANCELLED] Deck 3 aft"
    assert cancelled.start_time == "[CANCELLED]"
    assert cancelled.seamonkeys == []

    view = await service.get(fez.fez_id, alice)
    assert view.title == "Steakhouse dinner"
    assert _names(view.seamonkeys) == ["Alice", "Bob"]

    with pytest.raises(Forbidden):
        await service.cancel(fez.fez_id, _user("bob"))


@pytest.mark.asyncio
async def test_posts_are_filtered_by_blocks_and_mutes(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content(max_capacity=0))
    for uid, text in (("alice", "Meet at the hostess stand"), ("bob", "On my way"), ("carol", "Running late")):
        await service.add_post(fez.fez_id, _user(uid), schemas.PostCreateData(text=text))

    await users.block("dave", "bob")
    await users.mute("dave", "carol")
    view = await service.get(fez.fez_id, _user("dave"))
    assert [p.text for p in view.posts] == ["Meet at the hostess stand"]

    view = await service.get(fez.fez_id, _user("erin"))
    assert [p.author_id for p in view.posts] == ["alice", "bob", "carol"]


@pytest.mark.asyncio
async def test_post_with_image_is_stored(users, tmp_path):
    service = FezService()
    fez = await service.create(_user("alice"), _content())
    data = schemas.PostCreateData(text="Menu", image_data=base64.b64encode(PNG_BYTES).decode())
    view = await service.add_post(fez.fez_id, _user("bob"), data)
    image = view.posts[0].image
    assert image.endswith(".png")
    stored = tmp_path / "images" / "fezpost" / image
    assert stored.read_bytes() == PNG_BYTES


@pytest.mark.asyncio
async def test_post_with_bad_image_is_rejected(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content())
    data = schemas.PostCreateData(text="Menu", image_data=base64.b64encode(b"plain text").decode())
    with pytest.raises(ImageError):
        await service.add_post(fez.fez_id, _user("bob"), data)
    view = await service.get(fez.fez_id, _user("bob"))
    assert view.posts == []


@pytest.mark.asyncio
async def test_post_requires_content_access_and_visibility(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content())
    with pytest.raises(Forbidden):
        await service.add_post(
            fez.fez_id,
            _user("bob", UserAccessLevel.UNVERIFIED),
            schemas.PostCreateData(text="hi"),
        )
    await users.block("alice", "carol")
    with pytest.raises(FezHidden):
        await service.add_post(fez.fez_id, _user("carol"), schemas.PostCreateData(text="hi"))


@pytest.mark.asyncio
async def test_delete_post_is_author_only(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content())
    await service.add_post(fez.fez_id, _user("bob"), schemas.PostCreateData(text="first"))
    view = await service.add_post(fez.fez_id, _user("bob"), schemas.PostCreateData(text="second"))
    first_id = view.posts[0].post_id

    with pytest.raises(Forbidden):
        await service.delete_post(first_id, _user("alice"))

    view = await service.delete_post(first_id, _user("bob"))
    assert [p.text for p in view.posts] == ["second"]
    with pytest.raises(NotFound):
        await service.delete_post(first_id, _user("bob"))


@pytest.mark.asyncio
async def test_delete_post_of_deleted_fez(users):
    service = FezService()
    barrels = BarrelService()
    fez = await service.create(_user("alice"), _content())
    view = await service.add_post(fez.fez_id, _user("bob"), schemas.PostCreateData(text="bye"))
    await barrels.delete(fez.fez_id)
    with pytest.raises(InvariantViolation):
        await service.delete_post(view.posts[0].post_id, _user("bob"))


@pytest.mark.asyncio
async def test_unknown_member_keeps_its_slot(users):
    service = FezService()
    alice = _user("alice")
    fez = await service.create(alice, _content(max_capacity=2))
    await service.join(fez.fez_id, _user("stranger"))
    await service.join(fez.fez_id, _user("bob"))
    view = await service.get(fez.fez_id, alice)
    assert [m.user_id for m in view.seamonkeys] == ["alice", "stranger"]
    assert _names(view.waiting_list) == ["Bob"]


def test_types_are_labels():
    assert FezService.types() == ["Activity", "Dining", "Gaming", "Meetup", "Music", "Other", "Shore"]


@pytest.mark.asyncio
async def test_concurrent_joins_all_land_on_the_roster(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content(max_capacity=0))
    joiners = ("bob", "carol", "dave", "erin")

    views = await asyncio.gather(*(service.join(fez.fez_id, _user(uid)) for uid in joiners))
    assert len(views) == len(joiners)

    view = await service.get(fez.fez_id, _user("alice"))
    assert sorted(m.user_id for m in view.seamonkeys) == sorted(("alice",) + joiners)
    assert view.seamonkeys[0].user_id == "alice"


@pytest.mark.asyncio
async def test_concurrent_joins_past_capacity_are_waitlisted(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content(max_capacity=2))
    await asyncio.gather(*(service.join(fez.fez_id, _user(uid)) for uid in ("bob", "carol", "dave")))
    view = await service.get(fez.fez_id, _user("erin"))
    assert len(view.seamonkeys) == 2
    assert len(view.waiting_list) == 2


@pytest.mark.asyncio
async def test_view_of_non_fez_barrel_is_wrong_category(users):
    barrel = await BarrelService().create("alice", BarrelType.SEAMONKEY, "Friends", ["alice"])
    with pytest.raises(WrongCategory):
        await FezService().build_view(barrel, "alice")


@pytest.mark.asyncio
async def test_cancel_requires_stored_capacity(users):
    barrel = await BarrelService().create("alice", BarrelType.FRIENDLY_FEZ, "Broken", ["alice"], {"info": ["x"]})
    with pytest.raises(InvariantViolation):
        await FezService().cancel(barrel.id, _user("alice"))


@pytest.mark.asyncio
async def test_temporarily_quarantined_user_cannot_post(users):
    service = FezService()
    fez = await service.create(_user("alice"), _content())
    quarantined = AuthenticatedUser(
        id="bob",
        temp_quarantine_until=datetime.now(timezone.utc) + timedelta(hours=1),
    )
    with pytest.raises(Forbidden) as excinfo:
        await service.add_post(fez.fez_id, quarantined, schemas.PostCreateData(text="hi"))
    assert excinfo.value.reason == "user is temporarily quarantined"
    with pytest.raises(Forbidden):
        await service.create(quarantined, _content())

    released = AuthenticatedUser(
        id="bob",
        temp_quarantine_until=datetime.now(timezone.utc) - timedelta(minutes=1),
    )
    view = await service.add_post(fez.fez_id, released, schemas.PostCreateData(text="back"))
    assert [p.text for p in view.posts] == ["back"]
