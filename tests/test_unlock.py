import pytest

from access import AccessContext
from album_kinds import AlbumNotFound
from models import db, TagAlbum
from nested_set import create_album
from unlock import unlock_album


@pytest.fixture
def protected(users):
    first = create_album("First", users.alice.id, public=True, password="shared")
    second = create_album("Second", users.bob.id, public=True, password="shared")
    other = create_album("Other", users.alice.id, public=True, password="different")
    private = create_album("Private", users.alice.id, password="shared")
    tag = TagAlbum(title="Tagged", show_tags="x", public=True, owner_id=users.alice.id)
    tag.set_password("shared")
    db.session.add(tag)
    db.session.commit()
    return {"first": first, "second": second, "other": other, "private": private, "tag": tag}


def test_wrong_password_returns_false(protected):
    ctx = AccessContext.anonymous()
    assert unlock_album(protected["first"].id, "nope", ctx) is False
    assert ctx.unlocked_album_ids == set()


def test_matching_password_unlocks_every_public_album_sharing_it(protected):
    ctx = AccessContext.anonymous()
    assert unlock_album(protected["first"].id, "shared", ctx) is True
    assert ctx.unlocked_album_ids == {protected["first"].id, protected["second"].id, protected["tag"].id}
    assert not ctx.is_unlocked(protected["other"].id)
    assert not ctx.is_unlocked(protected["private"].id)


def test_already_unlocked_album_needs_no_password(protected):
    ctx = AccessContext.anonymous([protected["other"].id])
    assert unlock_album(protected["other"].id, "", ctx) is True


def test_public_album_without_password_is_trivially_unlocked(users):
    album = create_album("Open", users.alice.id, public=True)
    assert unlock_album(album.id, "anything", AccessContext.anonymous()) is True


def test_private_and_smart_albums_cannot_be_unlocked(protected):
    ctx = AccessContext.anonymous()
    assert unlock_album(protected["private"].id, "shared", ctx) is False
    assert unlock_album("starred", "shared", ctx) is False
    assert ctx.unlocked_album_ids == set()


def test_unknown_album_raises(app):
    with pytest.raises(AlbumNotFound):
        unlock_album("does-not-exist", "pw", AccessContext.anonymous())
