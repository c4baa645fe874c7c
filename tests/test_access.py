import pytest
from sqlalchemy.orm import aliased

from access import (
    AccessContext,
    accessibility_condition,
    browsability_condition,
    is_accessible,
    is_browsable,
    is_visible,
    photo_searchability_condition,
    visibility_condition,
)
from models import db, Album, AlbumShare, Photo, TagAlbum
from nested_set import create_album


@pytest.fixture
def albums(users):
    private = create_album("Private", users.alice.id)
    public = create_album("Public", users.alice.id, public=True)
    locked = create_album("Locked", users.alice.id, public=True, password="secret")
    hidden_child = create_album("Public child of private", users.alice.id, parent=private, public=True)
    return {"private": private, "public": public, "locked": locked, "hidden_child": hidden_child}


def titles(condition, model=Album):
    return {a.title for a in model.query.filter(condition).all()}


def test_anonymous_sees_only_public_unlocked(albums):
    ctx = AccessContext.anonymous()
    assert titles(accessibility_condition(ctx, Album)) == {"Public", "Public child of private"}


def test_owner_and_admin_see_everything(albums, users, ctx_for):
    everything = {"Private", "Public", "Locked", "Public child of private"}
    assert titles(accessibility_condition(ctx_for(users.alice), Album)) == everything
    assert titles(accessibility_condition(ctx_for(users.admin), Album)) == everything


def test_other_user_never_gets_private_album(albums, users, ctx_for):
    ctx = ctx_for(users.bob)
    assert "Private" not in titles(accessibility_condition(ctx, Album))
    assert "Private" not in titles(visibility_condition(ctx, Album))


def test_locked_album_is_visible_but_not_accessible_until_unlocked(albums):
    locked = albums["locked"]
    ctx = AccessContext.anonymous()
    assert "Locked" in titles(visibility_condition(ctx, Album))
    assert "Locked" not in titles(accessibility_condition(ctx, Album))
    assert is_visible(ctx, locked) and not is_accessible(ctx, locked)

    ctx.unlock(locked.id)
    assert "Locked" in titles(accessibility_condition(ctx, Album))
    assert is_accessible(ctx, locked)


def test_shared_album_is_accessible(albums, users, ctx_for):
    db.session.add(AlbumShare(user_id=users.bob.id, album_id=albums["private"].id))
    db.session.commit()
    ctx = ctx_for(users.bob)
    assert "Private" in titles(accessibility_condition(ctx, Album))
    assert is_accessible(ctx, albums["private"])


def test_browsability_requires_accessible_ancestors(albums):
    ctx = AccessContext.anonymous()
    assert titles(browsability_condition(ctx, Album)) == {"Public"}
    assert not is_browsable(ctx, albums["hidden_child"])
    assert is_browsable(ctx, albums["public"])


def test_conditions_apply_to_tag_albums(users, ctx_for):
    db.session.add(TagAlbum(title="Cats", show_tags="cat", public=True, owner_id=users.alice.id))
    db.session.add(TagAlbum(title="Mine", show_tags="me", owner_id=users.alice.id))
    db.session.commit()
    assert titles(accessibility_condition(AccessContext.anonymous(), TagAlbum), TagAlbum) == {"Cats"}
    assert titles(visibility_condition(ctx_for(users.alice), TagAlbum), TagAlbum) == {"Cats", "Mine"}


def searchable_titles(ctx, origin=None):
    photo_album = aliased(Album)
    query = Photo.query.outerjoin(photo_album, photo_album.id == Photo.album_id)
    if origin is None:
        query = query.filter(photo_searchability_condition(ctx, photo_album))
    else:
        query = query.filter(
            photo_album.lft >= origin.lft,
            photo_album.rgt <= origin.rgt,
            photo_searchability_condition(ctx, photo_album, origin.lft, origin.rgt),
        )
    return {p.title for p in query.all()}


def test_photo_searchability(albums, users, ctx_for, make_photo):
    make_photo(albums["public"], users.alice, "open")
    make_photo(albums["private"], users.alice, "closed")
    make_photo(albums["hidden_child"], users.alice, "behind private")
    make_photo(albums["locked"], users.alice, "locked")
    make_photo(None, users.bob, "unsorted")
    anon = AccessContext.anonymous()

    assert searchable_titles(anon) == {"open"}
    # Starting below the private album only the path from there counts.
    assert searchable_titles(anon, albums["hidden_child"]) == {"behind private"}
    assert searchable_titles(ctx_for(users.bob)) == {"open", "unsorted"}
    assert searchable_titles(ctx_for(users.admin)) == {"open", "closed", "behind private", "locked", "unsorted"}

    anon.unlock(albums["locked"].id)
    assert searchable_titles(anon) == {"open", "locked"}
