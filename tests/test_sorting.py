from datetime import datetime

import pytest

from models import db, Album, Setting, TagAlbum
from sorting import Sorting, SortingDecorator, album_sorting, natural_key, photo_sorting, sort_albums


def test_natural_key_orders_numbers_by_value():
    titles = ["Album 2", "Album 10", "Album 1"]
    assert sorted(titles, key=natural_key) == ["Album 1", "Album 2", "Album 10"]
    assert sorted(titles) == ["Album 1", "Album 10", "Album 2"]


def test_natural_key_is_case_insensitive_and_handles_none():
    assert sorted(["beta", "Alpha", None], key=natural_key) == [None, "Alpha", "beta"]
    assert natural_key("2020 trip") < natural_key("trip")


@pytest.fixture
def tag_albums(users):
    for i, title in enumerate(["Album 2", "album 10", "Album 1"]):
        db.session.add(TagAlbum(title=title, owner_id=users.alice.id, created_at=datetime(2020, 1, 3 - i)))
    db.session.commit()


def titles(albums):
    return [a.title for a in albums]


def test_text_columns_sort_naturally(tag_albums):
    albums = SortingDecorator(TagAlbum.query, TagAlbum).order_by("title", "ASC").all()
    assert titles(albums) == ["Album 1", "Album 2", "album 10"]
    albums = SortingDecorator(TagAlbum.query, TagAlbum).order_by("title", "DESC").all()
    assert titles(albums) == ["album 10", "Album 2", "Album 1"]


def test_plain_columns_are_sorted_by_the_database(tag_albums):
    albums = SortingDecorator(TagAlbum.query, TagAlbum).order_by("created_at", "ASC").all()
    assert titles(albums) == ["Album 1", "album 10", "Album 2"]


def test_mixed_orderings_apply_in_sequence(tag_albums, users):
    db.session.add(TagAlbum(title="Album 1", owner_id=users.alice.id, public=True, created_at=datetime(2019, 1, 1)))
    db.session.commit()
    albums = SortingDecorator(TagAlbum.query, TagAlbum).order_by("title").order_by("public", "DESC").all()
    assert titles(albums) == ["Album 1", "Album 1", "Album 2", "album 10"]
    assert albums[0].public is True


def test_invalid_orderings_are_rejected(app):
    with pytest.raises(ValueError):
        SortingDecorator(TagAlbum.query, TagAlbum).order_by("title", "sideways")
    with pytest.raises(ValueError):
        SortingDecorator(TagAlbum.query, TagAlbum).order_by("nonexistent")


@pytest.mark.parametrize("attribute", ["kind", "query", "to_dict", "tags"])
def test_only_mapped_columns_can_be_ordered_by(app, attribute):
    with pytest.raises(ValueError):
        SortingDecorator(TagAlbum.query, TagAlbum).order_by(attribute)
    assert SortingDecorator(Album.query, Album).order_by("lft").all() == []


def test_sorting_preferences_fall_back_to_defaults(app):
    assert album_sorting() == Sorting("created_at", "ASC")
    assert photo_sorting() == Sorting("created_at", "DESC")
    Setting.set_value("sorting_Albums_col", "title; DROP TABLE albums")
    Setting.set_value("sorting_Albums_order", "desc")
    db.session.commit()
    assert album_sorting() == Sorting("created_at", "DESC")


def test_sort_albums_uses_configured_preference(tag_albums):
    Setting.set_value("sorting_Albums_col", "title")
    db.session.commit()
    assert titles(sort_albums(TagAlbum.query, TagAlbum)) == ["Album 1", "Album 2", "album 10"]
