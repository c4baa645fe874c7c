import pytest
from PIL import Image

from access import AccessContext
from models import db, Album, Photo, SizeVariant
from nested_set import create_album
from photos import delete_photo, import_photo, set_cover
from thumbs import album_thumb


@pytest.fixture
def image_file(tmp_path):
    root = tmp_path / "storage"
    (root / "big").mkdir(parents=True)
    path = root / "big" / "lake.jpg"
    Image.new("RGB", (640, 480), (30, 120, 200)).save(path, "JPEG")
    return root, path


def test_import_photo_records_variants(image_file, users):
    root, path = image_file
    album = create_album("Lake", users.alice.id, public=True)
    photo = import_photo(path, users.alice.id, root, album=album)

    assert photo.title == "lake"
    assert photo.type == "image/jpeg"
    assert photo.taken_at is None
    original = photo.original
    assert original.short_path == "big/lake.jpg"
    assert (original.width, original.height) == (640, 480)
    thumb = photo.variant(SizeVariant.THUMB)
    thumb2x = photo.variant(SizeVariant.THUMB2X)
    assert (thumb.width, thumb.height) == (200, 200)
    assert (thumb2x.width, thumb2x.height) == (400, 400)
    assert (root / thumb.short_path).exists()

    thumb_of_album = album_thumb(album, AccessContext.anonymous())
    assert thumb_of_album.photo_id == photo.id
    assert thumb_of_album.thumb == thumb.short_path


def test_set_cover_requires_photo_in_subtree(users, make_photo):
    parent = create_album("Parent", users.alice.id)
    child = create_album("Child", users.alice.id, parent=parent)
    other = create_album("Other", users.alice.id)
    inside = make_photo(child, users.alice, "inside")
    outside = make_photo(other, users.alice, "outside")

    set_cover(parent, inside)
    assert parent.cover_id == inside.id
    with pytest.raises(ValueError):
        set_cover(parent, outside)
    set_cover(parent, None)
    assert parent.cover_id is None


def test_deleting_a_cover_photo_clears_the_cover(users, make_photo):
    album = create_album("Album", users.alice.id)
    photo = make_photo(album, users.alice, "cover")
    set_cover(album, photo)
    delete_photo(photo)
    db.session.commit()
    assert db.session.get(Album, album.id).cover_id is None


def test_import_rejects_files_outside_allowed_extensions(image_file, users):
    root, path = image_file
    gif = path.with_suffix(".gif")
    Image.new("RGB", (10, 10)).save(gif, "GIF")
    with pytest.raises(ValueError):
        import_photo(gif, users.alice.id, root)
    assert Photo.query.count() == 0
    assert not (root / "thumb").exists()
