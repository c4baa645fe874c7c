from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, false, func
from sqlalchemy.orm import aliased

from access import photo_searchability_condition, visibility_condition
from models import Album, Photo, Setting, TagAlbum
from sorting import sort_albums

STARRED = "starred"
RECENT = "recent"
PUBLIC = "public"
UNSORTED = "unsorted"

BUILT_IN_IDS = (UNSORTED, STARRED, PUBLIC, RECENT)


@dataclass
class SmartAlbum:
    """A built-in album whose photos are selected by a rule."""

    id: str
    title: str
    public: bool = False
    downloadable: bool = False

    kind = "smart"
    owner_id = None
    password = None
    description = None
    cover_id = None

    def to_dict(self, thumb=None):
        return {
            "id": self.id,
            "kind": self.kind,
            "title": self.title,
            "public": self.public,
            "downloadable": self.downloadable,
            "thumb": thumb.to_dict() if thumb else None,
        }


def is_built_in(album_id):
    return album_id in BUILT_IN_IDS


def built_in_smart_album(album_id):
    downloadable = Setting.get_value("downloadable") == "1"
    public = {
        STARRED: Setting.get_value("public_starred") == "1",
        RECENT: Setting.get_value("public_recent") == "1",
    }.get(album_id, False)
    titles = {UNSORTED: "Unsorted", STARRED: "Starred", PUBLIC: "Public", RECENT: "Recent"}
    return SmartAlbum(id=album_id, title=titles[album_id], public=public, downloadable=downloadable)


def smart_photo_condition(album):
    if album.id == STARRED:
        return Photo.is_starred.is_(True)
    if album.id == PUBLIC:
        return Photo.is_public.is_(True)
    if album.id == UNSORTED:
        return Photo.album_id.is_(None)
    if album.id == RECENT:
        days = int(Setting.get_value("recent_age") or 1)
        return Photo.created_at >= datetime.utcnow() - timedelta(days=days)
    raise ValueError(f"Unknown smart album: {album.id}")


def tag_photo_condition(tag_album):
    tags = tag_album.tags
    if not tags:
        return false()
    return and_(*[func.lower(Photo.tags).contains(tag.lower(), autoescape=True) for tag in tags])


def searchable_photos(ctx):
    """Photo query restricted to what the actor may find anywhere."""
    photo_album = aliased(Album)
    return Photo.query.outerjoin(photo_album, photo_album.id == Photo.album_id).filter(
        photo_searchability_condition(ctx, photo_album)
    )


def get_smart_albums(ctx):
    """Built-in smart albums visible to the actor followed by its visible tag albums.

    Locked tag albums are included; they are visible but not accessible.
    """
    albums = []
    for album_id in BUILT_IN_IDS:
        album = built_in_smart_album(album_id)
        if ctx.may_upload or album.public:
            albums.append(album)
    tag_albums = sort_albums(TagAlbum.query.filter(visibility_condition(ctx, TagAlbum)), TagAlbum)
    return albums + tag_albums
