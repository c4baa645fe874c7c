"""Capabilities shared by every album kind.

Albums come in three kinds, told apart by their `kind` tag:

- ``album``: a node of the nested-set tree (`models.Album`),
- ``tag``: a virtual album over tagged photos (`models.TagAlbum`),
- ``smart``: a built-in rule-based album (`smart_albums.SmartAlbum`).

The functions below dispatch on that tag explicitly.
"""
from sqlalchemy.orm import aliased

import access
from models import db, Album, Photo, TagAlbum
from smart_albums import (
    built_in_smart_album,
    is_built_in,
    searchable_photos,
    smart_photo_condition,
    tag_photo_condition,
)


class AlbumNotFound(LookupError):
    pass


def find_album(album_id):
    if is_built_in(album_id):
        return built_in_smart_album(album_id)
    album = db.session.get(Album, album_id) or db.session.get(TagAlbum, album_id)
    if album is None:
        raise AlbumNotFound(f"Album {album_id} not found")
    return album


def find_albums(album_ids):
    return [find_album(album_id) for album_id in album_ids]


def album_photos(album, ctx):
    """Query of the photos the actor may see in `album` (direct members only for tree albums)."""
    if album.kind == "album":
        photo_album = aliased(Album)
        return Photo.query.join(photo_album, photo_album.id == Photo.album_id).filter(
            Photo.album_id == album.id,
            access.photo_searchability_condition(ctx, photo_album, album.lft, album.rgt),
        )
    if album.kind == "tag":
        return searchable_photos(ctx).filter(tag_photo_condition(album))
    if album.kind == "smart":
        return searchable_photos(ctx).filter(smart_photo_condition(album))
    raise ValueError(f"Unknown album kind: {album.kind}")


def is_downloadable(album):
    return bool(album.downloadable)


def is_album_visible(album, ctx):
    if album.kind == "smart":
        return ctx.may_upload or album.public
    return access.is_visible(ctx, album)


def is_album_accessible(album, ctx):
    if album.kind == "smart":
        return ctx.may_upload or album.public
    if album.kind == "album":
        return access.is_browsable(ctx, album)
    return access.is_accessible(ctx, album)


def is_archivable(album, ctx):
    if album.kind == "smart":
        return is_downloadable(album) or ctx.is_logged_in
    return is_downloadable(album) or ctx.is_admin or ctx.is_current_user(album.owner_id)
