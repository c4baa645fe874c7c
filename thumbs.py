"""Album thumbnail resolution.

`resolve_thumbs` is the batch entry point: it takes a collection of albums
and answers with one thumb (or None) per album id using a single statement
for all albums without an explicit cover, plus one statement to fetch the
size variants of the winners.  Callers must not resolve thumbs album by
album in a loop.

The statement uses a correlated scalar subquery per covered album:

    SELECT covers.id, covers.type, album_2_cover.album_id
    FROM (SELECT covered_albums.id AS album_id,
                 (SELECT photos.id FROM photos JOIN albums ...
                  WHERE albums._lft >= covered_albums._lft
                    AND albums._rgt <= covered_albums._rgt
                    AND <searchability>
                  ORDER BY is_starred DESC, <sorting>, photos.id
                  LIMIT 1) AS photo_id
          FROM albums AS covered_albums
          WHERE covered_albums.id IN (...) AND <accessibility>) AS album_2_cover
    JOIN photos AS covers ON covers.id = album_2_cover.photo_id

This is portable to SQLite, MySQL and PostgreSQL but re-runs the subquery
for every covered album.  On PostgreSQL a join followed by
`DISTINCT ON (covered_album_id)` with the same ORDER BY yields identical
results faster.
"""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import aliased

from access import accessibility_condition, is_accessible, photo_searchability_condition
from models import db, Album, Photo, SizeVariant
from sorting import photo_sorting, sql_order_clause


@dataclass
class Thumb:
    photo_id: int
    type: str
    thumb: Optional[str] = None
    thumb2x: Optional[str] = None

    @classmethod
    def from_photo(cls, photo):
        if photo is None:
            return None
        thumb = photo.variant(SizeVariant.THUMB)
        thumb2x = photo.variant(SizeVariant.THUMB2X)
        return cls(
            photo_id=photo.id,
            type=photo.type,
            thumb=thumb.short_path if thumb else None,
            thumb2x=thumb2x.short_path if thumb2x else None,
        )

    def to_dict(self):
        return {"id": self.photo_id, "type": self.type, "thumb": self.thumb, "thumb2x": self.thumb2x}


def best_photo_id_select(ctx, covered, sorting):
    """Correlated subquery picking the best photo below `covered`."""
    photo_album = aliased(Album)
    query = (
        select(Photo.id)
        .join(photo_album, photo_album.id == Photo.album_id)
        .where(photo_album.lft >= covered.lft, photo_album.rgt <= covered.rgt)
        .order_by(Photo.is_starred.desc(), sql_order_clause(Photo, sorting), Photo.id.asc())
        .limit(1)
    )
    if not ctx.is_admin:
        query = query.where(photo_searchability_condition(ctx, photo_album, covered.lft, covered.rgt))
    return query.correlate(covered).scalar_subquery()


def _query_covers(album_ids, ctx, sorting):
    covered = aliased(Album, name="covered_albums")
    album_to_cover = (
        select(covered.id.label("album_id"), best_photo_id_select(ctx, covered, sorting).label("photo_id"))
        .where(covered.id.in_(album_ids))
    )
    if not ctx.is_admin:
        album_to_cover = album_to_cover.where(accessibility_condition(ctx, covered))
    album_to_cover = album_to_cover.subquery("album_2_cover")
    covers = aliased(Photo, name="covers")
    rows = db.session.execute(
        select(covers.id, covers.type, album_to_cover.c.album_id)
        .join(album_to_cover, album_to_cover.c.photo_id == covers.id)
    ).all()
    return {album_id: (photo_id, photo_type) for photo_id, photo_type, album_id in rows}


def _load_variants(photo_ids):
    paths = {}
    if not photo_ids:
        return paths
    variants = SizeVariant.query.filter(
        SizeVariant.photo_id.in_(sorted(photo_ids)),
        SizeVariant.type.in_([SizeVariant.THUMB, SizeVariant.THUMB2X]),
    ).all()
    for v in variants:
        paths[(v.photo_id, v.type)] = v.short_path
    return paths


def resolve_thumbs(albums, ctx, sorting=None):
    """Return {album id: Thumb or None} for exactly the given tree albums.

    Inaccessible albums map to None, explicit cover or not.
    """
    albums = list(albums)
    result = {a.id: None for a in albums}
    uncovered = sorted({a.id for a in albums if not a.cover_id})
    for a in albums:
        if a.cover_id and is_accessible(ctx, a):
            result[a.id] = Thumb.from_photo(a.cover)
    if not uncovered:
        return result

    found = _query_covers(uncovered, ctx, sorting or photo_sorting())
    paths = _load_variants({photo_id for photo_id, _ in found.values()})
    for album_id, (photo_id, photo_type) in found.items():
        result[album_id] = Thumb(
            photo_id=photo_id,
            type=photo_type,
            thumb=paths.get((photo_id, SizeVariant.THUMB)),
            thumb2x=paths.get((photo_id, SizeVariant.THUMB2X)),
        )
    return result


def thumbs_for_ids(album_ids, ctx, sorting=None):
    """Batch-resolve thumbs by id; unknown or inaccessible ids map to None."""
    album_ids = list(dict.fromkeys(album_ids))
    albums = []
    if album_ids:
        albums = Album.query.filter(Album.id.in_(album_ids), accessibility_condition(ctx, Album)).all()
    result = {album_id: None for album_id in album_ids}
    result.update(resolve_thumbs(albums, ctx, sorting))
    return result


def album_thumb(album, ctx, sorting=None):
    if album is None:
        return None
    return resolve_thumbs([album], ctx, sorting)[album.id]


def virtual_album_thumb(photo_query, sorting=None):
    """Best photo of a tag or smart album given the query of its photos."""
    sorting = sorting or photo_sorting()
    photo = photo_query.order_by(
        Photo.is_starred.desc(), sql_order_clause(Photo, sorting), Photo.id.asc()
    ).first()
    return Thumb.from_photo(photo)
