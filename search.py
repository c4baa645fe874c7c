from sqlalchemy import and_, func, or_, true

from access import browsability_condition, visibility_condition
from models import Album, Photo, TagAlbum
from smart_albums import searchable_photos
from sorting import album_sorting, sort_albums, sort_photos


def _contains(column, term):
    return func.lower(column).contains(term.lower(), autoescape=True)


def term_condition(terms, *columns):
    """Every term must occur in at least one of `columns` (case-insensitive)."""
    conditions = [or_(*[_contains(col, term) for col in columns]) for term in terms]
    return and_(true(), *conditions)


def search_albums(terms, ctx, sorting=None):
    """Tag albums followed by tree albums matching all `terms`.

    The two lists are sorted independently and never deduplicated; their
    ids do not overlap.
    """
    sorting = sorting or album_sorting()
    tag_query = TagAlbum.query.filter(
        visibility_condition(ctx, TagAlbum),
        term_condition(terms, TagAlbum.title, TagAlbum.description),
    )
    album_query = Album.query.filter(
        browsability_condition(ctx, Album),
        term_condition(terms, Album.title, Album.description),
    )
    return sort_albums(tag_query, TagAlbum, sorting) + sort_albums(album_query, Album, sorting)


def search_photos(terms, ctx, sorting=None):
    query = searchable_photos(ctx).filter(term_condition(terms, Photo.title, Photo.description, Photo.tags))
    return sort_photos(query, sorting)


def search(query_string, ctx):
    terms = [t for t in (query_string or "").split() if t]
    if not terms:
        return {"albums": [], "photos": []}
    return {"albums": search_albums(terms, ctx), "photos": search_photos(terms, ctx)}
