from access import AccessDenied, visibility_condition
from album_kinds import album_photos, find_album, is_album_accessible
from models import Album
from nested_set import ancestors
from smart_albums import get_smart_albums
from sorting import album_sorting, sort_albums, sort_photos
from thumbs import resolve_thumbs, virtual_album_thumb


def _virtual_entry(album, ctx):
    return album.to_dict(virtual_album_thumb(album_photos(album, ctx)))


def top_level(ctx):
    """Everything shown on the gallery start page for `ctx`."""
    sorting = album_sorting()
    smart = []
    tag_albums = []
    for album in get_smart_albums(ctx):
        # Locked tag albums are listed without a thumb.
        if album.kind == "tag" and not is_album_accessible(album, ctx):
            tag_albums.append(album.to_dict())
        elif album.kind == "tag":
            tag_albums.append(_virtual_entry(album, ctx))
        else:
            smart.append(_virtual_entry(album, ctx))

    roots = sort_albums(
        Album.query.filter(Album.parent_id.is_(None), visibility_condition(ctx, Album)), Album, sorting
    )
    thumbs = resolve_thumbs(roots, ctx)
    own, shared = [], []
    for album in roots:
        entry = album.to_dict(thumbs[album.id])
        if ctx.is_logged_in and not ctx.is_current_user(album.owner_id):
            shared.append(entry)
        else:
            own.append(entry)
    return {"smart_albums": smart, "tag_albums": tag_albums, "albums": own, "shared_albums": shared}


def album_detail(album_id, ctx):
    album = find_album(album_id)
    if not is_album_accessible(album, ctx):
        locked = bool(album.public and album.password is not None)
        raise AccessDenied("Password required" if locked else "Access denied", password_required=locked)

    result = album.to_dict()
    result["photos"] = [p.to_dict() for p in sort_photos(album_photos(album, ctx))]
    if album.kind == "album":
        children = sort_albums(
            Album.query.filter(Album.parent_id == album.id, visibility_condition(ctx, Album)), Album
        )
        thumbs = resolve_thumbs(children + [album], ctx)
        result["thumb"] = thumbs[album.id].to_dict() if thumbs[album.id] else None
        result["albums"] = [child.to_dict(thumbs[child.id]) for child in children]
        result["path"] = [{"id": a.id, "title": a.title} for a in ancestors(album)]
    else:
        thumb = virtual_album_thumb(album_photos(album, ctx))
        result["thumb"] = thumb.to_dict() if thumb else None
    return result
