"""Nested-set bookkeeping for the album tree.

Each album stores `lft`/`rgt` bounds; an album is a descendant of another
iff its interval lies strictly inside the other's.  Structural mutations go
through `tree_mutation()`, which repairs the bounds from `parent_id` if a
mutation fails half way.
"""
import logging
from collections import defaultdict
from contextlib import contextmanager

from sqlalchemy import func, select
from sqlalchemy.orm import aliased

from access import photo_searchability_condition
from models import db, Album, Photo
from photos import delete_photo

logger = logging.getLogger(__name__)


class InvalidTreeOperation(ValueError):
    pass


@contextmanager
def tree_mutation():
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.error("Tree mutation failed, repairing nested set", exc_info=True)
        try:
            fixed = fix_tree()
            db.session.commit()
            logger.info(f"Tree repaired, {fixed} albums fixed")
        except Exception:
            db.session.rollback()
            logger.error("Tree repair failed", exc_info=True)
        raise


def append_node(album, parent=None):
    """Place `album` as the last child of `parent`, or as a new root."""
    db.session.flush()
    if parent is None:
        max_rgt = db.session.query(func.max(Album.rgt)).scalar() or 0
        album.parent_id = None
        album.lft, album.rgt = max_rgt + 1, max_rgt + 2
    else:
        boundary = parent.rgt
        Album.query.filter(Album.rgt >= boundary).update({Album.rgt: Album.rgt + 2}, synchronize_session="fetch")
        Album.query.filter(Album.lft > boundary).update({Album.lft: Album.lft + 2}, synchronize_session="fetch")
        album.parent_id = parent.id
        album.lft, album.rgt = boundary, boundary + 1
    db.session.add(album)
    return album


def create_album(title, owner_id, parent=None, password=None, **attrs):
    album = Album(title=title, owner_id=owner_id, **attrs)
    if password:
        album.set_password(password)
    with tree_mutation():
        append_node(album, parent)
    logger.info(f"Album created id={album.id} parent={album.parent_id}")
    return album


def move_album(album, new_parent=None):
    if new_parent is not None and album.contains(new_parent):
        raise InvalidTreeOperation("Cannot move an album into itself or one of its descendants")
    with tree_mutation():
        album.parent_id = new_parent.id if new_parent is not None else None
        db.session.flush()
        fix_tree()
    logger.info(f"Album moved id={album.id} parent={album.parent_id}")
    return album


def delete_album(album):
    """Delete an album with all sub-albums and all recursive photos."""
    with tree_mutation():
        db.session.refresh(album)
        lft, rgt = album.lft, album.rgt
        subtree = Album.query.filter(Album.lft.between(lft, rgt))
        photos = all_photos_query(album).all()
        for photo in photos:
            delete_photo(photo)
        subtree.delete(synchronize_session="fetch")
        width = rgt - lft + 1
        Album.query.filter(Album.lft > rgt).update({Album.lft: Album.lft - width}, synchronize_session="fetch")
        Album.query.filter(Album.rgt > rgt).update({Album.rgt: Album.rgt - width}, synchronize_session="fetch")
    logger.info(f"Album deleted bounds=({lft},{rgt}) photos={len(photos)}")


def fix_tree():
    """Recompute all bounds from `parent_id`; returns the number of albums fixed.

    Orphans and albums caught in a parent cycle become roots.
    """
    albums = Album.query.order_by(Album.lft, Album.id).all()
    known = {a.id for a in albums}
    children = defaultdict(list)
    roots = []
    for a in albums:
        if a.parent_id is None or a.parent_id not in known:
            roots.append(a)
        else:
            children[a.parent_id].append(a)

    before = {a.id: (a.lft, a.rgt, a.parent_id) for a in albums}
    visited = set()
    counter = 0

    def number(root):
        nonlocal counter
        stack = [(root, False)]
        while stack:
            node, closing = stack.pop()
            if closing:
                counter += 1
                node.rgt = counter
                continue
            if node.id in visited:
                continue
            visited.add(node.id)
            counter += 1
            node.lft = counter
            stack.append((node, True))
            for child in reversed(children[node.id]):
                stack.append((child, False))

    for root in roots:
        root.parent_id = None
        number(root)
    for a in albums:
        if a.id not in visited:
            a.parent_id = None
            number(a)

    return sum(1 for a in albums if before[a.id] != (a.lft, a.rgt, a.parent_id))


def check_tree():
    """Return a list of nested-set invariant violations (empty if sound)."""
    errors = []
    albums = Album.query.all()
    by_id = {a.id: a for a in albums}
    seen = {}
    for a in albums:
        if a.lft >= a.rgt:
            errors.append(f"{a.id}: lft {a.lft} >= rgt {a.rgt}")
        for bound in (a.lft, a.rgt):
            if bound in seen:
                errors.append(f"{a.id}: bound {bound} also used by {seen[bound]}")
            seen[bound] = a.id
        if a.parent_id is not None:
            parent = by_id.get(a.parent_id)
            if parent is None:
                errors.append(f"{a.id}: parent {a.parent_id} does not exist")
            elif not (parent.lft < a.lft and a.rgt < parent.rgt):
                errors.append(f"{a.id}: interval not inside parent {parent.id}")
    return errors


def is_descendant(child, parent):
    return parent.lft < child.lft and child.rgt < parent.rgt


def ancestors(album):
    return Album.query.filter(Album.lft < album.lft, Album.rgt > album.rgt).order_by(Album.lft).all()


def descendants(album):
    return Album.query.filter(Album.lft > album.lft, Album.rgt < album.rgt).order_by(Album.lft).all()


def all_photos_query(album, ctx=None):
    """Photos of `album` and all its sub-albums.

    With `ctx` only the photos the actor may find below `album` are kept.
    """
    photo_album = aliased(Album)
    query = Photo.query.join(photo_album, photo_album.id == Photo.album_id).filter(
        photo_album.lft >= album.lft, photo_album.rgt <= album.rgt
    )
    if ctx is not None:
        query = query.filter(photo_searchability_condition(ctx, photo_album, album.lft, album.rgt))
    return query


def fix_ownership_of_children(album):
    """Hand all sub-albums and recursive photos over to the album's owner."""
    db.session.refresh(album)
    Album.query.filter(Album.lft > album.lft, Album.rgt < album.rgt).update(
        {Album.owner_id: album.owner_id}, synchronize_session="fetch"
    )
    subtree_ids = select(Album.id).where(Album.lft.between(album.lft, album.rgt))
    Photo.query.filter(Photo.album_id.in_(subtree_ids)).update(
        {Photo.owner_id: album.owner_id}, synchronize_session="fetch"
    )
    db.session.commit()
