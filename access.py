"""Authorization predicates for albums and photos.

Every builder here returns a SQLAlchemy boolean expression that narrows a
query to the rows the actor may see.  They never raise: an actor without
access simply gets an empty result.
"""
from dataclasses import dataclass, field
from typing import Optional, Set

from sqlalchemy import and_, exists, not_, or_, select, true
from sqlalchemy.orm import aliased

from models import db, Album, AlbumShare, Photo


class AccessDenied(Exception):
    def __init__(self, message="Access denied", password_required=False):
        super().__init__(message)
        self.password_required = password_required


@dataclass
class AccessContext:
    """The current actor plus the albums unlocked during its session."""

    user_id: Optional[int] = None
    is_admin: bool = False
    may_upload: bool = False
    unlocked_album_ids: Set[str] = field(default_factory=set)

    @classmethod
    def anonymous(cls, unlocked=()):
        return cls(unlocked_album_ids=set(unlocked))

    @classmethod
    def for_user(cls, user, unlocked=()):
        if user is None:
            return cls.anonymous(unlocked)
        return cls(
            user_id=user.id,
            is_admin=bool(user.is_admin),
            may_upload=bool(user.is_admin or user.may_upload),
            unlocked_album_ids=set(unlocked),
        )

    @property
    def is_logged_in(self):
        return self.user_id is not None

    def is_current_user(self, owner_id):
        return self.is_logged_in and owner_id == self.user_id

    def is_unlocked(self, album_id):
        return album_id in self.unlocked_album_ids

    def unlock(self, album_id):
        self.unlocked_album_ids.add(album_id)


def _shared_condition(ctx, entity):
    return exists(
        select(AlbumShare.album_id)
        .where(AlbumShare.album_id == entity.id, AlbumShare.user_id == ctx.user_id)
        .correlate_except(AlbumShare)
    )


def accessibility_condition(ctx: AccessContext, entity):
    """Albums whose content the actor may look at.

    `entity` is `Album`, `TagAlbum` or an alias of either.
    """
    if ctx.is_admin:
        return true()
    unlocked = sorted(ctx.unlocked_album_ids)
    conditions = [
        and_(
            entity.public.is_(True),
            or_(entity.password.is_(None), entity.id.in_(unlocked)),
        )
    ]
    if ctx.is_logged_in:
        conditions.append(entity.owner_id == ctx.user_id)
        conditions.append(_shared_condition(ctx, entity))
    return or_(*conditions)


def visibility_condition(ctx: AccessContext, entity):
    """Albums the actor may see listed, locked ones included."""
    if ctx.is_admin:
        return true()
    conditions = [entity.public.is_(True)]
    if ctx.is_logged_in:
        conditions.append(entity.owner_id == ctx.user_id)
        conditions.append(_shared_condition(ctx, entity))
    return or_(*conditions)


def browsability_condition(ctx: AccessContext, entity=Album):
    """Tree albums that are accessible and reachable through accessible ancestors."""
    if ctx.is_admin:
        return true()
    ancestor = aliased(Album)
    locked_ancestor = (
        select(ancestor.id)
        .where(
            ancestor.lft < entity.lft,
            ancestor.rgt > entity.rgt,
            not_(accessibility_condition(ctx, ancestor)),
        )
        .correlate_except(ancestor)
    )
    return and_(accessibility_condition(ctx, entity), not_(exists(locked_ancestor)))


def photo_searchability_condition(ctx: AccessContext, photo_album, origin_lft=None, origin_rgt=None):
    """Photos the actor may find below an origin album.

    `photo_album` must be joined (outer join for unsorted photos) on
    `Photo.album_id`.  Without an origin the path up to the root is checked.
    """
    if ctx.is_admin:
        return true()
    blocker = aliased(Album)
    blocked = select(blocker.id).where(
        blocker.lft <= photo_album.lft,
        blocker.rgt >= photo_album.rgt,
        not_(accessibility_condition(ctx, blocker)),
    )
    if origin_lft is not None:
        blocked = blocked.where(blocker.lft >= origin_lft, blocker.rgt <= origin_rgt)
    reachable = and_(Photo.album_id.isnot(None), not_(exists(blocked.correlate_except(blocker))))
    if ctx.is_logged_in:
        return or_(Photo.owner_id == ctx.user_id, reachable)
    return reachable


def _is_shared(ctx, album):
    if not ctx.is_logged_in:
        return False
    return db.session.get(AlbumShare, (ctx.user_id, album.id)) is not None


def is_accessible(ctx: AccessContext, album):
    if album is None:
        return False
    if ctx.is_admin or ctx.is_current_user(album.owner_id):
        return True
    if album.public and (album.password is None or ctx.is_unlocked(album.id)):
        return True
    return _is_shared(ctx, album)


def is_visible(ctx: AccessContext, album):
    if album is None:
        return False
    if ctx.is_admin or ctx.is_current_user(album.owner_id) or album.public:
        return True
    return _is_shared(ctx, album)


def is_browsable(ctx: AccessContext, album):
    if not is_accessible(ctx, album):
        return False
    if ctx.is_admin:
        return True
    ancestors = Album.query.filter(Album.lft < album.lft, Album.rgt > album.rgt).all()
    return all(is_accessible(ctx, a) for a in ancestors)
