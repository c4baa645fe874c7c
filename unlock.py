import logging

from album_kinds import find_album
from models import Album, TagAlbum
from smart_albums import is_built_in

logger = logging.getLogger(__name__)


def unlock_album(album_id, password, ctx):
    """Try to unlock `album_id` for the session held by `ctx`.

    On success every other public album protected by the same password is
    unlocked as well.  A wrong password returns False; an unknown id raises
    `AlbumNotFound`.
    """
    if is_built_in(album_id):
        return False
    album = find_album(album_id)
    if not album.public:
        return False
    if album.password is None or ctx.is_unlocked(album.id):
        return True
    if album.check_password(password or ""):
        propagate(password, ctx)
        return True
    logger.info(f"Unlock refused album_id={album_id}")
    return False


def propagate(password, ctx):
    """Unlock every public album whose password matches."""
    unlocked = []
    for model in (Album, TagAlbum):
        candidates = model.query.filter(model.public.is_(True), model.password.isnot(None)).all()
        for album in candidates:
            if album.check_password(password):
                ctx.unlock(album.id)
                unlocked.append(album.id)
    logger.info(f"Unlocked albums={unlocked}")
    return unlocked
