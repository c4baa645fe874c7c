"""Plans the content of album download archives.

The plan lists which original files go into the archive under which
names; writing the ZIP stream is left to the caller.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import access
from album_kinds import album_photos, find_albums, is_album_accessible, is_archivable, is_downloadable
from models import Photo, Setting

logger = logging.getLogger(__name__)

BAD_CHARS = {chr(c) for c in range(0x20)} | set('<>:"/\\|?*')


@dataclass
class ArchiveEntry:
    name: str
    path: str


@dataclass
class ArchivePlan:
    title: str
    zip64: bool
    entries: List[ArchiveEntry] = field(default_factory=list)

    @property
    def filename(self):
        return f"{self.title}.zip"

    def to_dict(self):
        return {
            "title": self.title,
            "filename": self.filename,
            "zip64": self.zip64,
            "entries": [{"name": e.name, "path": e.path} for e in self.entries],
        }


def valid_title(title):
    cleaned = "".join(c for c in (title or "") if c not in BAD_CHARS)
    return cleaned or "Untitled"


def make_unique(name, used):
    """Return `name`, or `name-N` if already taken, and record it in `used`."""
    candidate, i = name, 1
    while candidate in used:
        candidate = f"{name}-{i}"
        i += 1
    used.add(candidate)
    return candidate


def zip_title(albums):
    return valid_title(albums[0].title) if len(albums) == 1 else "Albums"


def build_archive(album_ids, ctx, storage_root):
    albums = find_albums(album_ids)
    for album in albums:
        if not is_album_accessible(album, ctx):
            raise access.AccessDenied(f"Album {album.id} is not accessible")
    plan = ArchivePlan(title=zip_title(albums), zip64=Setting.get_value("zip64") == "1")
    used_dirs = set()
    for album in albums:
        _add_album(plan, album, ctx, Path(storage_root), used_dirs, None)
    logger.info(f"Archive planned title={plan.title} files={len(plan.entries)}")
    return plan


def _photo_is_exportable(album, photo, ctx):
    # Photos shown through tag and smart albums keep the download
    # permission of the album they actually live in.
    if album.kind == "album" or ctx.is_current_user(photo.owner_id):
        return True
    if photo.album is None:
        return is_downloadable(album)
    return is_downloadable(photo.album)


def _add_album(plan, album, ctx, root, used_dirs, parent_dir):
    if not is_archivable(album, ctx):
        return
    directory = make_unique(valid_title(album.title), used_dirs)
    if parent_dir:
        directory = f"{parent_dir}/{directory}"

    used_files = set()
    for photo in album_photos(album, ctx).order_by(Photo.id.asc()).all():
        if not _photo_is_exportable(album, photo, ctx):
            continue
        original = photo.original
        if original is None:
            logger.error(f"Original size variant missing for photo id={photo.id}")
            continue
        full_path = root / original.short_path
        if not os.access(full_path, os.R_OK):
            logger.error(f"Original photo missing: {full_path}")
            continue
        name = make_unique(valid_title(photo.title), used_files)
        plan.entries.append(ArchiveEntry(f"{directory}/{name}{full_path.suffix}", str(full_path)))

    if album.kind == "album":
        sub_dirs = set()
        for child in album.children:
            if access.is_accessible(ctx, child):
                _add_album(plan, child, ctx, root, sub_dirs, directory)
