import logging
import os
import uuid
from pathlib import Path

from flask import current_app
from PIL import Image, ImageOps

from exif_utils import extract_image_info
from models import db, Album, Photo, SizeVariant

logger = logging.getLogger(__name__)

# Square thumbnails rendered on import.
THUMB_SIZES = {SizeVariant.THUMB: 200, SizeVariant.THUMB2X: 400}


def _render_thumb(src_path, dest_path, edge):
    with Image.open(src_path) as img:
        thumb = ImageOps.fit(ImageOps.exif_transpose(img).convert("RGB"), (edge, edge))
        thumb.save(dest_path, "JPEG", quality=85)
    return thumb.size


def is_allowed_image(path: Path) -> bool:
    return path.suffix in current_app.config["ALLOWED_EXTENSIONS"]


def import_photo(path, owner_id, storage_root, album=None, title=None, tags="", is_starred=False):
    """Register an image below `storage_root` as a photo with its size variants."""
    src = Path(path)
    if not is_allowed_image(src):
        raise ValueError(f"Unsupported file type: {src.suffix or src.name}")
    root = Path(storage_root)
    taken_at, width, height, mime_type = extract_image_info(str(src))
    photo = Photo(
        album_id=album.id if album is not None else None,
        owner_id=owner_id,
        title=title if title is not None else src.stem,
        tags=tags,
        type=mime_type,
        is_starred=is_starred,
        taken_at=taken_at,
    )
    photo.size_variants.append(SizeVariant(
        type=SizeVariant.ORIGINAL,
        short_path=os.path.relpath(src.resolve(), root.resolve()),
        width=width,
        height=height,
        filesize=src.stat().st_size,
    ))
    thumbs_dir = root / "thumb"
    thumbs_dir.mkdir(parents=True, exist_ok=True)
    stem = uuid.uuid4().hex
    for variant_type, edge in THUMB_SIZES.items():
        suffix = "@2x" if variant_type == SizeVariant.THUMB2X else ""
        dest = thumbs_dir / f"{stem}{suffix}.jpeg"
        w, h = _render_thumb(src, dest, edge)
        photo.size_variants.append(SizeVariant(
            type=variant_type, short_path=dest.relative_to(root).as_posix(),
            width=w, height=h, filesize=dest.stat().st_size,
        ))
    db.session.add(photo)
    db.session.commit()
    logger.info(f"Photo imported id={photo.id} album={photo.album_id} path={src}")
    return photo


def delete_photo(photo):
    # Covers pointing at the photo fall back to automatic thumbnails.
    Album.query.filter(Album.cover_id == photo.id).update({Album.cover_id: None}, synchronize_session="fetch")
    db.session.delete(photo)


def set_cover(album, photo):
    if photo is None:
        album.cover_id = None
    elif photo.album is None or not album.contains(photo.album):
        raise ValueError("Photo does not belong to this album")
    else:
        album.cover_id = photo.id
    db.session.commit()
    return album
