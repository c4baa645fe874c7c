from PIL import Image, ExifTags
from datetime import datetime

def _parse_exif_datetime(value):
    try:
        return datetime.strptime(str(value).strip("\x00 "), "%Y:%m:%d %H:%M:%S")
    except Exception:
        return None

def extract_image_info(image_path):
    """Return (taken_at, width, height, mime_type) for an image file.

    Unreadable metadata yields None for the affected fields; an unreadable
    image raises the underlying Pillow/OS error.
    """
    with Image.open(image_path) as img:
        width, height = img.size
        mime_type = Image.MIME.get(img.format, "application/octet-stream")
        taken_at = None
        try:
            exif = img.getexif()
        except Exception:
            exif = None
        if exif:
            tags = {ExifTags.TAGS.get(k, k): v for k, v in exif.items()}
            try:
                tags.update({ExifTags.TAGS.get(k, k): v for k, v in exif.get_ifd(ExifTags.IFD.Exif).items()})
            except Exception:
                pass
            dto = tags.get("DateTimeOriginal") or tags.get("DateTime")
            if dto:
                taken_at = _parse_exif_datetime(dto)
    return (taken_at, width, height, mime_type)
