import os

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///gallery.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Originals and size variants live below this directory; size variant
    # paths are stored relative to it.
    STORAGE_ROOT = os.environ.get("STORAGE_ROOT", os.path.join(os.getcwd(), "uploads"))
    LOG_DIR = os.environ.get("LOG_DIR")

    ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".JPG", ".JPEG", ".PNG"}


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test"


# Defaults of the key/value settings store (table `configs`).
DEFAULT_SETTINGS = {
    "sorting_Albums_col": "created_at",
    "sorting_Albums_order": "ASC",
    "sorting_Photos_col": "created_at",
    "sorting_Photos_order": "DESC",
    "default_license": "none",
    "zip64": "1",
    "downloadable": "0",
    "public_recent": "0",
    "public_starred": "0",
    "recent_age": "1",
}
