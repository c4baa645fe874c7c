import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

from config import DEFAULT_SETTINGS

db = SQLAlchemy()


def new_album_id():
    # Tree albums and tag albums share one identifier space.
    return uuid.uuid4().hex[:24]


def split_tags(value):
    return [t.strip() for t in (value or "").split(",") if t.strip()]


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(128), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    may_upload = db.Column(db.Boolean, default=False, nullable=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)


class AlbumShare(db.Model):
    __tablename__ = "album_shares"
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    # Either a tree album or a tag album id.
    album_id = db.Column(db.String(24), primary_key=True)


class ProtectedAlbumMixin:
    """Attributes common to tree albums and tag albums."""

    def set_password(self, password):
        self.password = generate_password_hash(password) if password else None

    def check_password(self, password):
        if not self.password:
            return True
        return check_password_hash(self.password, password)

    @property
    def is_password_protected(self):
        return self.password is not None


class Album(ProtectedAlbumMixin, db.Model):
    __tablename__ = "albums"
    kind = "album"

    id = db.Column(db.String(24), primary_key=True, default=new_album_id)
    parent_id = db.Column(db.String(24), db.ForeignKey("albums.id"), nullable=True, index=True)
    lft = db.Column("_lft", db.Integer, nullable=False, default=0, index=True)
    rgt = db.Column("_rgt", db.Integer, nullable=False, default=0, index=True)
    cover_id = db.Column(db.Integer, nullable=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    license = db.Column(db.String(32), nullable=False, default="none")
    public = db.Column(db.Boolean, default=False, nullable=False)
    password = db.Column(db.String(255), nullable=True)
    downloadable = db.Column(db.Boolean, default=False, nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    owner = db.relationship("User")
    parent = db.relationship("Album", remote_side=[id], backref=db.backref("children", order_by="Album.lft"))
    photos = db.relationship("Photo", back_populates="album")
    cover = db.relationship("Photo", primaryjoin="foreign(Album.cover_id) == Photo.id", lazy="joined", viewonly=True)

    @property
    def is_leaf(self):
        return self.rgt - self.lft == 1

    @property
    def effective_license(self):
        if self.license == "none":
            return Setting.get_value("default_license")
        return self.license

    def contains(self, other):
        return self.lft <= other.lft and other.rgt <= self.rgt

    def to_dict(self, thumb=None):
        return {
            "id": self.id,
            "kind": self.kind,
            "parent_id": self.parent_id,
            "title": self.title,
            "description": self.description,
            "license": self.effective_license,
            "public": self.public,
            "password_protected": self.is_password_protected,
            "downloadable": self.downloadable,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "has_albums": not self.is_leaf,
            "thumb": thumb.to_dict() if thumb else None,
        }


class TagAlbum(ProtectedAlbumMixin, db.Model):
    __tablename__ = "tag_albums"
    kind = "tag"

    id = db.Column(db.String(24), primary_key=True, default=new_album_id)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    show_tags = db.Column(db.Text, nullable=False, default="")
    public = db.Column(db.Boolean, default=False, nullable=False)
    password = db.Column(db.String(255), nullable=True)
    downloadable = db.Column(db.Boolean, default=False, nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    owner = db.relationship("User")

    @property
    def tags(self):
        return split_tags(self.show_tags)

    def to_dict(self, thumb=None):
        return {
            "id": self.id,
            "kind": self.kind,
            "title": self.title,
            "description": self.description,
            "show_tags": self.tags,
            "public": self.public,
            "password_protected": self.is_password_protected,
            "downloadable": self.downloadable,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "thumb": thumb.to_dict() if thumb else None,
        }


class Photo(db.Model):
    __tablename__ = "photos"
    id = db.Column(db.Integer, primary_key=True)
    album_id = db.Column(db.String(24), db.ForeignKey("albums.id"), nullable=True, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    title = db.Column(db.String(512), nullable=False, default="")
    description = db.Column(db.Text, nullable=True)
    tags = db.Column(db.Text, nullable=False, default="")
    type = db.Column(db.String(64), nullable=False, default="image/jpeg")
    is_starred = db.Column(db.Boolean, default=False, nullable=False)
    is_public = db.Column(db.Boolean, default=False, nullable=False)
    taken_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    album = db.relationship("Album", back_populates="photos")
    size_variants = db.relationship("SizeVariant", backref="photo", cascade="all, delete-orphan", lazy="selectin")

    def variant(self, variant_type):
        for v in self.size_variants:
            if v.type == variant_type:
                return v
        return None

    @property
    def original(self):
        return self.variant(SizeVariant.ORIGINAL)

    def to_dict(self):
        return {
            "id": self.id,
            "album_id": self.album_id,
            "title": self.title,
            "description": self.description,
            "tags": split_tags(self.tags),
            "type": self.type,
            "is_starred": self.is_starred,
            "is_public": self.is_public,
            "taken_at": self.taken_at.isoformat() if self.taken_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class SizeVariant(db.Model):
    __tablename__ = "size_variants"
    __table_args__ = (db.UniqueConstraint("photo_id", "type"),)

    ORIGINAL = 0
    MEDIUM2X = 1
    MEDIUM = 2
    SMALL2X = 3
    SMALL = 4
    THUMB2X = 5
    THUMB = 6

    id = db.Column(db.Integer, primary_key=True)
    photo_id = db.Column(db.Integer, db.ForeignKey("photos.id"), nullable=False, index=True)
    type = db.Column(db.Integer, nullable=False)
    short_path = db.Column(db.String(1024), nullable=False)
    width = db.Column(db.Integer, nullable=True)
    height = db.Column(db.Integer, nullable=True)
    filesize = db.Column(db.Integer, nullable=True)


class Setting(db.Model):
    __tablename__ = "configs"
    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.String(255), nullable=True)

    @classmethod
    def get_value(cls, key, default=None):
        row = db.session.get(cls, key)
        if row is not None and row.value is not None:
            return row.value
        if default is not None:
            return default
        return DEFAULT_SETTINGS.get(key)

    @classmethod
    def set_value(cls, key, value):
        row = db.session.get(cls, key)
        if row is None:
            row = cls(key=key)
            db.session.add(row)
        row.value = None if value is None else str(value)
        return row
