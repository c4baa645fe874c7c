from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from access import AccessContext
from app import create_app
from config import TestConfig
from models import db, Photo, SizeVariant, User


@pytest.fixture
def app(tmp_path):
    class Cfg(TestConfig):
        LOG_DIR = str(tmp_path / "logs")
        STORAGE_ROOT = str(tmp_path / "storage")

    app = create_app(Cfg)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def users(app):
    admin = User(username="admin", is_admin=True)
    alice = User(username="alice", may_upload=True)
    bob = User(username="bob", may_upload=True)
    for user in (admin, alice, bob):
        user.set_password(f"{user.username}-pw")
        db.session.add(user)
    db.session.commit()
    return SimpleNamespace(admin=admin, alice=alice, bob=bob)


@pytest.fixture
def ctx_for(users):
    def build(user=None, unlocked=()):
        return AccessContext.for_user(user, unlocked)
    return build


@pytest.fixture
def make_photo():
    base = datetime(2021, 6, 1, 12, 0, 0)

    def build(album, owner, title="photo", minutes=0, starred=False, tags="", original=None, **attrs):
        photo = Photo(
            album_id=album.id if album is not None else None,
            owner_id=owner.id,
            title=title,
            tags=tags,
            is_starred=starred,
            created_at=base + timedelta(minutes=minutes),
            **attrs,
        )
        photo.size_variants.append(SizeVariant(type=SizeVariant.THUMB, short_path=f"thumb/{title}.jpeg"))
        photo.size_variants.append(SizeVariant(type=SizeVariant.THUMB2X, short_path=f"thumb/{title}@2x.jpeg"))
        if original is not None:
            photo.size_variants.append(SizeVariant(type=SizeVariant.ORIGINAL, short_path=original))
        db.session.add(photo)
        db.session.commit()
        return photo
    return build
