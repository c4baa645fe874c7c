import os
from pathlib import Path
import logging
from logging.handlers import RotatingFileHandler

from flask import Flask, request, jsonify, session
from sqlalchemy.exc import IntegrityError

from models import db, Album, Photo, User
from config import Config
from access import AccessContext, AccessDenied
from album_kinds import AlbumNotFound
from archive import build_archive
from gallery import album_detail, top_level
from nested_set import InvalidTreeOperation, create_album, delete_album, move_album
from photos import set_cover
from search import search
from thumbs import thumbs_for_ids
from unlock import unlock_album


def configure_logging(app):
    logs_dir = Path(app.config.get('LOG_DIR') or Path(app.instance_path) / 'logs')
    logs_dir.mkdir(parents=True, exist_ok=True)
    file_all = RotatingFileHandler(str(logs_dir / 'app.log'), maxBytes=5*1024*1024, backupCount=3, encoding='utf-8')
    file_err = RotatingFileHandler(str(logs_dir / 'error.log'), maxBytes=2*1024*1024, backupCount=5, encoding='utf-8')
    fmt = logging.Formatter('%(asctime)s %(levelname)s [%(name)s] %(message)s')
    file_all.setFormatter(fmt); file_err.setFormatter(fmt)
    file_all.setLevel(logging.DEBUG); file_err.setLevel(logging.ERROR)
    app.logger.setLevel(logging.INFO); app.logger.addHandler(file_all); app.logger.addHandler(file_err)
    root = logging.getLogger()
    if not any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        root.setLevel(logging.INFO); root.addHandler(file_all); root.addHandler(file_err)


def current_context():
    user = db.session.get(User, session['user_id']) if session.get('user_id') is not None else None
    return AccessContext.for_user(user, session.get('unlocked_albums', []))


def remember_unlocked(ctx):
    session['unlocked_albums'] = sorted(ctx.unlocked_album_ids)


def create_app(config_object=Config):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    os.makedirs(app.instance_path, exist_ok=True)
    configure_logging(app)

    db.init_app(app)
    with app.app_context():
        db.create_all()

    @app.before_request
    def before_request():
        app.logger.info(f'REQ {request.method} {request.path}')

    @app.after_request
    def after_request(response):
        app.logger.info(f'RES {response.status_code} {request.method} {request.path}')
        return response

    @app.errorhandler(AlbumNotFound)
    def handle_not_found(e):
        return jsonify({'error': str(e)}), 404

    @app.errorhandler(AccessDenied)
    def handle_access_denied(e):
        return jsonify({'error': str(e), 'password_required': e.password_required}), 403

    @app.errorhandler(InvalidTreeOperation)
    def handle_invalid_tree_operation(e):
        return jsonify({'error': str(e)}), 400

    def require_login():
        ctx = current_context()
        if not ctx.is_logged_in: raise AccessDenied('Login required')
        return ctx

    def owned_album(album_id):
        ctx = require_login()
        album = db.session.get(Album, album_id)
        if album is None: raise AlbumNotFound(f'Album {album_id} not found')
        if not (ctx.is_admin or ctx.is_current_user(album.owner_id)): raise AccessDenied()
        return ctx, album

    @app.post('/api/login')
    def api_login():
        data = request.get_json(silent=True) or request.form
        user = User.query.filter_by(username=(data.get('username') or '').strip()).first()
        if not user or not user.check_password(data.get('password') or ''):
            app.logger.info('Login failed')
            return jsonify({'error': 'Invalid credentials'}), 401
        session['user_id'] = user.id
        return jsonify({'status': 'ok', 'user_id': user.id, 'is_admin': user.is_admin})

    @app.post('/api/logout')
    def api_logout():
        session.clear()
        return jsonify({'status': 'ok'})

    @app.get('/api/albums')
    def api_albums():
        return jsonify(top_level(current_context()))

    @app.get('/api/albums/<album_id>')
    def api_album(album_id):
        return jsonify(album_detail(album_id, current_context()))

    @app.post('/api/albums')
    def api_album_create():
        ctx = require_login()
        if not ctx.may_upload: raise AccessDenied('Upload permission required')
        data = request.get_json(silent=True) or {}
        title = (data.get('title') or '').strip()
        if not title: return jsonify({'error': 'Title required'}), 400
        parent = None
        if data.get('parent_id'):
            _, parent = owned_album(data['parent_id'])
        try:
            album = create_album(
                title, ctx.user_id, parent=parent, password=data.get('password'),
                description=data.get('description'), public=bool(data.get('public', False)),
                downloadable=bool(data.get('downloadable', False)), license=data.get('license') or 'none',
            )
        except IntegrityError:
            app.logger.error('Album create conflict', exc_info=True)
            return jsonify({'error': 'Album could not be created'}), 409
        return jsonify({'status': 'ok', 'album': album.to_dict()}), 201

    @app.post('/api/albums/<album_id>/move')
    def api_album_move(album_id):
        _, album = owned_album(album_id)
        data = request.get_json(silent=True) or {}
        parent = owned_album(data['parent_id'])[1] if data.get('parent_id') else None
        move_album(album, parent)
        return jsonify({'status': 'ok', 'album': album.to_dict()})

    @app.delete('/api/albums/<album_id>')
    def api_album_delete(album_id):
        _, album = owned_album(album_id)
        delete_album(album)
        return jsonify({'status': 'ok', 'deleted': True})

    @app.post('/api/albums/<album_id>/unlock')
    def api_album_unlock(album_id):
        ctx = current_context()
        data = request.get_json(silent=True) or request.form
        ok = unlock_album(album_id, data.get('password') or '', ctx)
        if ok: remember_unlocked(ctx)
        return jsonify({'unlocked': ok})

    @app.patch('/api/albums/<album_id>/cover')
    def api_album_cover(album_id):
        _, album = owned_album(album_id)
        data = request.get_json(silent=True) or {}
        photo = None
        if data.get('photo_id') is not None:
            photo = db.session.get(Photo, int(data['photo_id']))
            if photo is None: return jsonify({'error': 'Photo not found'}), 404
        try:
            set_cover(album, photo)
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        return jsonify({'status': 'ok', 'cover_id': album.cover_id})

    @app.get('/api/search')
    def api_search():
        result = search(request.args.get('q', ''), current_context())
        return jsonify({
            'albums': [a.to_dict() for a in result['albums']],
            'photos': [p.to_dict() for p in result['photos']],
        })

    @app.get('/api/thumbs')
    def api_thumbs():
        ids = [i for i in request.args.get('ids', '').split(',') if i]
        thumbs = thumbs_for_ids(ids, current_context())
        return jsonify({album_id: (t.to_dict() if t else None) for album_id, t in thumbs.items()})

    @app.get('/api/archive')
    def api_archive():
        ids = [i for i in request.args.get('ids', '').split(',') if i]
        if not ids: return jsonify({'error': 'ids required'}), 400
        plan = build_archive(ids, current_context(), app.config['STORAGE_ROOT'])
        return jsonify(plan.to_dict())

    return app

if __name__ == '__main__':
    app = create_app()
    app.run(debug=True)
