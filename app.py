# app.py
import atexit
import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from errors import RateLimitedError, SecretSantaError, ValidationError
from ratelimit import RateLimiter
from sanitize import GUEST_NAME_MAX, sanitize_string
from secret_santa import DEFAULT_TIMEZONE, SecretSantaService
from storage import Persistence, env_file_path, get_data_dir
from store import EntityStore

log = logging.getLogger(__name__)


def _int_env(key: str, default: int | None) -> int | None:
    value = os.environ.get(key)
    if not value:
        return default
    return int(value)


def load_settings() -> dict:
    return {
        'DATA_DIR': get_data_dir(),
        'BASE_URL': os.environ.get('BASE_URL', 'http://localhost:8003'),
        'PARTY_TIMEZONE': os.environ.get('PARTY_TIMEZONE', DEFAULT_TIMEZONE),
        'RATE_LIMIT_MAX_REQUESTS': _int_env('RATE_LIMIT_MAX_REQUESTS', 10),
        'RATE_LIMIT_WINDOW': _int_env('RATE_LIMIT_WINDOW', 60),
        'BACKUP_KEEP': _int_env('BACKUP_KEEP', None),
        'MAX_CONTENT_LENGTH': 10 * 1024 * 1024,
    }


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Invalid request data')
    return data


def create_app(config: dict | None = None, rng=None) -> Flask:
    load_dotenv(env_file_path())
    app = Flask(__name__)
    app.config.update(load_settings())
    if config:
        app.config.update(config)
    CORS(app)

    store = EntityStore(Persistence(app.config['DATA_DIR'], max_backups=app.config['BACKUP_KEEP']))
    store.open()
    service = SecretSantaService(
        store,
        base_url=app.config['BASE_URL'],
        rng=rng,
        timezone=app.config['PARTY_TIMEZONE'],
    )
    limiter = RateLimiter(
        max_requests=app.config['RATE_LIMIT_MAX_REQUESTS'],
        window=app.config['RATE_LIMIT_WINDOW'],
    )
    app.extensions['store'] = store
    app.extensions['secret_santa'] = service
    app.extensions['rate_limiter'] = limiter

    def admit():
        if limiter.hit(request.remote_addr or 'unknown'):
            raise RateLimitedError()

    @app.errorhandler(SecretSantaError)
    def handle_santa_error(exc):
        return jsonify({"error": exc.message}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({"error": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        log.exception('Unhandled error on %s %s', request.method, request.path)
        return jsonify({"error": "Internal server error"}), 500

    @app.route('/healthz')
    def healthz():
        return jsonify({"status": "ok"})

    @app.route('/api/parties', methods=['POST'])
    def create_party():
        admit()
        data = _json_body()
        result = service.create_party(
            data.get('name'),
            data.get('budget'),
            data.get('criteria'),
            data.get('guests'),
        )
        return jsonify(result)

    @app.route('/api/parties/<party_id>', methods=['GET'])
    def get_party(party_id: str):
        return jsonify(service.get_party(party_id))

    @app.route('/api/parties/<party_id>/assign', methods=['POST'])
    def assign(party_id: str):
        admit()
        guest_name = _json_body().get('guestName')
        if not guest_name or not isinstance(guest_name, str):
            raise ValidationError('Guest name is required')
        guest_name = sanitize_string(guest_name, GUEST_NAME_MAX)
        if not guest_name:
            raise ValidationError('Invalid guest name')
        return jsonify({"assignment": service.assign_by_name(party_id, guest_name)})

    @app.route('/api/guest/<guest_id>/assignment', methods=['GET'])
    def guest_assignment(guest_id: str):
        admit()
        return jsonify(service.assign_by_guest_link(guest_id))

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app = create_app()
    atexit.register(app.extensions['store'].close)
    debug_flag = os.environ.get('FLASK_DEBUG', '1')
    app.run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', '8003')),
        debug=debug_flag not in ('0', 'false', 'False'),
    )
