from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from last_standing.services.games.errors import GameError, ValidationError


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def register_error_handlers(app):
    @app.errorhandler(GameError)
    def handle_game_error(exc):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({'error': exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        current_app.logger.exception(f"[error] {request.method} {request.path}")
        return jsonify({'error': 'Internal server error'}), 500
