"""Error kinds raised by the game services.

Each error carries the HTTP status the API layer renders it with.
"""


class GameError(Exception):
    status_code = 400

    def __init__(self, message):
        super(GameError, self).__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class ValidationError(GameError):
    status_code = 400


class Forbidden(GameError):
    status_code = 403


class NotFound(GameError):
    status_code = 404


class InvalidState(GameError):
    status_code = 409


class Conflict(GameError):
    status_code = 409
