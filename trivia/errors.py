from flask import jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError


class TriviaError(Exception):
    """Base error for rejected game operations; nothing was written."""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(TriviaError):
    status_code = 400


class PermissionDenied(TriviaError):
    status_code = 403


class NotFound(TriviaError):
    status_code = 404


class StateError(TriviaError):
    """The action is not allowed in the current game phase."""
    status_code = 409


class Conflict(TriviaError):
    """A concurrent writer got there first, or the record already exists."""
    status_code = 409


def register_error_handlers(flask_app):
    @flask_app.errorhandler(TriviaError)
    def handle_trivia_error(exc):
        return jsonify({'error': exc.message}), exc.status_code

    @flask_app.errorhandler(SQLAlchemyError)
    def handle_db_error(exc):
        from trivia import db
        db.session.rollback()
        current_app.logger.error(f"[db-error] {exc.__class__.__name__}: {exc}")
        return jsonify({'error': 'The operation failed, please try again'}), 500
