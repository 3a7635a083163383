# Overview: App-level error handlers that keep every failure in the JSON envelope.

from flask import current_app, request
from werkzeug.exceptions import HTTPException

from .extensions import db
from .responses import fail


def register_error_handlers(app) -> None:
    @app.errorhandler(404)
    def not_found(_e):
        return fail("Route not found", 404)

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return fail("Method not allowed", 405)

    @app.errorhandler(413)
    def payload_too_large(_e):
        return fail("Request body too large", 413)

    @app.errorhandler(429)
    def too_many_requests(_e):
        return fail("Too many requests from this IP, please try again later.", 429)

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return fail(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def unhandled(e: Exception):
        # Leave the session usable for the next request on this context
        db.session.rollback()
        current_app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("Internal server error", 500)
