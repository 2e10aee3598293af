"""
Error Handling Middleware
Centralized error handling and logging
"""
import logging
import os

from flask import jsonify
from werkzeug.exceptions import HTTPException

from orgtasks.errors import AppError
from orgtasks.utils.validators import Helpers

# Configure logging
logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class ErrorHandler:
    """Centralized error handling service"""

    @staticmethod
    def handle_app_error(error: AppError) -> tuple:
        if error.status_code == 404:
            logger.info("Not found: %s", error.message)
        elif error.status_code >= 500:
            logger.error("%s: %s", error.code, error.message)
        else:
            logger.warning("%s: %s", error.code, error.message)

        return jsonify(Helpers.build_error_response(
            message=error.message,
            code=error.code,
            details=error.details
        )), error.status_code

    @staticmethod
    def handle_not_found_error(resource: str = "Resource") -> tuple:
        logger.info("Not found error: %s", resource)
        return jsonify(Helpers.build_error_response(
            message=f"{resource} not found",
            code="NOT_FOUND"
        )), 404

    @staticmethod
    def handle_http_error(error: HTTPException) -> tuple:
        logger.warning("HTTP error %s: %s", error.code, error.description)
        return jsonify(Helpers.build_error_response(
            message=error.description or error.name,
            code=(error.name or "HTTP_ERROR").upper().replace(" ", "_")
        )), error.code

    @staticmethod
    def handle_generic_error(error: Exception) -> tuple:
        """Log with traceback and hide internals from the caller"""
        logger.error("Unexpected error: %s", error, exc_info=error)
        return jsonify(Helpers.build_error_response(
            message="An unexpected error occurred",
            code="INTERNAL_ERROR"
        )), 500


def register_error_handlers(app):
    """Register error handlers with Flask app"""

    @app.errorhandler(AppError)
    def handle_app_error(error):
        return ErrorHandler.handle_app_error(error)

    @app.errorhandler(404)
    def handle_not_found(error):
        return ErrorHandler.handle_not_found_error("Endpoint")

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify(Helpers.build_error_response(
            message="Method not allowed",
            code="METHOD_NOT_ALLOWED"
        )), 405

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return ErrorHandler.handle_http_error(error)

    @app.errorhandler(Exception)
    def handle_unhandled_exception(error):
        return ErrorHandler.handle_generic_error(error)
