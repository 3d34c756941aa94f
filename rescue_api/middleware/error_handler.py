# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured JSON responses.
Provides centralized error handling and formatting for the Flask application.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import Dict, Any, List, Optional
from opentelemetry import trace
import logging

from ..services.errors import RescueError, ValidationError, StoreError

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = "Internal server error"


def build_error_response(
    error_type: str,
    title: str,
    status: int,
    detail: str,
    instance: str,
    validation_errors: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Build the error body shared by every failure response."""
    error: Dict[str, Any] = {
        "type": error_type,
        "title": title,
        "status": status,
        "detail": detail,
        "instance": instance
    }
    if validation_errors:
        error["validation_errors"] = validation_errors
    return {"error": error}


class ErrorHandlerMiddleware:
    """Centralized error handling middleware."""
    
    def __init__(self, app: Flask):
        self.app = app
        self.register_error_handlers()
    
    def register_error_handlers(self):
        """Register error handlers with Flask application."""
        
        @self.app.errorhandler(RescueError)
        def handle_rescue_error(error: RescueError):
            return self.handle_application_error(error)
        
        @self.app.errorhandler(HTTPException)
        def handle_http_exception(error: HTTPException):
            return self.handle_http_error(error)
        
        # Handle generic exceptions
        @self.app.errorhandler(Exception)
        def handle_generic_exception(error):
            return self.handle_unexpected_error(error)
    
    def handle_application_error(self, error: RescueError):
        """
        Handle errors raised by the services.
        
        Store failures become opaque 500s; everything else is reported with
        its own message.
        """
        with tracer.start_as_current_span("error_handler.application_error") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })
            
            if isinstance(error, StoreError):
                span.record_exception(error)
                logger.error(
                    "Store failure",
                    extra={
                        "extra_fields": {
                            "error_type": error.error_type,
                            "detail": error.message,
                            "path": request.path,
                            "method": request.method
                        }
                    },
                    exc_info=True
                )
                body = build_error_response(
                    error.error_type, "Internal Server Error", 500, INTERNAL_ERROR_DETAIL, request.path
                )
                return jsonify(body), 500
            
            logger.warning(
                f"Request failed: {error.error_type}",
                extra={
                    "extra_fields": {
                        "error_type": error.error_type,
                        "status_code": error.status_code,
                        "detail": error.message,
                        "path": request.path,
                        "method": request.method
                    }
                }
            )
            
            validation_errors = error.validation_errors if isinstance(error, ValidationError) else None
            body = build_error_response(
                error.error_type,
                error.error_type.replace('-', ' ').title(),
                error.status_code,
                error.message,
                request.path,
                validation_errors
            )
            return jsonify(body), error.status_code
    
    def handle_http_error(self, error: HTTPException):
        """Handle routing and protocol errors raised by Flask itself."""
        logger.warning(
            f"Client error: {error.name}",
            extra={
                "extra_fields": {
                    "status_code": error.code,
                    "path": request.path,
                    "method": request.method
                }
            }
        )
        body = build_error_response(
            error.name.lower().replace(' ', '-'),
            error.name,
            error.code,
            error.description or error.name,
            request.path
        )
        return jsonify(body), error.code
    
    def handle_unexpected_error(self, error: Exception):
        """
        Handle unexpected exceptions not caught by specific handlers.
        
        Args:
            error: Unexpected exception
            
        Returns:
            Tuple of (error response, status code)
        """
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)
            
            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "extra_fields": {
                        "error_class": error.__class__.__name__,
                        "error_message": str(error),
                        "path": request.path,
                        "method": request.method
                    }
                },
                exc_info=True
            )
            
            body = build_error_response(
                "internal-error", "Internal Server Error", 500, INTERNAL_ERROR_DETAIL, request.path
            )
            return jsonify(body), 500
