# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing and error handling.
"""

from .error_handler import ErrorHandlerMiddleware, build_error_response

__all__ = ["ErrorHandlerMiddleware", "build_error_response"]
