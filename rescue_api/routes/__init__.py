# SPDX-License-Identifier: Apache-2.0

"""
Routes package - HTTP endpoints.
"""

from .incidents import incidents_bp

__all__ = ["incidents_bp"]
