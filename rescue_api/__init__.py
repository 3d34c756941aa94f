# SPDX-License-Identifier: Apache-2.0

"""
SOS rescue intake API.

Accepts SOS reports from field users, applies the rescue radius policy and
moves accepted incidents through the rescue workflow.
"""

__version__ = "1.0.0"
