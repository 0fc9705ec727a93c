# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

"""
Exceptions raised by tinynet.

Structural problems (bad topology, mismatched lengths) are
`ConfigurationError`s and are raised before anything is mutated.
Unreadable persisted networks are `NetworkRecordError`s.
"""


class TinynetError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(TinynetError, ValueError):
    """Invalid topology, parameters or dataset shapes."""


class NetworkRecordError(TinynetError, IOError):
    """A persisted network record is missing or malformed."""
