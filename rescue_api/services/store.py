# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Incident store contract and an in-process implementation.

The store is the single source of truth for incidents. Conditional updates
check the current status and write in one atomic step so concurrent
lifecycle requests cannot both succeed from the same starting status.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ..domain.incidents import MUTABLE_FIELDS
from ..models.base import generate_object_id
from ..models.entities import Incident
from .errors import IncidentNotFoundError, StatusConflictError

logger = logging.getLogger(__name__)


def check_patch(patch: Dict[str, Any]) -> None:
    """Reject patches that touch creation-time fields."""
    illegal = set(patch) - MUTABLE_FIELDS
    if illegal:
        raise ValueError(f"Incident fields are immutable: {sorted(illegal)}")


class IncidentStore(ABC):
    """Persistence contract used by the intake and lifecycle services."""

    @abstractmethod
    def create(self, incident: Incident) -> Incident:
        """Persist a new incident and return it with its assigned id."""

    @abstractmethod
    def find_by_id(self, incident_id: str) -> Optional[Incident]:
        """Return the incident or None when the id is unknown."""

    @abstractmethod
    def update(self, incident_id: str, patch: Dict[str, Any],
               allowed_statuses: Optional[Iterable[str]] = None) -> Incident:
        """
        Apply ``patch`` to an existing incident and return the result.

        Raises:
            IncidentNotFoundError: If the id is unknown; nothing is created
            StatusConflictError: If ``allowed_statuses`` is given and the
                current status is not in it
        """

    @abstractmethod
    def find_all(self, filters: Optional[Dict[str, Any]] = None,
                 sort_by: str = "created_at", descending: bool = True) -> List[Incident]:
        """Return incidents matching equality ``filters`` in sort order."""

    def health_check(self) -> Dict[str, Any]:
        return {'status': 'healthy', 'backend': type(self).__name__}


class InMemoryIncidentStore(IncidentStore):
    """Thread-safe dictionary-backed store for development and tests."""

    def __init__(self):
        self._incidents: Dict[str, Incident] = {}
        # Insertion order breaks created_at ties
        self._sequence: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def create(self, incident: Incident) -> Incident:
        with self._lock:
            incident_id = generate_object_id()
            stored = incident.model_copy(update={"id": incident_id})
            self._incidents[incident_id] = stored
            self._sequence[incident_id] = next(self._counter)

        logger.info(f"Created incident {incident_id}")
        return stored

    def find_by_id(self, incident_id: str) -> Optional[Incident]:
        with self._lock:
            return self._incidents.get(incident_id)

    def update(self, incident_id: str, patch: Dict[str, Any],
               allowed_statuses: Optional[Iterable[str]] = None) -> Incident:
        check_patch(patch)
        allowed = {str(getattr(s, 'value', s)) for s in allowed_statuses} if allowed_statuses is not None else None

        with self._lock:
            current = self._incidents.get(incident_id)
            if current is None:
                logger.debug(f"Incident {incident_id} not found for update")
                raise IncidentNotFoundError(incident_id)

            if allowed is not None and current.status not in allowed:
                raise StatusConflictError(incident_id, current.status)

            updated = Incident.model_validate({**current.model_dump(), **patch})
            self._incidents[incident_id] = updated

        logger.info(f"Updated incident {incident_id}: {sorted(patch)}")
        return updated

    def find_all(self, filters: Optional[Dict[str, Any]] = None,
                 sort_by: str = "created_at", descending: bool = True) -> List[Incident]:
        filters = filters or {}

        with self._lock:
            matches = [
                (self._sequence[incident_id], incident)
                for incident_id, incident in self._incidents.items()
                if all(getattr(incident, key) == value for key, value in filters.items())
            ]

        matches.sort(key=lambda item: (getattr(item[1], sort_by), item[0]), reverse=descending)
        return [incident for _, incident in matches]

    def clear(self) -> None:
        with self._lock:
            self._incidents.clear()
            self._sequence.clear()
