# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB incident store with connection pooling.
"""

import os
import logging
from typing import List, Dict, Optional, Any, Iterable
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError
from pydantic.alias_generators import to_camel
from bson import ObjectId
from bson.errors import InvalidId
from opentelemetry import trace

from ..models.entities import Incident
from .errors import IncidentNotFoundError, StatusConflictError, StoreError
from .store import IncidentStore, check_patch

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

INCIDENTS_COLLECTION = "incidents"


class MongoIncidentStore(IncidentStore):
    """MongoDB-backed incident store."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB store; the client connects on first use."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/sos_rescue_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'sos_rescue_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB incident store initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=True
                )
                logger.info("MongoDB client created")
            except PyMongoError as e:
                logger.error(f"Failed to create MongoDB client: {e}")
                raise StoreError() from e

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    @property
    def collection(self) -> Collection:
        """Get the incidents collection."""
        return self.database[INCIDENTS_COLLECTION]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'backend': 'mongodb',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name
            }
        except (PyMongoError, StoreError) as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'backend': 'mongodb',
                'error': str(e),
                'database': self.database_name
            }

    # Document mapping

    @staticmethod
    def _to_object_id(incident_id: str) -> Optional[ObjectId]:
        """Convert a string id, or None when it cannot name a document."""
        try:
            return ObjectId(incident_id)
        except (InvalidId, TypeError):
            return None

    @staticmethod
    def _to_document(incident: Incident) -> Dict[str, Any]:
        return incident.model_dump(by_alias=True, exclude={"id"})

    @staticmethod
    def _from_document(document: Dict[str, Any]) -> Incident:
        document = dict(document)
        document["id"] = str(document.pop("_id"))
        return Incident.model_validate(document)

    @staticmethod
    def _to_fields(values: Dict[str, Any]) -> Dict[str, Any]:
        """Rename python field names to stored camelCase names."""
        return {to_camel(key): getattr(value, 'value', value) for key, value in values.items()}

    # Store operations

    def create(self, incident: Incident) -> Incident:
        """Insert a new incident document."""
        with tracer.start_as_current_span("db.incident.create") as span:
            document = self._to_document(incident)
            document["_id"] = ObjectId()

            try:
                result = self.collection.insert_one(document)
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(f"Failed to create incident: {e}")
                raise StoreError() from e

            incident_id = str(result.inserted_id)
            span.set_attributes({
                "db.collection": INCIDENTS_COLLECTION,
                "db.operation": "create",
                "incident.id": incident_id
            })
            logger.info(f"Created incident document: {incident_id}")
            return incident.model_copy(update={"id": incident_id})

    def find_by_id(self, incident_id: str) -> Optional[Incident]:
        """Find a single incident by id."""
        object_id = self._to_object_id(incident_id)
        if object_id is None:
            logger.debug(f"Invalid incident id {incident_id!r}")
            return None

        try:
            document = self.collection.find_one({"_id": object_id})
        except PyMongoError as e:
            logger.error(f"Failed to find incident {incident_id}: {e}")
            raise StoreError() from e

        if document is None:
            logger.debug(f"Incident {incident_id} not found")
            return None
        return self._from_document(document)

    def update(self, incident_id: str, patch: Dict[str, Any],
               allowed_statuses: Optional[Iterable[str]] = None) -> Incident:
        """Atomically update an existing incident, optionally guarded by status."""
        check_patch(patch)
        object_id = self._to_object_id(incident_id)
        if object_id is None:
            raise IncidentNotFoundError(incident_id)

        query: Dict[str, Any] = {"_id": object_id}
        if allowed_statuses is not None:
            query["status"] = {"$in": [getattr(s, 'value', s) for s in allowed_statuses]}

        with tracer.start_as_current_span("db.incident.update") as span:
            span.set_attributes({
                "db.collection": INCIDENTS_COLLECTION,
                "db.operation": "update",
                "incident.id": incident_id
            })
            try:
                document = self.collection.find_one_and_update(
                    query,
                    {"$set": self._to_fields(patch)},
                    return_document=ReturnDocument.AFTER
                )
                if document is None:
                    # Distinguish a missing incident from a failed status guard
                    existing = self.collection.find_one({"_id": object_id}, {"status": 1})
            except PyMongoError as e:
                span.record_exception(e)
                logger.error(f"Failed to update incident {incident_id}: {e}")
                raise StoreError() from e

        if document is None:
            if existing is None:
                logger.warning(f"No incident updated for {incident_id}: not found")
                raise IncidentNotFoundError(incident_id)
            logger.warning(f"No incident updated for {incident_id}: status is {existing['status']}")
            raise StatusConflictError(incident_id, existing["status"])

        logger.info(f"Updated incident {incident_id}")
        return self._from_document(document)

    def find_all(self, filters: Optional[Dict[str, Any]] = None,
                 sort_by: str = "created_at", descending: bool = True) -> List[Incident]:
        """Find incidents with equality filters, sorted by one field."""
        query = self._to_fields(filters or {})
        sort_order = DESCENDING if descending else ASCENDING

        try:
            # _id breaks ties; ObjectIds grow with insertion time
            cursor = self.collection.find(query).sort([(to_camel(sort_by), sort_order), ("_id", sort_order)])
            documents = list(cursor)
        except PyMongoError as e:
            logger.error(f"Failed to query incidents: {e}")
            raise StoreError() from e

        logger.debug(f"Found {len(documents)} incidents for {query}")
        return [self._from_document(doc) for doc in documents]

    # Index Management

    def create_indexes(self) -> None:
        """Create indexes backing the listing queries."""
        try:
            logger.info("Creating MongoDB indexes...")

            self.collection.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            self.collection.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])
            self.collection.create_index([("createdAt", DESCENDING)])

            logger.info("MongoDB indexes created successfully")

        except PyMongoError as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise StoreError() from e
