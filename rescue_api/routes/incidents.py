# SPDX-License-Identifier: Apache-2.0

"""
Incident workflow endpoints.

This module implements the SOS intake endpoint, the rescuer lifecycle
operations and the incident listings. Services raise typed errors which
the error handler middleware turns into responses.
"""

from flask import request, jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from pydantic import ValidationError as PydanticValidationError
from typing import Any, Dict, List, Type, TypeVar

from ..models.base import BaseRequest
from ..models.entities import Incident
from ..models.requests import (
    IncidentPath, UserPath, AssignRescuerRequest, ResolveIncidentRequest
)
from ..services.errors import ValidationError


RequestModel = TypeVar("RequestModel", bound=BaseRequest)

incidents_tag = Tag(name="Incidents", description="SOS intake and rescue workflow")
incidents_bp = APIBlueprint(
    'incidents',
    __name__,
    url_prefix='/api/incidents',
    abp_tags=[incidents_tag]
)


def format_distance(distance_km: float) -> str:
    """Distances are reported with two decimals."""
    return f"{distance_km:.2f}"


def _parse_body(model: Type[RequestModel]) -> RequestModel:
    """Validate the JSON body, reporting the first missing field by wire name."""
    data = request.get_json(silent=True) or {}
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        fields = [str(err['loc'][0]) for err in e.errors() if err.get('loc')]
        errors = [f"missing {name}" for name in fields] or ["invalid request body"]
        raise ValidationError(errors[0], errors)


def _collection(incidents: List[Incident]) -> Dict[str, Any]:
    return {
        "incidents": [incident.to_public_dict() for incident in incidents],
        "count": len(incidents)
    }


@incidents_bp.post('/create')
def create_incident():
    """
    Submit an SOS.

    Returns 201 with the stored incident when the reporter is inside the
    rescue radius, or 200 with status 'rejected' when outside it.
    """
    outcome = current_app.intake_service.submit(request.get_json(silent=True))

    if not outcome.accepted:
        return jsonify({
            "status": "rejected",
            "reason": outcome.reason,
            "distance_km": format_distance(outcome.distance_km)
        }), 200

    return jsonify({
        "message": "SOS created & broadcasted",
        "distance_km": format_distance(outcome.distance_km),
        "direction": outcome.direction.value,
        "incident": outcome.incident.to_public_dict()
    }), 201


@incidents_bp.get('/pending')
def list_pending_incidents():
    """Pending incidents, longest waiting first."""
    return jsonify(_collection(current_app.lifecycle_service.list_pending()))


@incidents_bp.get('/all')
def list_all_incidents():
    """All incidents, newest first."""
    return jsonify(_collection(current_app.lifecycle_service.list_all()))


@incidents_bp.get('/user/<user_id>')
def list_user_incidents(path: UserPath):
    """Incidents reported by one user, newest first."""
    return jsonify(_collection(current_app.lifecycle_service.list_by_user(path.user_id)))


@incidents_bp.get('/<incident_id>')
def get_incident(path: IncidentPath):
    """Incident detail."""
    incident = current_app.lifecycle_service.get_incident(path.incident_id)
    return jsonify({"incident": incident.to_public_dict()})


@incidents_bp.post('/accept')
def assign_rescuer():
    """A rescuer takes the incident; it becomes broadcasted with the rescuer recorded."""
    body = _parse_body(AssignRescuerRequest)
    incident = current_app.lifecycle_service.assign_rescuer(body.incident_id, body.rescuer_id)
    return jsonify({"message": "Incident accepted", "incident": incident.to_public_dict()})


@incidents_bp.put('/<incident_id>/accept')
def accept_incident(path: IncidentPath):
    incident = current_app.lifecycle_service.accept(path.incident_id)
    return jsonify({"message": "Incident accepted", "incident": incident.to_public_dict()})


@incidents_bp.put('/<incident_id>/reject')
def reject_incident(path: IncidentPath):
    incident = current_app.lifecycle_service.reject(path.incident_id)
    return jsonify({"message": "Incident rejected", "incident": incident.to_public_dict()})


@incidents_bp.post('/resolve')
def resolve_incident():
    body = _parse_body(ResolveIncidentRequest)
    incident = current_app.lifecycle_service.resolve(body.incident_id)
    return jsonify({"message": "Incident resolved", "incident": incident.to_public_dict()})
