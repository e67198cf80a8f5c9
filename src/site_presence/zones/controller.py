from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_user_id, json_view, login_required, manager_required
from ..common.validators import require_latitude, require_longitude
from ..container import Container
from ..core.exceptions import ValidationError
from ..geometry.model import shape_from_dict
from .model import NewZone, ZonePatch


def _optional_bool(data: dict, key: str):
    if key not in data or data[key] is None:
        return None
    if not isinstance(data[key], bool):
        raise ValidationError(f"{key} must be true or false")
    return data[key]


def register(app: Flask, container: Container) -> None:
    registry = container.zone_registry
    presence = container.presence_service

    @app.route("/api/geofence-zones", methods=["GET"], endpoint="zones_list")
    @login_required
    @json_view("Failed to fetch geofence zones")
    def zones_list():
        include_inactive = request.args.get("includeInactive", "1") != "0"
        zones = registry.list_zones(include_inactive=include_inactive)
        return jsonify([z.to_dict() for z in zones])

    @app.route("/api/geofence-zones/lookup", methods=["GET"], endpoint="zones_lookup")
    @login_required
    @json_view("Failed to resolve zones")
    def zones_lookup():
        lat = require_latitude(request.args.get("lat"))
        lng = require_longitude(request.args.get("lng"))
        return jsonify({"zoneIds": sorted(presence.zones_at(lat, lng))})

    @app.route("/api/geofence-zones/<int:zone_id>", methods=["GET"], endpoint="zones_get")
    @login_required
    @json_view("Failed to fetch geofence zone")
    def zones_get(zone_id: int):
        return jsonify(registry.get_zone(zone_id).to_dict())

    @app.route("/api/geofence-zones", methods=["POST"], endpoint="zones_create")
    @manager_required
    @json_view("Failed to create geofence zone")
    def zones_create():
        data = request.get_json(silent=True) or {}
        if "name" not in data or "shape" not in data:
            raise ValidationError("Missing required fields")

        zone = registry.create(
            NewZone(
                name=str(data["name"]),
                description=data.get("description"),
                shape=shape_from_dict(data["shape"]),
                is_active=_optional_bool(data, "isActive") is not False,
            ),
            created_by=current_user_id(),
        )
        return jsonify(zone.to_dict()), 201

    @app.route("/api/geofence-zones/<int:zone_id>", methods=["PATCH"], endpoint="zones_update")
    @manager_required
    @json_view("Failed to update geofence zone")
    def zones_update(zone_id: int):
        data = request.get_json(silent=True) or {}
        patch = ZonePatch(
            name=data.get("name"),
            description=data.get("description"),
            shape=shape_from_dict(data["shape"]) if data.get("shape") is not None else None,
            is_active=_optional_bool(data, "isActive"),
        )
        return jsonify(registry.update(zone_id, patch).to_dict())

    @app.route("/api/geofence-zones/<int:zone_id>", methods=["DELETE"], endpoint="zones_delete")
    @manager_required
    @json_view("Failed to delete geofence zone")
    def zones_delete(zone_id: int):
        outcome = registry.delete(zone_id)
        return jsonify({"id": outcome.zone_id, "purged": outcome.purged})

    @app.route("/api/geofence-zones/<int:zone_id>/users", methods=["GET"], endpoint="zones_users")
    @manager_required
    @json_view("Failed to fetch users in zone")
    def zones_users(zone_id: int):
        registry.get_zone(zone_id)
        return jsonify({"zoneId": zone_id, "userIds": sorted(presence.workers_in_zone(zone_id))})

    @app.route("/api/geofence-zones/headcount", methods=["GET"], endpoint="zones_headcount")
    @manager_required
    @json_view("Failed to fetch headcount")
    def zones_headcount():
        counts = presence.headcount_by_zone()
        return jsonify([{"zoneId": zid, "userIds": sorted(users)} for zid, users in counts.items()])
