# api_server.py
# HTTP proxy in front of the Overpass API.
#
#   GET /api/buildings?lat=..&lng=..&radius=..  ->  {"buildings": [...], "radius": r}

import logging
import math
from typing import Optional

from flask import Flask, jsonify, request

from building_compass.compass_config import CompassConfig
from building_compass.errors import BuildingFetchError, InvalidCoordinatesError
from building_compass.overpass_client import OverpassClient, clamp_radius

logger = logging.getLogger(__name__)


def parse_coordinate(value: Optional[str]) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidCoordinatesError("Invalid coordinates.")
    if not math.isfinite(number):
        raise InvalidCoordinatesError("Invalid coordinates.")
    return number


def create_app(
    config: Optional[CompassConfig] = None,
    client: Optional[OverpassClient] = None,
) -> Flask:
    """
    Build the Flask app.

    Args:
        config: CompassConfig for radius limits.
        client: OverpassClient to use; a default one is created if omitted.
    """
    config = config or CompassConfig()
    client = client or OverpassClient(config)
    app = Flask(__name__)

    @app.route("/api/buildings")
    def buildings():
        try:
            lat = parse_coordinate(request.args.get("lat"))
            lng = parse_coordinate(request.args.get("lng"))
        except InvalidCoordinatesError as e:
            return jsonify({"error": str(e)}), 400

        radius = clamp_radius(request.args.get("radius"), config)
        try:
            found = client.fetch_buildings(lat, lng, radius)
        except BuildingFetchError as e:
            return jsonify({"error": str(e)}), e.status_code

        return jsonify({
            "buildings": [b.to_dict() for b in found],
            "radius": radius,
        })

    return app


def serve(config: Optional[CompassConfig] = None, host: str = "127.0.0.1", port: int = 5000) -> None:
    """Run the proxy in the foreground."""
    app = create_app(config)
    logger.info(f"[API] Serving on http://{host}:{port}")
    app.run(host=host, port=port, debug=False, use_reloader=False)
