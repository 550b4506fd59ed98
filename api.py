"""Flask REST API for the Enhanced Creature Index."""

import logging
import os
import threading
from datetime import timedelta
from functools import wraps

from flask import Flask, jsonify, request

from creature_index.config import CONTENT_HOST, LOG_FORMAT, LOG_LEVEL

# Configure logging
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)
from flask_cors import CORS
from flask_jwt_extended import JWTManager, create_access_token, jwt_required
from flask_socketio import SocketIO
from flasgger import Swagger
from pydantic import ValidationError

from creature_index.builder import IndexBuilder
from creature_index.errors import BuildInProgressError, PersistenceError, UnsupportedSystemError
from creature_index.host import ContentHost, LocalPackHost
from creature_index.invalidation import InvalidationListener
from creature_index.mcp.creature_index import CreatureIndexServer
from creature_index.mcp.foundry_bridge import FoundryBridge
from creature_index.mcp.foundry_host import BridgeFileStorage, FoundryContentHost
from creature_index.query import QueryEngine
from creature_index.storage.files import FileStorage, LocalFileStorage
from creature_index.storage.snapshot import SnapshotStore

SERVICE_NAME = "creature-index"
SERVICE_VERSION = "0.1.0"

app = Flask(__name__)

# Enable CORS for browser requests (Foundry VTT integration)
CORS(app, resources={r"/api/*": {"origins": "*"}})

# =============================================================================
# Configuration
# =============================================================================

# JWT Configuration
app.config["JWT_SECRET_KEY"] = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-in-production")
app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=24)

# Auth can be disabled via environment variable
AUTH_ENABLED = os.environ.get("API_AUTH_ENABLED", "false").lower() == "true"

jwt = JWTManager(app)

# Swagger Configuration
app.config["SWAGGER"] = {
    "title": "Creature Index API",
    "description": "REST API for the Enhanced Creature Index",
    "version": SERVICE_VERSION,
    "specs_route": "/api/docs/",
}

swagger_template = {
    "swagger": "2.0",
    "info": {
        "title": "Creature Index API",
        "description": "Query Foundry VTT compendium creatures by game-mechanical criteria",
        "version": SERVICE_VERSION,
    },
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "JWT Authorization header. Example: 'Bearer {token}'",
        }
    },
    "security": [{"Bearer": []}] if AUTH_ENABLED else [],
}

swagger = Swagger(app, template=swagger_template)

# =============================================================================
# Socket.IO Configuration (Foundry VTT Bridge)
# =============================================================================

socketio = SocketIO(app, cors_allowed_origins="*", async_mode="threading")

foundry_bridge: FoundryBridge | None = None

# Index services, created on first use for the connected world
index_builder: IndexBuilder | None = None
query_engine: QueryEngine | None = None
invalidation_listener: InvalidationListener | None = None
creature_server: CreatureIndexServer | None = None
_services_lock = threading.Lock()


@socketio.on("connect")
def handle_connect(auth=None):
    """Handle Foundry VTT client connection.

    The Foundry module may pass ``{"worldId": ...}`` as connection auth so
    the index services can be wired up before the first request.
    """
    global foundry_bridge
    logger.info(f"Foundry VTT connected: {request.sid}")

    reset_index_services()
    foundry_bridge = FoundryBridge(socketio)
    foundry_bridge.set_connected(request.sid)

    world_id = auth.get("worldId") if isinstance(auth, dict) else None
    if world_id:
        with _services_lock:
            host = FoundryContentHost(foundry_bridge)
            init_index_services(host, BridgeFileStorage(foundry_bridge), scope=str(world_id))


@socketio.on("disconnect")
def handle_disconnect():
    """Handle Foundry VTT client disconnection."""
    global foundry_bridge
    logger.info(f"Foundry VTT disconnected: {request.sid}")

    if foundry_bridge:
        foundry_bridge.set_disconnected()

    if CONTENT_HOST == "foundry":
        reset_index_services()
    foundry_bridge = None


@socketio.on("foundry:response")
def handle_foundry_response(data):
    """Handle response from Foundry VTT command."""
    if foundry_bridge:
        foundry_bridge.handle_response(data)


@socketio.on("foundry:event")
def handle_foundry_event(data):
    """Handle event pushed from Foundry VTT (document and compendium hooks)."""
    if foundry_bridge:
        foundry_bridge.handle_event(data)


# =============================================================================
# Index Services
# =============================================================================


def init_index_services(host: ContentHost, storage: FileStorage, scope: str | None = None) -> QueryEngine:
    """Wire host, snapshot store, builder, invalidation listener and query engine."""
    global index_builder, query_engine, invalidation_listener, creature_server

    store = SnapshotStore(storage, scope or host.get_world_id())
    builder = IndexBuilder(host, store)
    listener = InvalidationListener(host, store)
    listener.register()
    engine = QueryEngine(builder)

    index_builder = builder
    invalidation_listener = listener
    query_engine = engine
    creature_server = CreatureIndexServer(engine)
    logger.info(f"Creature index services ready (snapshot: {store.path})")
    return engine


def reset_index_services() -> None:
    """Drop the index services so the next request wires them up again."""
    global index_builder, query_engine, invalidation_listener, creature_server
    with _services_lock:
        index_builder = None
        query_engine = None
        invalidation_listener = None
        creature_server = None


def get_query_engine() -> QueryEngine:
    """Get the query engine, creating the index services if needed.

    Raises:
        ConnectionError: If Foundry VTT is not connected
    """
    with _services_lock:
        if query_engine is not None:
            return query_engine

        if CONTENT_HOST == "local":
            return init_index_services(LocalPackHost(), LocalFileStorage())

        if not foundry_bridge or not foundry_bridge.is_connected():
            raise ConnectionError("Foundry VTT is not connected")
        return init_index_services(FoundryContentHost(foundry_bridge), BridgeFileStorage(foundry_bridge))


def get_creature_server() -> CreatureIndexServer:
    get_query_engine()
    return creature_server


def error_response(e: Exception):
    """Map index errors to JSON error responses."""
    if isinstance(e, BuildInProgressError):
        return jsonify({"error": str(e), "retryable": True}), 409
    if isinstance(e, UnsupportedSystemError):
        return jsonify({"error": str(e), "system": e.system_id}), 400
    if isinstance(e, (ValidationError, ValueError)):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, (ConnectionError, TimeoutError)):
        return jsonify({"error": str(e)}), 503
    if isinstance(e, PersistenceError):
        return jsonify({"error": str(e), "entries_built": len(e.entries)}), 500
    logger.error(f"Unexpected creature index error: {e}")
    return jsonify({"error": str(e)}), 500


# =============================================================================
# Auth Helpers
# =============================================================================


def optional_jwt_required(fn):
    """Decorator that requires JWT only if AUTH_ENABLED is True."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        if AUTH_ENABLED:
            return jwt_required()(fn)(*args, **kwargs)
        return fn(*args, **kwargs)

    return wrapper


# =============================================================================
# Auth Endpoints
# =============================================================================


@app.route("/api/auth/token", methods=["POST"])
def get_token():
    """
    Get JWT access token
    ---
    tags:
      - Authentication
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - username
            - password
          properties:
            username:
              type: string
              example: admin
            password:
              type: string
    responses:
      200:
        description: Access token
      400:
        description: Missing credentials
      401:
        description: Invalid credentials
      403:
        description: Auth is disabled
    """
    if not AUTH_ENABLED:
        return jsonify({"error": "Authentication is disabled"}), 403

    data = request.get_json(silent=True)
    if not data or "username" not in data or "password" not in data:
        return jsonify({"error": "Username and password required"}), 400

    api_username = os.environ.get("API_USERNAME", "admin")
    api_password = os.environ.get("API_PASSWORD", "changeme")

    if data["username"] == api_username and data["password"] == api_password:
        access_token = create_access_token(identity=data["username"])
        return jsonify({"access_token": access_token, "token_type": "bearer", "expires_in": 86400})

    return jsonify({"error": "Invalid credentials"}), 401


@app.route("/api/auth/status", methods=["GET"])
def auth_status():
    """
    Check authentication status
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Auth status
    """
    return jsonify({"auth_enabled": AUTH_ENABLED})


# =============================================================================
# Creature Endpoints
# =============================================================================


@app.route("/api/creatures", methods=["GET"])
@optional_jwt_required
def search_creatures_by_name():
    """
    Search creature compendiums by name
    ---
    tags:
      - Creatures
    parameters:
      - name: q
        in: query
        type: string
        required: true
        description: Name search terms (at least 2 characters)
      - name: limit
        in: query
        type: integer
      - name: match
        in: query
        type: string
        enum: [all, any]
        default: all
    responses:
      200:
        description: Matching pack listing entries
      400:
        description: Query too short
      503:
        description: Foundry VTT not connected
    """
    query = request.args.get("q", "")
    limit = request.args.get("limit", type=int)
    match_all = request.args.get("match", "all") != "any"
    try:
        results = get_query_engine().search_compendium(query, limit=limit, match_all=match_all)
    except Exception as e:
        return error_response(e)
    return jsonify({"creatures": results, "count": len(results)})


@app.route("/api/creatures/search", methods=["POST"])
@optional_jwt_required
def search_creatures():
    """
    List creatures matching game-mechanical criteria
    ---
    tags:
      - Creatures
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            challengeRating:
              description: Number or {min, max}
            level:
              description: Number or {min, max}
            creatureType:
              type: string
            size:
              type: string
            rarity:
              type: string
            traits:
              type: array
              items:
                type: string
            hasSpells:
              type: boolean
            hasLegendaryActions:
              type: boolean
            species:
              type: string
            culture:
              type: string
            actorType:
              type: string
            keyword:
              type: string
            hasAwakened:
              type: boolean
            limit:
              type: integer
    responses:
      200:
        description: Matching creatures and a search summary
      400:
        description: Invalid criteria
      503:
        description: Foundry VTT not connected
    """
    criteria = request.get_json(silent=True) or {}
    try:
        result = get_query_engine().query(criteria)
    except Exception as e:
        return error_response(e)
    return jsonify(result.to_dict())


@app.route("/api/creatures/rebuild", methods=["POST"])
@optional_jwt_required
def rebuild_index():
    """
    Rebuild the creature index
    ---
    tags:
      - Creatures
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            force:
              type: boolean
              default: false
              description: Wait for a running build instead of failing
    responses:
      200:
        description: Build report
      400:
        description: Unsupported game system
      409:
        description: A build is already running
      503:
        description: Foundry VTT not connected
    """
    data = request.get_json(silent=True) or {}
    try:
        report = get_query_engine().builder.build(force=bool(data.get("force", False)))
    except Exception as e:
        return error_response(e)
    return jsonify(report.to_dict())


@app.route("/api/creatures/status", methods=["GET"])
@optional_jwt_required
def index_status():
    """
    Get creature index status
    ---
    tags:
      - Creatures
    responses:
      200:
        description: Builder state and snapshot metadata
      503:
        description: Foundry VTT not connected
    """
    try:
        status = get_query_engine().builder.status()
    except Exception as e:
        return error_response(e)
    return jsonify(status)


@app.route("/api/creatures/index", methods=["DELETE"])
@optional_jwt_required
def delete_index():
    """
    Delete the persisted creature index
    ---
    tags:
      - Creatures
    responses:
      200:
        description: Whether a snapshot was deleted
      503:
        description: Foundry VTT not connected
    """
    try:
        deleted = get_query_engine().builder.store.delete()
    except Exception as e:
        return error_response(e)
    if deleted:
        logger.info("Creature index deleted via API")
    return jsonify({"deleted": deleted})


@app.route("/api/tools", methods=["GET"])
@optional_jwt_required
def list_tools():
    """
    List creature index tools for LLM agents
    ---
    tags:
      - Tools
    parameters:
      - name: format
        in: query
        type: string
        enum: [openai, anthropic]
        default: openai
    responses:
      200:
        description: Tool definitions
      503:
        description: Foundry VTT not connected
    """
    tool_format = request.args.get("format", "openai")
    try:
        tools = get_creature_server().list_tools()
    except Exception as e:
        return error_response(e)
    if tool_format == "anthropic":
        return jsonify({"tools": [tool.to_anthropic_format() for tool in tools]})
    return jsonify({"tools": [tool.to_openai_format() for tool in tools]})


@app.route("/api/tools/<name>", methods=["POST"])
@optional_jwt_required
def call_tool(name: str):
    """
    Call a creature index tool
    ---
    tags:
      - Tools
    parameters:
      - name: name
        in: path
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
    responses:
      200:
        description: Tool result
      404:
        description: Unknown tool
      503:
        description: Foundry VTT not connected
    """
    try:
        server = get_creature_server()
    except Exception as e:
        return error_response(e)
    if server.get_tool(name) is None:
        return jsonify({"error": f"Unknown tool: {name}"}), 404
    result = server.call_tool(name, request.get_json(silent=True) or {})
    return jsonify(result.model_dump())


# =============================================================================
# System Endpoints
# =============================================================================


@app.route("/api/health", methods=["GET"])
def health_check():
    """
    Health check endpoint
    ---
    tags:
      - System
    responses:
      200:
        description: Service status
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            service:
              type: string
              example: creature-index
            version:
              type: string
            auth_enabled:
              type: boolean
            content_host:
              type: string
            foundry_connected:
              type: boolean
            index_ready:
              type: boolean
    """
    return jsonify(
        {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "auth_enabled": AUTH_ENABLED,
            "content_host": CONTENT_HOST,
            "foundry_connected": bool(foundry_bridge and foundry_bridge.is_connected()),
            "index_ready": query_engine is not None,
        }
    )


# =============================================================================
# Application Factory
# =============================================================================


def create_app():
    """Application factory for uWSGI/Gunicorn."""
    return app


if __name__ == "__main__":
    logger.info(f"Starting creature index API ({CONTENT_HOST} content host)")
    socketio.run(app, debug=True, host="0.0.0.0", port=5000)
