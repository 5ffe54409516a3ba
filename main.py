"""
Airspace Admission - FastAPI Backend
Serves flight submission, lifecycle management and zone queries
"""

import logging
import time
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from admission import AirspaceService
from exceptions import DuplicateFlightError, FlightNotFoundError, InvalidFlightRequestError, InvalidStatusTransitionError
from models import (
    FlightPlan, FlightRequest, FlightStatus, GeoPoint, PathValidation, PointCheck,
    SubmitFlightResponse, TimeWindow, Waypoint
)
import config

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ============================================================================
# FASTAPI SETUP
# ============================================================================

app = FastAPI(
    title="Airspace Admission API",
    description="Admission of drone flights into shared, geofenced airspace",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# SERVICE STATE
# ============================================================================

service = AirspaceService(config.load_airspace_config())


class PathValidationRequest(BaseModel):
    waypoints: List[Waypoint]
    max_altitude: float = Field(config.MAX_ALTITUDE_AGL, ge=0)


# ============================================================================
# WEBSOCKET MANAGER
# ============================================================================

class ConnectionManager:
    """Manages WebSocket connections for flight event updates"""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)

    async def broadcast(self, message: dict):
        """Send message to all connected clients, dropping dead ones"""
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.warning(f"Dropping websocket client: {e}")
                self.disconnect(connection)

manager = ConnectionManager()

# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.get("/api/health")
async def health_check():
    """System health check"""
    return {
        "status": "operational",
        "timestamp": time.time(),
        "border_mode": service.border.mode,
        "registered_flights": len(service.registry)
    }

@app.post("/api/flights", response_model=SubmitFlightResponse, status_code=201)
async def submit_flight(request: FlightRequest):
    """
    Submit a flight for admission
    Rejected flights are still recorded and returned with their report
    """
    result = service.submit_flight(request)

    await manager.broadcast({
        'type': 'flight_submitted',
        'flight': result.model_dump(mode='json')
    })

    return result

@app.get("/api/flights", response_model=List[FlightPlan])
async def list_flights(status: Optional[FlightStatus] = None):
    """List flights, newest first"""
    return service.list_flights(status)

@app.get("/api/flights/active", response_model=List[FlightPlan])
async def list_active_flights(start: datetime, end: datetime):
    """Live flights (pending, approved, active) overlapping [start, end)"""
    try:
        window = TimeWindow(start=start, end=end)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return service.list_active_conflict_candidates(window)

@app.get("/api/flights/{flight_id}", response_model=FlightPlan)
async def get_flight(flight_id: str):
    try:
        return service.get_flight(flight_id)
    except FlightNotFoundError:
        raise HTTPException(404, "Flight not found")

@app.post("/api/flights/{flight_id}/approve", response_model=FlightPlan)
async def approve_flight(flight_id: str):
    """Authority approval: pending -> approved"""
    try:
        flight = service.approve_flight(flight_id)
    except FlightNotFoundError:
        raise HTTPException(404, "Flight not found")
    except InvalidStatusTransitionError as e:
        raise HTTPException(409, str(e))

    await manager.broadcast({
        'type': 'flight_approved',
        'flight_id': flight_id
    })

    return flight

@app.delete("/api/flights/{flight_id}")
async def cancel_flight(flight_id: str):
    """Cancel a flight that has not completed"""
    if not service.cancel_flight(flight_id):
        raise HTTPException(404, "No cancellable flight with this id")

    await manager.broadcast({
        'type': 'flight_cancelled',
        'flight_id': flight_id
    })

    return {"status": "cancelled", "flight_id": flight_id}

@app.post("/api/maintenance/tick")
async def maintenance_tick():
    """Advance flight statuses by wall-clock time"""
    transitioned = service.tick()

    if transitioned:
        await manager.broadcast({
            'type': 'tick',
            'transitioned': transitioned
        })

    return {"transitioned": transitioned}

@app.get("/api/zones")
async def get_zones():
    """Border, restricted zones and airports for visualization"""
    return {
        'border_mode': service.border.mode,
        'border': service.border.polygon,
        'bounds': service.border.bounds,
        **service.zones.get_geofence_info(),
        'regulations': service.airspace.limits.model_dump(mode='json')
    }

@app.get("/api/zones/check-point", response_model=PointCheck)
async def check_point(lat: float = Query(..., ge=-90, le=90),
                      lng: float = Query(..., ge=-180, le=180),
                      altitude: float = Query(0.0, ge=0)):
    """Border membership, zone classification and nearest airport for a point"""
    return service.validator.check_point(GeoPoint(latitude=lat, longitude=lng), altitude)

@app.post("/api/zones/validate-path", response_model=PathValidation)
async def validate_path(request: PathValidationRequest):
    """Check a waypoint path against the border and zones without submitting it"""
    try:
        return service.validator.validate_path(request.waypoints, request.max_altitude)
    except InvalidFlightRequestError as e:
        raise HTTPException(422, str(e))

@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket for flight event updates"""
    await manager.connect(websocket)

    try:
        # Send initial state
        await websocket.send_json({
            'type': 'initial_state',
            'flights': [f.model_dump(mode='json') for f in service.list_flights()],
            'geofencing': service.zones.get_geofence_info()
        })

        while True:
            # Keep connection alive
            data = await websocket.receive_text()

            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        manager.disconnect(websocket)

# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(DuplicateFlightError)
async def duplicate_flight_handler(request, exc: DuplicateFlightError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})

# ============================================================================
# LIFECYCLE EVENTS
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Log the loaded airspace"""
    logger.info("Airspace Admission starting...")
    logger.info(f"Border mode: {service.border.mode}")
    logger.info(f"Restricted zones: {len(service.zones.zones)}")
    logger.info(f"Airports: {len(service.zones.airports)}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Airspace Admission shutting down...")

# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
