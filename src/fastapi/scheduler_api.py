from datetime import date, datetime
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables from .env file
load_dotenv()

from src.flight_scheduler.application import FlightScheduler
from src.flight_scheduler.config import SchedulerConfig, configure_logging
from src.flight_scheduler.exceptions import (
    ConcurrentModificationError,
    ConnectionTimingError,
    DuplicateFlightError,
    FlightNotFoundError,
    ImmutableAfterDepartureError,
    InvalidReferenceError,
    InvalidRequestError,
    NotConnectingFlightError,
    RouteContinuityError,
    RouteCreationError,
    SchedulerError,
)
from src.flight_scheduler.schemas.flight import FlightStatus, FlightType
from src.flight_scheduler.schemas.requests import (
    AirportSegment,
    ConnectingFlightRequest,
    CreationMode,
    FlightSegmentRequest,
    RouteResolutionRequest,
    resolve_flight_time,
)

config = SchedulerConfig.from_env()
configure_logging(config.log_level)
scheduler = FlightScheduler(config)

app = FastAPI(title="Flight Scheduler API")

# First match wins; subclasses before their bases
ERROR_STATUS_CODES = (
    (InvalidRequestError, 400),
    (RouteContinuityError, 400),
    (ConnectionTimingError, 400),
    (InvalidReferenceError, 400),
    (FlightNotFoundError, 404),
    (DuplicateFlightError, 409),
    (ImmutableAfterDepartureError, 409),
    (ConcurrentModificationError, 409),
    (NotConnectingFlightError, 409),
    (RouteCreationError, 502),
)


def status_code_for(exc: SchedulerError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(SchedulerError)
async def scheduler_error_handler(request: Request, exc: SchedulerError):
    return JSONResponse(
        status_code=status_code_for(exc),
        content={
            "error": type(exc).__name__,
            "detail": str(exc),
            "index": getattr(exc, "index", None),
        },
    )


# --- Pydantic Schemas (The JSON Contract) ---


class AirportSegmentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    segment_order: int
    origin_airport_id: int
    destination_airport_id: int
    connection_time_minutes: Optional[int] = None


class RouteResolutionBody(BaseModel):
    creation_mode: Optional[CreationMode] = None
    route_id: Optional[int] = None
    origin_airport_id: Optional[int] = None
    destination_airport_id: Optional[int] = None
    airport_segments: List[AirportSegmentSchema] = Field(default_factory=list)
    flight_number: Optional[str] = None


class RoutePreviewBody(BaseModel):
    segments: List[AirportSegmentSchema]


class LegPreviewSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    segment_order: int
    origin_airport_code: str
    destination_airport_code: str
    distance_km: int
    estimated_minutes: int


class RoutePreviewSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    legs: List[LegPreviewSchema]
    total_distance_km: int
    total_minutes: int  # Includes planned connection times
    kind: str
    route_cities: List[str]  # Captures @property


class FlightSegmentBody(BaseModel):
    segment_number: int
    origin_airport_id: int
    destination_airport_id: int
    # 'HH:mm' (combined with flight_date) or a full datetime string
    scheduled_departure: str
    scheduled_arrival: str
    route_id: Optional[int] = None
    gate_number: Optional[str] = None
    notes: Optional[str] = None


class ConnectingFlightBody(BaseModel):
    main_flight_number: str
    airline_id: int
    aircraft_id: int
    type: FlightType = FlightType.PASSENGER
    flight_date: Optional[date] = None
    segments: List[FlightSegmentBody]
    passenger_count: Optional[int] = None
    cargo_weight: Optional[int] = None
    notes: Optional[str] = None
    active: bool = True


class SegmentStatusBody(BaseModel):
    status: FlightStatus
    actual_departure: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None


class FlightSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)  # Allows reading from dataclasses

    id: int
    flight_number: str
    airline_id: int
    aircraft_id: int
    route_id: Optional[int] = None
    flight_date: date
    scheduled_departure: datetime
    scheduled_arrival: datetime
    status: FlightStatus
    type: FlightType
    actual_departure: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    passenger_count: Optional[int] = None
    cargo_weight: Optional[int] = None
    gate_number: Optional[str] = None
    parent_flight_id: Optional[int] = None
    segment_number: int
    is_connecting_flight: bool
    version: int


class FlightConnectionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    segment_flight_id: int
    segment_order: int
    connection_time_minutes: Optional[int] = None


class ItinerarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    main_flight_id: int  # Captures @property
    main_flight: FlightSchema
    segments: List[FlightSchema]
    connections: List[FlightConnectionSchema]
    total_segments: int  # Captures @property
    total_connection_minutes: int  # Captures @property
    full_route: str  # Captures @property


class ConnectionDetailSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    segment_order: int
    segment_flight_id: int
    segment_flight_number: Optional[str] = None
    connection_time_minutes: Optional[int] = None
    origin_airport_code: Optional[str] = None
    destination_airport_code: Optional[str] = None


# --- Body conversion ---


def to_connecting_flight_request(body: ConnectingFlightBody) -> ConnectingFlightRequest:
    """Resolve schedule strings against flight_date and build the domain request."""
    segments = []
    for leg in body.segments:
        try:
            departure = resolve_flight_time(body.flight_date, leg.scheduled_departure)
            arrival = resolve_flight_time(body.flight_date, leg.scheduled_arrival)
        except ValueError as e:
            raise InvalidRequestError(str(e), index=leg.segment_number) from e
        if departure is None or arrival is None:
            raise InvalidRequestError(
                f"Segment {leg.segment_number} needs scheduled departure and arrival",
                index=leg.segment_number,
            )
        segments.append(
            FlightSegmentRequest(
                segment_number=leg.segment_number,
                origin_airport_id=leg.origin_airport_id,
                destination_airport_id=leg.destination_airport_id,
                scheduled_departure=departure,
                scheduled_arrival=arrival,
                route_id=leg.route_id,
                gate_number=leg.gate_number,
                notes=leg.notes,
            )
        )

    return ConnectingFlightRequest(
        main_flight_number=body.main_flight_number,
        airline_id=body.airline_id,
        aircraft_id=body.aircraft_id,
        type=body.type,
        segments=tuple(segments),
        passenger_count=body.passenger_count,
        cargo_weight=body.cargo_weight,
        notes=body.notes,
        active=body.active,
    )


def to_airport_segments(segments: List[AirportSegmentSchema]) -> List[AirportSegment]:
    return [AirportSegment(**s.model_dump()) for s in segments]


# --- API Endpoints ---


@app.post("/api/v1/routes/resolve")
def resolve_route(body: RouteResolutionBody):
    request = RouteResolutionRequest(
        creation_mode=body.creation_mode,
        route_id=body.route_id,
        origin_airport_id=body.origin_airport_id,
        destination_airport_id=body.destination_airport_id,
        airport_segments=tuple(to_airport_segments(body.airport_segments)),
        flight_number=body.flight_number,
    )
    return {"route_id": scheduler.resolve_route(request)}


@app.post("/api/v1/routes/preview", response_model=RoutePreviewSchema)
def preview_route(body: RoutePreviewBody):
    preview = scheduler.preview_chain_route(to_airport_segments(body.segments))
    return RoutePreviewSchema(
        legs=[LegPreviewSchema.model_validate(leg) for leg in preview.legs],
        total_distance_km=preview.total_distance_km,
        total_minutes=preview.total_minutes,
        kind=preview.kind.value,
        route_cities=preview.route_cities,
    )


@app.post("/api/v1/connecting-flights", response_model=ItinerarySchema, status_code=201)
def create_connecting_flight(body: ConnectingFlightBody):
    return ItinerarySchema.model_validate(
        scheduler.create_itinerary(to_connecting_flight_request(body))
    )


@app.get("/api/v1/connecting-flights", response_model=List[ItinerarySchema])
def list_connecting_flights(airline_id: Optional[int] = None, flight_date: Optional[date] = None):
    itineraries = scheduler.list_itineraries(airline_id=airline_id, flight_date=flight_date)
    return [ItinerarySchema.model_validate(i) for i in itineraries]


@app.get("/api/v1/connecting-flights/{main_flight_id}", response_model=ItinerarySchema)
def get_connecting_flight(main_flight_id: int):
    return ItinerarySchema.model_validate(scheduler.get_itinerary(main_flight_id))


@app.put("/api/v1/connecting-flights/{main_flight_id}", response_model=ItinerarySchema)
def update_connecting_flight(main_flight_id: int, body: ConnectingFlightBody):
    itinerary = scheduler.update_itinerary(main_flight_id, to_connecting_flight_request(body))
    return ItinerarySchema.model_validate(itinerary)


@app.delete("/api/v1/connecting-flights/{main_flight_id}", status_code=204)
def delete_connecting_flight(main_flight_id: int):
    scheduler.delete_itinerary(main_flight_id)
    return Response(status_code=204)


@app.post("/api/v1/connecting-flights/{main_flight_id}/recompute-status")
def recompute_status(main_flight_id: int):
    status = scheduler.recompute_itinerary_status(main_flight_id)
    return {"main_flight_id": main_flight_id, "status": status.value}


@app.get(
    "/api/v1/connecting-flights/{main_flight_id}/connections",
    response_model=List[ConnectionDetailSchema],
)
def get_connections(main_flight_id: int):
    details = scheduler.get_connection_details(main_flight_id)
    return [ConnectionDetailSchema.model_validate(d) for d in details]


@app.patch("/api/v1/flights/{segment_flight_id}/status")
def update_segment_status(segment_flight_id: int, body: SegmentStatusBody):
    main_status = scheduler.update_segment_status(
        segment_flight_id,
        body.status,
        actual_departure=body.actual_departure,
        actual_arrival=body.actual_arrival,
    )
    return {"segment_flight_id": segment_flight_id, "main_status": main_status.value}
