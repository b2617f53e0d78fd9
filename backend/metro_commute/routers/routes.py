"""Route planning API router"""

import asyncio
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from metro_commute.db.route_store import SpatialStore
from metro_commute.exceptions import InvalidCoordinatesError, SpatialStoreError
from metro_commute.models.schemas import (
    CommuteGuideRequest,
    CommuteGuideResponse,
    ErrorResponse,
    RouteDetail,
    RouteDetailResponse,
    RouteListResponse,
)
from metro_commute.services.planner import CommutePlanner, validate_coordinates

router = APIRouter(prefix="/api/routes")
logger = logging.getLogger(__name__)

# Client disconnect polling interval (seconds)
DISCONNECT_POLL_SECONDS = 0.5

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


def get_planner(request: Request) -> CommutePlanner:
    return request.app.state.planner


def get_store(request: Request) -> SpatialStore:
    return request.app.state.store


async def watch_disconnect(request: Request, cancel_event: asyncio.Event) -> None:
    """Set cancel_event once the client goes away"""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("Client disconnected, cancelling planning")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post("/commute/guide", response_model=CommuteGuideResponse, responses=ERROR_RESPONSES)
async def commute_guide(
    body: CommuteGuideRequest,
    request: Request,
    planner: CommutePlanner = Depends(get_planner),
):
    """
    Ranked multi-modal commute options between two points

    Args:
        body.source_lat / body.source_lon: origin
        body.dest_lat / body.dest_lon: destination
        body.discount: student / senior / PWD fare discount

    Returns:
        source, destination and at least three options, each with legs
        carrying GeoJSON LineString paths, distances (km), durations (s)
        and fares (PHP)
    """
    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event))

    try:
        source = validate_coordinates(body.source_lat, body.source_lon, "source")
        dest = validate_coordinates(body.dest_lat, body.dest_lon, "destination")

        plan = await planner.plan(source, dest, body.discount, cancel_event)
        return CommuteGuideResponse.from_plan(plan)

    except InvalidCoordinatesError as e:
        return error_response(400, str(e))
    except SpatialStoreError as e:
        logger.error(f"Spatial store error: {e}")
        return error_response(503, "Route database unavailable")
    except Exception as e:
        logger.exception(f"Commute guide error: {e}")
        return error_response(500, "Failed to generate commute guide")
    finally:
        watcher.cancel()
        await asyncio.gather(watcher, return_exceptions=True)


@router.get("", response_model=RouteListResponse, responses=ERROR_RESPONSES)
async def list_routes(store: SpatialStore = Depends(get_store)):
    """Distinct route names, sorted"""
    try:
        async with store.session() as session:
            names = await session.list_route_names()
        return RouteListResponse(count=len(names), routes=names)

    except SpatialStoreError as e:
        logger.error(f"Spatial store error: {e}")
        return error_response(503, "Route database unavailable")
    except Exception as e:
        logger.exception(f"Route list error: {e}")
        return error_response(500, "Failed to fetch routes")


@router.get("/{name}", response_model=RouteDetailResponse, responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse}})
async def get_route(name: str, store: SpatialStore = Depends(get_store)):
    """One route's properties and GeoJSON geometry"""
    try:
        async with store.session() as session:
            route = await session.get_route_by_name(name)

        if route is None:
            return error_response(404, "Route not found")

        return RouteDetailResponse(route=RouteDetail(**route))

    except SpatialStoreError as e:
        logger.error(f"Spatial store error: {e}")
        return error_response(503, "Route database unavailable")
    except Exception as e:
        logger.exception(f"Route lookup error: {e}")
        return error_response(500, "Failed to fetch route")
