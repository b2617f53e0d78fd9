"""Pydantic schemas for the HTTP API"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional

from metro_commute.models.types import CommuteOption, CommutePlan, Leg, Point


class CommuteGuideRequest(BaseModel):
    """Commute guide request"""
    source_lat: float = Field(..., description="Source latitude")
    source_lon: float = Field(..., description="Source longitude")
    dest_lat: float = Field(..., description="Destination latitude")
    dest_lon: float = Field(..., description="Destination longitude")
    # Student / senior / PWD fare discount
    discount: bool = Field(
        default=False,
        description="Apply the 20% passenger discount to transit fares"
    )


class PointModel(BaseModel):
    lat: float
    lon: float

    @classmethod
    def from_point(cls, point: Point) -> "PointModel":
        return cls(lat=point.lat, lon=point.lon)


class LineStringModel(BaseModel):
    """GeoJSON LineString ([lon, lat] pairs)"""
    type: str = "LineString"
    coordinates: list[list[float]]


class LegModel(BaseModel):
    """One leg of a commute option"""
    type: str = Field(description="walking, transit or driving")
    mode: str
    name: str
    ref: Optional[str] = None
    distance: float = Field(description="km")
    duration: Optional[float] = Field(default=None, description="seconds")
    fare: int = Field(default=0, description="PHP")
    path: LineStringModel

    @classmethod
    def from_leg(cls, leg: Leg) -> "LegModel":
        return cls(
            type=leg.type.value,
            mode=leg.mode,
            name=leg.name,
            ref=leg.ref,
            distance=leg.distance,
            duration=leg.duration,
            fare=leg.fare,
            path=LineStringModel(coordinates=[[lon, lat] for lon, lat in leg.path]),
        )


class CommuteOptionModel(BaseModel):
    """Complete journey; totals are serialized camelCase"""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    total_distance: float = Field(alias="totalDistance", description="km")
    total_fare: int = Field(alias="totalFare", description="PHP")
    duration: Optional[float] = Field(default=None, description="seconds")
    legs: list[LegModel]

    @classmethod
    def from_option(cls, option: CommuteOption) -> "CommuteOptionModel":
        return cls(
            type=option.type,
            total_distance=option.total_distance,
            total_fare=option.total_fare,
            duration=option.duration,
            legs=[LegModel.from_leg(leg) for leg in option.legs],
        )


class CommuteGuideResponse(BaseModel):
    """Commute guide response"""
    success: bool = True
    source: PointModel
    destination: PointModel
    options: list[CommuteOptionModel]

    @classmethod
    def from_plan(cls, plan: CommutePlan) -> "CommuteGuideResponse":
        return cls(
            source=PointModel.from_point(plan.source),
            destination=PointModel.from_point(plan.destination),
            options=[CommuteOptionModel.from_option(o) for o in plan.options],
        )


class RouteListResponse(BaseModel):
    success: bool = True
    count: int
    routes: list[str]


class RouteDetail(BaseModel):
    properties: dict[str, Any] = Field(default_factory=dict)
    geometry: dict[str, Any]


class RouteDetailResponse(BaseModel):
    success: bool = True
    route: RouteDetail


class ErrorResponse(BaseModel):
    """Error body for every failed request"""
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
    services: dict[str, str]
