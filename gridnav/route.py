"""Greedy nearest-neighbour route ordering.

The optimizer takes waypoints in and hands a new ordering back; swapping in a
stronger heuristic only means replacing ``order_waypoints``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .geodesy import inverse
from .models import GeoPoint, Route, RouteMode, Waypoint, validate_point


@dataclass(frozen=True)
class Leg:
    from_point: GeoPoint
    to_point: GeoPoint
    distance_m: float
    bearing_deg: float


@dataclass
class RouteResult:
    route: Route
    start: GeoPoint
    total_distance: float
    legs: List[Leg]

    @property
    def waypoints(self) -> List[Waypoint]:
        return list(self.route.waypoints)


def order_waypoints(
    points: Sequence[Waypoint],
    start: GeoPoint,
    mode: RouteMode | str = RouteMode.PATH,
) -> List[Waypoint]:
    # Mode does not change the greedy order; it only affects the closing leg.
    RouteMode.parse(mode)
    validate_point(start)
    for waypoint in points:
        validate_point(waypoint.position)

    remaining = list(points)
    ordered: List[Waypoint] = []
    current = start

    while remaining:
        best_index = 0
        best_distance = inverse(current, remaining[0].position).distance_m
        for index in range(1, len(remaining)):
            distance = inverse(current, remaining[index].position).distance_m
            if distance < best_distance:
                best_index = index
                best_distance = distance
        chosen = remaining.pop(best_index)
        ordered.append(chosen)
        current = chosen.position

    return ordered


def route_legs(
    ordered: Sequence[Waypoint],
    start: GeoPoint,
    mode: RouteMode | str = RouteMode.PATH,
) -> List[Leg]:
    mode = RouteMode.parse(mode)
    validate_point(start)

    stops = [start] + [w.position for w in ordered]
    if mode is RouteMode.CIRCUIT and ordered:
        stops.append(start)

    legs: List[Leg] = []
    for a, b in zip(stops[:-1], stops[1:]):
        solution = inverse(a, b)
        legs.append(Leg(a, b, solution.distance_m, solution.initial_bearing_deg))
    return legs


def total_distance(
    ordered: Sequence[Waypoint],
    start: GeoPoint,
    mode: RouteMode | str = RouteMode.PATH,
) -> float:
    return sum(leg.distance_m for leg in route_legs(ordered, start, mode))


def optimize_route(
    points: Sequence[Waypoint],
    start: GeoPoint,
    mode: RouteMode | str = RouteMode.PATH,
) -> RouteResult:
    mode = RouteMode.parse(mode)
    ordered = order_waypoints(points, start, mode)
    legs = route_legs(ordered, start, mode)
    return RouteResult(
        route=Route(waypoints=tuple(ordered), closed=mode is RouteMode.CIRCUIT),
        start=start,
        total_distance=sum(leg.distance_m for leg in legs),
        legs=legs,
    )
