"""Greedy stop ordering between a fixed start and end."""

from __future__ import annotations

from typing import Sequence

from ...models.domain import Coordinates, OptimizationResult, OptimizedLeg, StopInput
from ..geospatial import haversine_m

START_ID = "start"
END_ID = "end"


def nearest_neighbor(start: Coordinates, stops: Sequence[StopInput]) -> list[int]:
    """Indices into ``stops`` in visit order, always moving to the closest unvisited stop.

    Ties go to the lowest index.
    """
    remaining = list(range(len(stops)))
    order: list[int] = []
    current = start
    while remaining:
        best = min(remaining, key=lambda index: haversine_m(current, stops[index].location))
        remaining.remove(best)
        order.append(best)
        current = stops[best].location
    return order


def optimize_stop_order(start: Coordinates, end: Coordinates, stops: Sequence[StopInput]) -> OptimizationResult:
    order = nearest_neighbor(start, stops)

    legs: list[OptimizedLeg] = []
    previous, previous_id = start, START_ID
    for index in order:
        stop = stops[index]
        legs.append(OptimizedLeg(previous_id, stop.id, haversine_m(previous, stop.location)))
        previous, previous_id = stop.location, stop.id
    legs.append(OptimizedLeg(previous_id, END_ID, haversine_m(previous, end)))

    return OptimizationResult(
        sequence=(START_ID, *(stops[index].id for index in order), END_ID),
        legs=tuple(legs),
        total_distance_m=sum(leg.distance_m for leg in legs),
    )
