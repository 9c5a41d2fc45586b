# uapi_air/response_models/availability_response.py
"""
Pydantic models for parsing AvailabilitySearchRsp responses.

Segments are listed once in ``air:AirSegmentList``; itinerary solutions
refer to them by key and mark with ``air:Connection SegmentIndex`` which
positions connect to the following segment. Consecutive connected segments
form one leg.

Each segment carries ``air:AirAvailInfo`` rows per provider. Only rows of
the requested provider are used; a leg with a segment lacking them is
dropped. Booking counts such as 'Y9|B4|MC' become one availability entry per
class, optionally limited to the requested cabins.
"""

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.response_models.common import RecordModel, to_int
from uapi_air.utils import DecodedNode, as_list, attr, get, index_by_key, node_text, ns, parse_timestamp

logger: logging.Logger = logging.getLogger(__name__)

BOOKING_COUNT_SEPARATOR: str = '|'


class ClassAvailability(RecordModel):
    """
    Seats available in one booking class.

    ``seats`` keeps the host's value: a digit count or a status letter
    ('A' available, 'C' closed, ...).
    """

    booking_class: str
    cabin: str | None = None
    seats: str


class AvailabilitySegment(RecordModel):
    from_: str = Field(..., alias='from')
    to: str
    departure: datetime | None = None
    arrival: datetime | None = None
    airline: str | None = None
    operating_airline: str | None = None
    flight_number: str | None = None
    plane: str | None = None
    duration: str | None = None
    group: int = 0
    uapi_segment_ref: str
    availability: list[ClassAvailability] = Field(default_factory=list)


def parse_booking_counts(counts: str | None, cabin: str | None) -> list[ClassAvailability]:
    """
    Split a BookingCounts attribute into per-class entries.

    Example:
        >>> parse_booking_counts('Y9|B4', 'Economy')[1].seats
        '4'
    """
    entries: list[ClassAvailability] = []
    for item in (counts or '').split(BOOKING_COUNT_SEPARATOR):
        item = item.strip()
        if len(item) < 2:
            continue
        entries.append(ClassAvailability(booking_class=item[0], cabin=cabin, seats=item[1:]))
    return entries


def _provider_avail_info(node: DecodedNode, provider: str) -> DecodedNode | None:
    for info in as_list(get(node, 'air:AirAvailInfo')):
        if attr(info, 'ProviderCode') == provider:
            return info
    return None


def parse_availability_segment(node: DecodedNode, context: RequestContext) -> AvailabilitySegment | None:
    """
    Build an AvailabilitySegment, or return None when the segment has no
    availability for ``context.provider``.
    """
    info: DecodedNode | None = _provider_avail_info(node, context.provider)
    if info is None:
        return None

    availability: list[ClassAvailability] = []
    for code_info in as_list(get(info, 'air:BookingCodeInfo')):
        cabin: str | None = attr(code_info, 'CabinClass')
        if context.cabins and cabin not in context.cabins:
            continue
        availability.extend(parse_booking_counts(attr(code_info, 'BookingCounts'), cabin))

    return AvailabilitySegment(
        from_=attr(node, 'Origin') or '',
        to=attr(node, 'Destination') or '',
        departure=parse_timestamp(attr(node, 'DepartureTime')),
        arrival=parse_timestamp(attr(node, 'ArrivalTime')),
        airline=attr(node, 'Carrier'),
        operating_airline=attr(get(node, 'air:CodeshareInfo'), 'OperatingCarrier') or attr(node, 'Carrier'),
        flight_number=attr(node, 'FlightNumber'),
        plane=attr(node, 'Equipment'),
        duration=attr(node, 'FlightTime'),
        group=to_int(attr(node, 'Group'), 0) or 0,
        uapi_segment_ref=attr(node, 'Key') or '',
        availability=availability,
    )


def _solution_legs(solution: DecodedNode, segment_keys: list[str]) -> list[list[str]]:
    refs: list[str] = [
        attr(ref, 'Key') or '' for ref in as_list(get(solution, 'air:AirSegmentRef'))
    ] or segment_keys
    connections: set[int] = {
        index
        for connection in as_list(get(solution, 'air:Connection'))
        if (index := to_int(attr(connection, 'SegmentIndex'))) is not None
    }
    legs: list[list[str]] = []
    current: list[str] = []
    for position, ref in enumerate(refs):
        current.append(ref)
        if position not in connections:
            legs.append(current)
            current = []
    if current:
        legs.append(current)
    return legs


def _next_result_reference(body: DecodedNode, context: RequestContext) -> str | None:
    """
    Pagination token for ``context.provider``. One reference is returned per
    provider; when none matches, the first one is used.
    """
    references: list[Any] = as_list(get(body, ns(context.uapi_version, 'common', 'NextResultReference')))
    if not references:
        return None
    chosen: Any = next(
        (ref for ref in references if attr(ref, 'ProviderCode') == context.provider),
        references[0],
    )
    return node_text(chosen) or None


class AvailabilityResponse(BaseModel):
    """
    Response model for AvailabilitySearchRsp.

    Attributes:
        legs: Lists of connecting segments, in response order.
        next_result_reference: Continuation token for the next page, or None
                               when the server has no further results.
    """

    legs: list[list[AvailabilitySegment]] = Field(default_factory=list)
    next_result_reference: str | None = None

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'AvailabilityResponse':
        segment_nodes: list[DecodedNode] = as_list(get(body, 'air:AirSegmentList/air:AirSegment'))
        segments_by_key: dict[str, DecodedNode] = index_by_key(segment_nodes)
        solutions: list[DecodedNode] = as_list(get(body, 'air:AirItinerarySolution'))
        segment_keys: list[str] = list(segments_by_key)

        key_legs: list[list[str]] = []
        if solutions:
            for solution in solutions:
                key_legs.extend(_solution_legs(solution, segment_keys))
        else:
            key_legs = [[key] for key in segment_keys]

        legs: list[list[AvailabilitySegment]] = []
        for keys in key_legs:
            segments: list[AvailabilitySegment | None] = [
                parse_availability_segment(segments_by_key[key], context) if key in segments_by_key else None
                for key in keys
            ]
            if not segments or any(segment is None for segment in segments):
                logger.debug(f'Skipping leg {keys} without {context.provider} availability')
                continue
            legs.append([segment for segment in segments if segment is not None])

        next_reference: str | None = _next_result_reference(body, context)
        logger.info(f'Parsed {len(legs)} availability legs, more results: {next_reference is not None}')
        return cls(legs=legs, next_result_reference=next_reference or None)

    @property
    def has_more(self) -> bool:
        return self.next_result_reference is not None
