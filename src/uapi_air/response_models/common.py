# uapi_air/response_models/common.py
"""
Records and helpers shared by several uAPI response normalizers.

Segments, taxes, baggage allowances and fare-calculation fragments appear in
almost every air response with the same attribute names, so the code that
reads them lives here. Everything in this module is a pure function of the
decoded node it receives.
"""

import base64
import json
import logging
import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from uapi_air.utils import (
    DecodedNode,
    as_list,
    attr,
    get,
    hours_between,
    node_text,
    ns,
    parse_timestamp,
)

logger: logging.Logger = logging.getLogger(__name__)

# --- Module-level constants ---

ROE_PATTERN: re.Pattern[str] = re.compile(r'ROE\s*(\d+(?:\.\d+)?)')
FIRST_ORIGIN_PATTERN: re.Pattern[str] = re.compile(r'^\s*([A-Z]{3})\b')

# Weight units uAPI spells out on baggage allowances
BAGGAGE_PIECES: str = 'piece'


class RecordModel(BaseModel):
    """Base for immutable result records. Fields may be filled by name or alias."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Baggage(RecordModel):
    """Free baggage allowance: a count of pieces or a weight."""

    units: str
    amount: float


class TaxDetail(RecordModel):
    airport: str
    value: str


class TaxInfo(RecordModel):
    """
    One itemized tax.

    Attributes:
        type: Two-letter tax code (category), e.g. 'UA', 'XF'.
        value: Money string, e.g. 'UAH50'.
        details: Per-airport breakdown (only XF/ZP style taxes carry one).
    """

    type: str
    value: str
    details: list[TaxDetail] = Field(default_factory=list)


class FlightDetail(RecordModel):
    origin: str | None = None
    destination: str | None = None
    departure: datetime | None = None
    arrival: datetime | None = None
    flight_time: int | None = None
    equipment: str | None = None


class Segment(RecordModel):
    """
    A flight segment as it appears in search, pricing and booking results.

    ``uapi_segment_ref`` is the response-local key other nodes (booking
    infos, fare quotes, coupons) use to point at this segment.
    """

    from_: str = Field(..., alias='from')
    to: str
    departure: datetime | None = None
    arrival: datetime | None = None
    airline: str | None = None
    operating_airline: str | None = None
    flight_number: str | None = None
    service_class: str | None = None
    booking_class: str | None = None
    plane: list[str] = Field(default_factory=list)
    duration: list[int] = Field(default_factory=list)
    tech_stops: list[str] = Field(default_factory=list)
    details: list[FlightDetail] = Field(default_factory=list)
    baggage: list[Baggage] = Field(default_factory=list)
    fare_basis_code: str | None = None
    group: int = 0
    uapi_segment_ref: str | None = None

    def __repr__(self) -> str:
        return (
            f'Segment({self.from_}-{self.to}, '
            f'{self.airline}{self.flight_number}, '
            f'departure={self.departure})'
        )


# --- Scalar helpers ---


def to_int(value: str | None, default: int | None = None) -> int | None:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def to_float(value: str | None, default: float | None = None) -> float | None:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def to_bool(value: str | None, default: bool = False) -> bool:
    """uAPI booleans are 'true'/'false' strings."""
    if value is None:
        return default
    return value.strip().lower() == 'true'


def make_token(payload: Any) -> str:
    """
    Serialize ``payload`` into an opaque, deterministic token.

    The token is base64 of sorted-key JSON, so the same input always gives
    the same token.
    """
    raw: str = json.dumps(payload, sort_keys=True, separators=(',', ':'), default=str)
    return base64.b64encode(raw.encode('utf-8')).decode('ascii')


def read_token(token: str) -> Any:
    """Inverse of make_token()."""
    return json.loads(base64.b64decode(token.encode('ascii')).decode('utf-8'))


# --- Fare calculation ---


def split_fare_calc(fare_calc: str | None) -> tuple[str | None, str | None, str | None]:
    """
    Split a fare calculation line into (calculation, first_origin, roe).

    The calculation is the part before the 'END' marker; ROE and the first
    origin are read from the full line.

    Example:
        >>> split_fare_calc('IEV LO WAW 312.00 NUC312.00 END ROE1.0')
        ('IEV LO WAW 312.00 NUC312.00', 'IEV', '1.0')
    """
    if not fare_calc:
        return None, None, None
    calculation: str = re.split(r'\s+END\b', fare_calc, maxsplit=1)[0].strip()
    roe_match: re.Match[str] | None = ROE_PATTERN.search(fare_calc)
    origin_match: re.Match[str] | None = FIRST_ORIGIN_PATTERN.match(fare_calc)
    return (
        calculation,
        origin_match.group(1) if origin_match else None,
        roe_match.group(1) if roe_match else None,
    )


# --- Taxes and baggage ---


def parse_tax_infos(nodes: Any, version: str) -> list[TaxInfo]:
    """
    Read ``air:TaxInfo`` nodes, with their per-airport ``TaxDetail`` children.

    Nodes missing a category or amount are skipped.
    """
    taxes: list[TaxInfo] = []
    detail_key: str = ns(version, 'common', 'TaxDetail')
    for node in as_list(nodes):
        category: str | None = attr(node, 'Category')
        amount: str | None = attr(node, 'Amount')
        if category is None or amount is None:
            continue
        details: list[TaxDetail] = [
            TaxDetail(airport=attr(item, 'OriginAirport') or '', value=attr(item, 'Amount') or '')
            for item in as_list(get(node, detail_key))
            if attr(item, 'OriginAirport') and attr(item, 'Amount')
        ]
        taxes.append(TaxInfo(type=category, value=amount, details=details))
    return taxes


def parse_baggage(fare_info: Any) -> list[Baggage]:
    """
    Read the free baggage allowance of an ``air:FareInfo`` node.

    Returns:
        [] when no allowance is given; otherwise one entry, either
        ``{'units': 'piece', 'amount': n}`` or the weight and its unit.
    """
    allowance: Any = get(fare_info, 'air:BaggageAllowance')
    if allowance is None:
        return []
    pieces: float | None = to_float(node_text(get(allowance, 'air:NumberOfPieces')))
    if pieces is not None:
        return [Baggage(units=BAGGAGE_PIECES, amount=pieces)]
    weight: Any = get(allowance, 'air:MaxWeight')
    value: float | None = to_float(attr(weight, 'Value'))
    if value is not None:
        return [Baggage(units=(attr(weight, 'Unit') or 'kilograms').lower(), amount=value)]
    return []


# --- Segments ---


def parse_flight_details(nodes: Any) -> list[FlightDetail]:
    return [
        FlightDetail(
            origin=attr(node, 'Origin'),
            destination=attr(node, 'Destination'),
            departure=parse_timestamp(attr(node, 'DepartureTime')),
            arrival=parse_timestamp(attr(node, 'ArrivalTime')),
            flight_time=to_int(attr(node, 'FlightTime')),
            equipment=attr(node, 'Equipment'),
        )
        for node in as_list(nodes)
    ]


def segment_fields(
    node: DecodedNode,
    details_index: dict[str, DecodedNode] | None = None,
) -> dict[str, Any]:
    """
    Read the common attributes of an ``air:AirSegment`` node.

    Flight details are taken from the segment itself or, in search responses,
    from ``details_index`` via ``air:FlightDetailsRef``. Without details,
    equipment and flight time fall back to the segment's own attributes.

    Returns:
        Keyword arguments for Segment (or a subclass).
    """
    details_nodes: list[Any] = as_list(get(node, 'air:FlightDetails'))
    if not details_nodes and details_index:
        for ref in as_list(get(node, 'air:FlightDetailsRef')):
            key: str | None = attr(ref, 'Key')
            if key in details_index:
                details_nodes.append(details_index[key])

    details: list[FlightDetail] = parse_flight_details(details_nodes)

    planes: list[str] = [d.equipment for d in details if d.equipment]
    durations: list[int] = [d.flight_time for d in details if d.flight_time is not None]
    if not details:
        if attr(node, 'Equipment'):
            planes = [attr(node, 'Equipment') or '']
        flight_time: int | None = to_int(attr(node, 'FlightTime'))
        if flight_time is not None:
            durations = [flight_time]

    # Intermediate stops on the same flight number
    tech_stops: list[str] = [d.origin for d in details[1:] if d.origin]

    return {
        'from_': attr(node, 'Origin') or '',
        'to': attr(node, 'Destination') or '',
        'departure': parse_timestamp(attr(node, 'DepartureTime')),
        'arrival': parse_timestamp(attr(node, 'ArrivalTime')),
        'airline': attr(node, 'Carrier'),
        'operating_airline': attr(get(node, 'air:CodeshareInfo'), 'OperatingCarrier')
        or attr(node, 'Carrier'),
        'flight_number': attr(node, 'FlightNumber'),
        'service_class': attr(node, 'CabinClass'),
        'booking_class': attr(node, 'ClassOfService'),
        'plane': planes,
        'duration': durations,
        'tech_stops': tech_stops,
        'details': details,
        'group': to_int(attr(node, 'Group'), 0) or 0,
        'uapi_segment_ref': attr(node, 'Key'),
    }


def build_segment(
    node: DecodedNode,
    details_index: dict[str, DecodedNode] | None = None,
    booking_info: DecodedNode | None = None,
    fare_info: DecodedNode | None = None,
) -> Segment:
    """
    Build a Segment from an ``air:AirSegment`` node.

    Booking class and cabin come from ``booking_info`` when given (search and
    pricing responses price a segment in a class the segment node does not
    carry); baggage and fare basis come from ``fare_info``.
    """
    fields: dict[str, Any] = segment_fields(node, details_index)
    if booking_info is not None:
        fields['booking_class'] = attr(booking_info, 'BookingCode') or fields['booking_class']
        fields['service_class'] = attr(booking_info, 'CabinClass') or fields['service_class']
    if fare_info is not None:
        fields['fare_basis_code'] = attr(fare_info, 'FareBasis')
        fields['baggage'] = parse_baggage(fare_info)
    return Segment(**fields)


def segments_in_order(segments: Iterable[Segment]) -> list[Segment]:
    """Sort segments by group, then departure; undated segments keep their place."""
    return sorted(
        segments,
        key=lambda s: (s.group, s.departure.timestamp() if s.departure else 0.0),
    )


def group_directions(segments: list[Segment]) -> list[list[Segment]]:
    """Split an ordered segment list into directions by segment group."""
    directions: dict[int, list[Segment]] = {}
    for segment in segments:
        directions.setdefault(segment.group, []).append(segment)
    return [directions[group] for group in sorted(directions)]


# --- Stopovers ---


def compute_stopovers(
    legs: list[tuple[str | None, str | None, datetime | None, datetime | None]],
    threshold_hours: float,
) -> list[bool]:
    """
    Decide for each leg of a logical itinerary whether it ends in a stopover.

    Args:
        legs: Ordered (origin, destination, departure, arrival) tuples. The
              sequence must span every physical document of a conjunction
              ticket.
        threshold_hours: A connection longer than this is a stopover.

    Returns:
        One flag per leg. The last leg is always a stopover; a leg whose
        destination differs from the next origin (ARNK) is a stopover; a gap
        from this leg's arrival (its departure when arrival is unknown) to
        the next departure longer than the threshold is a stopover.

    Example:
        >>> compute_stopovers([('KBP', 'WAW', dep, None)], 24)
        [True]
    """
    flags: list[bool] = []
    for index, (_, destination, departure, arrival) in enumerate(legs):
        if index == len(legs) - 1:
            flags.append(True)
            continue
        next_origin, _, next_departure, _ = legs[index + 1]
        if destination and next_origin and destination != next_origin:
            flags.append(True)
            continue
        reference: datetime | None = arrival or departure
        if reference is not None and next_departure is not None:
            flags.append(hours_between(reference, next_departure) > threshold_hours)
        else:
            flags.append(False)
    return flags
