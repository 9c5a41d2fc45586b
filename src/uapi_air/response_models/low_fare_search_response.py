# uapi_air/response_models/low_fare_search_response.py
"""
Pydantic models for parsing LowFareSearchRsp responses.

A low fare search answer is a set of reference lists (segments, fare infos,
flight details) plus one ``air:AirPricePoint`` per priced itinerary. Each
price point becomes one FareProposal:

    proposal
      directions   one per ``air:FlightOption`` (outbound, return, ...)
        legs       one per ``air:Option`` (alternative routings)
          segments resolved from ``air:BookingInfo`` SegmentRef

Proposals keep the order of the price points in the response.
"""

import logging
from decimal import Decimal
from typing import Any

import pandas as pd
from pydantic import BaseModel, Field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.response_models.common import RecordModel, Segment, build_segment
from uapi_air.utils import (
    DecodedNode,
    as_list,
    attr,
    first,
    get,
    index_by_key,
    parse_money,
    require,
    sum_money,
)

logger: logging.Logger = logging.getLogger(__name__)


# --- Module-level constants ---

# Reference lists every search response must carry
MANDATORY_LISTS: tuple[str, ...] = (
    'air:AirSegmentList',
    'air:FareInfoList',
    'air:FlightDetailsList',
    'air:AirPricePointList',
)

# Columns of the flattened proposal table
PROPOSAL_COLUMNS: list[str] = [
    'proposal_index',
    'total_price',
    'base_price',
    'taxes',
    'plating_carrier',
    'direction_index',
    'leg_index',
    'route',
    'flights',
    'departure',
    'arrival',
    'segment_count',
]


class Leg(RecordModel):
    """One routing option of a direction."""

    from_: str = Field(..., alias='from')
    to: str
    plating_carrier: str | None = None
    segments: list[Segment]


class PassengerFare(RecordModel):
    total_price: str | None = None
    base_price: str | None = None
    taxes: str | None = None


class BookingComponent(RecordModel):
    total_price: str | None = None
    base_price: str | None = None
    taxes: str | None = None
    uapi_fare_reference: str


class FareProposal(RecordModel):
    """
    One priced itinerary.

    Attributes:
        directions: Directions of travel, each a list of alternative legs.
        booking_components: Price split by fare reference.
        passenger_fares: Per-passenger price by passenger type code.
        passenger_counts: Number of passengers per type code.
    """

    total_price: str | None = None
    base_price: str | None = None
    taxes: str | None = None
    plating_carrier: str | None = None
    directions: list[list[Leg]]
    booking_components: list[BookingComponent]
    passenger_fares: dict[str, PassengerFare]
    passenger_counts: dict[str, int]

    def __repr__(self) -> str:
        return f'FareProposal(total={self.total_price}, directions={len(self.directions)})'


def _passenger_counts(pricing_infos: list[DecodedNode]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for info in pricing_infos:
        for passenger in as_list(get(info, 'air:PassengerType')):
            code: str | None = attr(passenger, 'Code')
            if code:
                counts[code] = counts.get(code, 0) + 1
    return counts


def _pricing_info_ptc(info: DecodedNode) -> str | None:
    return attr(first(get(info, 'air:PassengerType')), 'Code')


def _total_from_pricing_infos(pricing_infos: list[DecodedNode], field: str) -> str | None:
    """Sum a per-passenger amount over pricing infos, weighted by passenger count."""
    values: list[str | None] = [attr(info, field) for info in pricing_infos]
    counts: list[int] = [max(len(as_list(get(info, 'air:PassengerType'))), 1) for info in pricing_infos]
    return sum_money(values, counts)


def _parse_legs(
    flight_option: DecodedNode,
    plating_carrier: str | None,
    segments_by_key: dict[str, DecodedNode],
    fare_infos_by_key: dict[str, DecodedNode],
    details_by_key: dict[str, DecodedNode],
    group: int,
) -> list[Leg]:
    legs: list[Leg] = []
    for option in as_list(get(flight_option, 'air:Option')):
        segments: list[Segment] = []
        for booking_info in as_list(get(option, 'air:BookingInfo')):
            segment_node: DecodedNode | None = segments_by_key.get(attr(booking_info, 'SegmentRef') or '')
            if segment_node is None:
                logger.warning(f'Booking info refers to unknown segment {attr(booking_info, "SegmentRef")!r}')
                continue
            segment: Segment = build_segment(
                segment_node,
                details_by_key,
                booking_info=booking_info,
                fare_info=fare_infos_by_key.get(attr(booking_info, 'FareInfoRef') or ''),
            )
            if attr(segment_node, 'Group') is None:
                segment = segment.model_copy(update={'group': group})
            segments.append(segment)
        if not segments:
            continue
        legs.append(
            Leg(
                from_=attr(flight_option, 'Origin') or segments[0].from_,
                to=attr(flight_option, 'Destination') or segments[-1].to,
                plating_carrier=plating_carrier,
                segments=segments,
            )
        )
    return legs


def parse_price_point(
    price_point: DecodedNode,
    segments_by_key: dict[str, DecodedNode],
    fare_infos_by_key: dict[str, DecodedNode],
    details_by_key: dict[str, DecodedNode],
) -> FareProposal:
    """Build a FareProposal from one ``air:AirPricePoint`` node."""
    pricing_infos: list[DecodedNode] = as_list(get(price_point, 'air:AirPricingInfo'))
    lead: DecodedNode | None = first(pricing_infos)
    plating_carrier: str | None = attr(lead, 'PlatingCarrier')

    directions: list[list[Leg]] = []
    for group, flight_option in enumerate(as_list(get(lead, 'air:FlightOptionsList/air:FlightOption'))):
        legs: list[Leg] = _parse_legs(
            flight_option, plating_carrier, segments_by_key, fare_infos_by_key, details_by_key, group
        )
        if legs:
            directions.append(legs)

    passenger_fares: dict[str, PassengerFare] = {}
    for info in pricing_infos:
        ptc: str | None = _pricing_info_ptc(info)
        if ptc and ptc not in passenger_fares:
            passenger_fares[ptc] = PassengerFare(
                total_price=attr(info, 'TotalPrice'),
                base_price=attr(info, 'BasePrice') or attr(info, 'ApproximateBasePrice'),
                taxes=attr(info, 'Taxes'),
            )

    total_price: str | None = attr(price_point, 'TotalPrice') or _total_from_pricing_infos(
        pricing_infos, 'TotalPrice'
    )
    base_price: str | None = attr(price_point, 'BasePrice') or _total_from_pricing_infos(
        pricing_infos, 'BasePrice'
    )
    taxes: str | None = attr(price_point, 'Taxes') or _total_from_pricing_infos(pricing_infos, 'Taxes')

    return FareProposal(
        total_price=total_price,
        base_price=base_price,
        taxes=taxes,
        plating_carrier=plating_carrier,
        directions=directions,
        booking_components=[
            BookingComponent(
                total_price=total_price,
                base_price=base_price,
                taxes=taxes,
                uapi_fare_reference=attr(price_point, 'Key') or '',
            )
        ],
        passenger_fares=passenger_fares,
        passenger_counts=_passenger_counts(pricing_infos),
    )


class LowFareSearchResponse(BaseModel):
    """
    Response model for LowFareSearchRsp.

    Attributes:
        proposals: One FareProposal per price point, in response order.
    """

    proposals: list[FareProposal] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'LowFareSearchResponse':
        """
        Normalize a low fare search response body.

        Raises:
            AirError: RESPONSE_DATA_MISSING when any reference list is absent.
        """
        for path in MANDATORY_LISTS:
            require(body, path)

        segments_by_key: dict[str, DecodedNode] = index_by_key(get(body, 'air:AirSegmentList/air:AirSegment'))
        fare_infos_by_key: dict[str, DecodedNode] = index_by_key(get(body, 'air:FareInfoList/air:FareInfo'))
        details_by_key: dict[str, DecodedNode] = index_by_key(
            get(body, 'air:FlightDetailsList/air:FlightDetails')
        )

        proposals: list[FareProposal] = [
            parse_price_point(point, segments_by_key, fare_infos_by_key, details_by_key)
            for point in as_list(get(body, 'air:AirPricePointList/air:AirPricePoint'))
        ]
        logger.info(f'Parsed {len(proposals)} fare proposals from {len(segments_by_key)} segments')
        return cls(proposals=proposals)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Flatten proposals to one row per leg.

        Returns:
            DataFrame with PROPOSAL_COLUMNS; empty (with columns) when there
            are no proposals.
        """
        rows: list[dict[str, Any]] = []
        for proposal_index, proposal in enumerate(self.proposals):
            for direction_index, direction in enumerate(proposal.directions):
                for leg_index, leg in enumerate(direction):
                    rows.append(
                        {
                            'proposal_index': proposal_index,
                            'total_price': proposal.total_price,
                            'base_price': proposal.base_price,
                            'taxes': proposal.taxes,
                            'plating_carrier': proposal.plating_carrier,
                            'direction_index': direction_index,
                            'leg_index': leg_index,
                            'route': '-'.join([leg.segments[0].from_, *(s.to for s in leg.segments)]),
                            'flights': ' '.join(f'{s.airline}{s.flight_number}' for s in leg.segments),
                            'departure': leg.segments[0].departure,
                            'arrival': leg.segments[-1].arrival,
                            'segment_count': len(leg.segments),
                        }
                    )
        if not rows:
            return pd.DataFrame(columns=PROPOSAL_COLUMNS)
        return pd.DataFrame(rows, columns=PROPOSAL_COLUMNS)

    def cheapest(self) -> FareProposal | None:
        """Return the proposal with the lowest total price, or None."""
        priced: list[tuple[Decimal, int, FareProposal]] = []
        for position, proposal in enumerate(self.proposals):
            money: tuple[str, Decimal] | None = parse_money(proposal.total_price)
            if money is not None:
                priced.append((money[1], position, proposal))
        return min(priced, key=lambda item: (item[0], item[1]))[2] if priced else None

    @property
    def proposal_count(self) -> int:
        return len(self.proposals)
