# uapi_air/response_models/price_response.py
"""
Pydantic models for parsing AirPriceRsp responses (price quote).

Only the first ``air:AirPricingSolution`` of the first price result is read.
Segments of the priced itinerary are grouped into directions by their
segment Group; each direction holds a single leg. The result carries an
opaque token identifying the priced solution so that a later booking or
re-pricing call can refer back to it.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from uapi_air.context import ContextPassenger, ParseOptions, RequestContext
from uapi_air.response_models.common import (
    RecordModel,
    Segment,
    TaxInfo,
    build_segment,
    group_directions,
    make_token,
    parse_tax_infos,
    segments_in_order,
)
from uapi_air.response_models.low_fare_search_response import BookingComponent, Leg, PassengerFare
from uapi_air.utils import DecodedNode, as_list, attr, first, get, index_by_key, node_text, require

logger: logging.Logger = logging.getLogger(__name__)

# Child passenger codes uAPI uses interchangeably
CHILD_CATEGORIES: frozenset[str] = frozenset({'CHD', 'CNN'})


class PricedPassenger(RecordModel):
    """A requested passenger with the pricing info that covers them."""

    age_category: str
    age: int | None = None
    first_name: str | None = None
    last_name: str | None = None
    uapi_pricing_info_ref: str | None = None


class PricedFare(PassengerFare):
    equivalent_base_price: str | None = None
    fare_calculation: str | None = None
    taxes_info: list[TaxInfo] = Field(default_factory=list)
    uapi_pricing_info_ref: str | None = None


class PriceQuote(BaseModel):
    """
    A priced itinerary.

    Attributes:
        directions: Directions by segment group, one leg each.
        passenger_fares: Price per passenger type code.
        passengers: Requested passengers matched to pricing infos.
        uapi_pricing_solution_ref: Key of the priced solution.
        pricing_token: Opaque, deterministic reference to the solution.
    """

    total_price: str | None = None
    base_price: str | None = None
    taxes: str | None = None
    equivalent_base_price: str | None = None
    plating_carrier: str | None = None
    directions: list[list[Leg]]
    booking_components: list[BookingComponent]
    passenger_fares: dict[str, PricedFare]
    passengers: list[PricedPassenger] = Field(default_factory=list)
    uapi_pricing_solution_ref: str | None = None
    pricing_token: str

    def __repr__(self) -> str:
        return f'PriceQuote(total={self.total_price}, directions={len(self.directions)})'


def _same_category(requested: str, priced: str | None) -> bool:
    if priced is None:
        return False
    if requested == priced:
        return True
    return requested in CHILD_CATEGORIES and priced in CHILD_CATEGORIES


def _match_passengers(
    passengers: list[ContextPassenger],
    pricing_infos: list[DecodedNode],
) -> list[PricedPassenger]:
    matched: list[PricedPassenger] = []
    for passenger in passengers:
        info: DecodedNode | None = next(
            (
                info
                for info in pricing_infos
                if any(
                    _same_category(passenger.age_category, attr(ptc, 'Code'))
                    for ptc in as_list(get(info, 'air:PassengerType'))
                )
            ),
            None,
        )
        if info is None:
            logger.warning(f'No pricing info for requested passenger category {passenger.age_category}')
        matched.append(
            PricedPassenger(
                age_category=passenger.age_category,
                age=passenger.age,
                first_name=passenger.first_name,
                last_name=passenger.last_name,
                uapi_pricing_info_ref=attr(info, 'Key'),
            )
        )
    return matched


def _booking_infos(pricing_infos: list[DecodedNode]) -> dict[str, DecodedNode]:
    # The lead pricing info decides booking class and fare per segment
    infos: dict[str, DecodedNode] = {}
    for info in pricing_infos:
        for booking_info in as_list(get(info, 'air:BookingInfo')):
            ref: str | None = attr(booking_info, 'SegmentRef')
            if ref and ref not in infos:
                infos[ref] = booking_info
    return infos


def parse_pricing_solution(
    solution: DecodedNode,
    segment_nodes: list[DecodedNode],
    context: RequestContext,
) -> PriceQuote:
    """Build a PriceQuote from an ``air:AirPricingSolution`` and its itinerary segments."""
    pricing_infos: list[DecodedNode] = as_list(get(solution, 'air:AirPricingInfo'))
    booking_infos: dict[str, DecodedNode] = _booking_infos(pricing_infos)
    fare_infos: dict[str, DecodedNode] = index_by_key(
        [fare for info in pricing_infos for fare in as_list(get(info, 'air:FareInfo'))]
    )

    segments: list[Segment] = []
    for node in segment_nodes:
        booking_info: DecodedNode | None = booking_infos.get(attr(node, 'Key') or '')
        segments.append(
            build_segment(
                node,
                booking_info=booking_info,
                fare_info=fare_infos.get(attr(booking_info, 'FareInfoRef') or ''),
            )
        )

    plating_carrier: str | None = attr(first(pricing_infos), 'PlatingCarrier')
    directions: list[list[Leg]] = [
        [Leg(from_=group[0].from_, to=group[-1].to, plating_carrier=plating_carrier, segments=group)]
        for group in group_directions(segments_in_order(segments))
    ]

    passenger_fares: dict[str, PricedFare] = {}
    for info in pricing_infos:
        ptc: str | None = attr(first(get(info, 'air:PassengerType')), 'Code')
        if ptc is None or ptc in passenger_fares:
            continue
        passenger_fares[ptc] = PricedFare(
            total_price=attr(info, 'TotalPrice'),
            base_price=attr(info, 'BasePrice'),
            taxes=attr(info, 'Taxes'),
            equivalent_base_price=attr(info, 'EquivalentBasePrice'),
            fare_calculation=node_text(get(info, 'air:FareCalc')),
            taxes_info=parse_tax_infos(get(info, 'air:TaxInfo'), context.uapi_version),
            uapi_pricing_info_ref=attr(info, 'Key'),
        )

    token_payload: dict[str, Any] = {
        'solution': attr(solution, 'Key'),
        'segments': [attr(node, 'Key') for node in segment_nodes],
        'pricing_infos': [attr(info, 'Key') for info in pricing_infos],
        'passengers': [p.age_category for p in context.passengers],
        'context': context.pricing_solution,
    }

    return PriceQuote(
        total_price=attr(solution, 'TotalPrice'),
        base_price=attr(solution, 'BasePrice'),
        taxes=attr(solution, 'Taxes'),
        equivalent_base_price=attr(solution, 'EquivalentBasePrice'),
        plating_carrier=plating_carrier,
        directions=directions,
        booking_components=[
            BookingComponent(
                total_price=attr(solution, 'TotalPrice'),
                base_price=attr(solution, 'BasePrice'),
                taxes=attr(solution, 'Taxes'),
                uapi_fare_reference=attr(solution, 'Key') or '',
            )
        ],
        passenger_fares=passenger_fares,
        passengers=_match_passengers(context.passengers, pricing_infos),
        uapi_pricing_solution_ref=attr(solution, 'Key'),
        pricing_token=make_token(token_payload),
    )


class AirPriceResponse(BaseModel):
    """Response model for AirPriceRsp."""

    quote: PriceQuote

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'AirPriceResponse':
        """
        Normalize a price response body.

        Raises:
            AirError: RESPONSE_DATA_MISSING without itinerary segments or a
                      pricing solution.
        """
        segment_nodes: list[DecodedNode] = as_list(require(body, 'air:AirItinerary/air:AirSegment'))
        price_result: Any = first(require(body, 'air:AirPriceResult'))
        solution: DecodedNode = first(require(price_result, 'air:AirPricingSolution'))
        quote: PriceQuote = parse_pricing_solution(solution, segment_nodes, context)
        logger.info(f'Parsed price quote {quote.uapi_pricing_solution_ref} with {len(segment_nodes)} segments')
        return cls(quote=quote)
