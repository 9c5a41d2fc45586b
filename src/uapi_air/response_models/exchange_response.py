# uapi_air/response_models/exchange_response.py
"""
Pydantic models for parsing AirExchangeQuoteRsp and AirExchangeRsp.

An exchange quote prices a new itinerary against already issued tickets.
The nested bundle structure of the response is flattened into:

- ``exchange_details``: one entry per ``air:AirExchangeBundle``, keyed by the
  pricing info it applies to, with its itemized taxes,
- ``exchange_total``: the ``air:AirExchangeBundleTotal`` amounts,
- ``pricing_info``: one entry per new pricing info with its booking infos,
- ``exchange_token``: the pricing solution serialized for the exchange call.
"""

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.errors import AirError, ErrorKind
from uapi_air.response_models.common import (
    Baggage,
    RecordModel,
    make_token,
    parse_baggage,
    segment_fields,
    split_fare_calc,
    to_bool,
    to_float,
)
from uapi_air.utils import DecodedNode, as_list, attr, first, get, index_by_key, merge_leaves, node_text, require

logger: logging.Logger = logging.getLogger(__name__)


class ExchangeTax(RecordModel):
    type: str
    value: str


class ExchangeDetail(RecordModel):
    """Amounts of one exchange bundle, keyed by the pricing info it covers."""

    add_collection: str | None = None
    change_fee: str | None = None
    exchange_amount: str | None = None
    refund: str | None = None
    taxes: list[ExchangeTax] = Field(default_factory=list)
    uapi_pricing_info_ref: str | None = None


class ExchangeTotal(RecordModel):
    add_collection: str | None = None
    change_fee: str | None = None
    exchange_amount: str | None = None
    refund: str | None = None
    pricing_tag: str | None = None


class PricingDetails(RecordModel):
    conversion_rate: float | None = None
    discount_applies: bool = False
    low_fare_found: bool = False
    low_fare_pricing: bool = False
    penalty_applies: bool = False
    pricing_type: str | None = None
    rate_of_exchange: float | None = None
    validating_vendor: str | None = None


class PricingSolutionAmounts(RecordModel):
    base_price: str | None = None
    equivalent_base_price: str | None = None
    taxes: str | None = None
    total_price: str | None = None


class ExchangeSegment(RecordModel):
    from_: str = Field(..., alias='from')
    to: str
    airline: str | None = None
    operating_airline: str | None = None
    departure: datetime | None = None
    arrival: datetime | None = None
    booking_class: str | None = None
    service_class: str | None = None
    flight_number: str | None = None
    group: int = 0
    uapi_segment_ref: str | None = None


class ExchangeBookingInfo(RecordModel):
    baggage: Baggage | None = None
    booking_code: str | None = None
    cabin_class: str | None = None
    fare_basis: str | None = None
    from_: str | None = Field(None, alias='from')
    to: str | None = None
    uapi_segment_ref: str | None = None


class ExchangePricingInfo(RecordModel):
    base_price: str | None = None
    booking_info: list[ExchangeBookingInfo] = Field(default_factory=list)
    equivalent_base_price: str | None = None
    fare_calculation: str | None = None
    first_origin: str | None = None
    roe: str | None = None
    taxes: str | None = None
    total_price: str | None = None
    uapi_pricing_info_ref: str | None = None


class ExchangeQuote(BaseModel):
    exchange_details: list[ExchangeDetail]
    exchange_total: ExchangeTotal | None = None
    pricing_details: PricingDetails | None = None
    pricing_solution: PricingSolutionAmounts
    segments: list[ExchangeSegment]
    pricing_info: list[ExchangePricingInfo]
    exchange_token: str


def _exchange_taxes(info: Any) -> list[ExchangeTax]:
    taxes: list[ExchangeTax] = []
    for tax in as_list(get(info, 'air:PaidTaxInfo')):
        code: str | None = attr(tax, 'TaxCode') or attr(tax, 'Category')
        amount: str | None = attr(tax, 'Amount')
        if code and amount:
            taxes.append(ExchangeTax(type=code, value=amount))
    for tax in as_list(get(info, 'air:TaxInfo')):
        category: str | None = attr(tax, 'Category')
        amount = attr(tax, 'Amount')
        if category and amount:
            taxes.append(ExchangeTax(type=category, value=amount))
    return taxes


def _refund(info: Any) -> str | None:
    return attr(info, 'RefundAmount') or attr(info, 'Refund')


def _parse_exchange_details(body: DecodedNode) -> list[ExchangeDetail]:
    details: list[ExchangeDetail] = []
    for bundle in as_list(get(body, 'air:AirExchangeBundle')):
        info: Any = get(bundle, 'air:AirExchangeInfo')
        details.append(
            ExchangeDetail(
                add_collection=attr(info, 'AddCollection'),
                change_fee=attr(info, 'ChangeFee'),
                exchange_amount=attr(info, 'ExchangeAmount'),
                refund=_refund(info),
                taxes=_exchange_taxes(info),
                uapi_pricing_info_ref=attr(get(bundle, 'air:AirPricingInfoRef'), 'Key'),
            )
        )
    return details


def _parse_exchange_total(body: DecodedNode) -> ExchangeTotal | None:
    info: Any = get(body, 'air:AirExchangeBundleTotal/air:AirExchangeInfo')
    if info is None:
        return None
    return ExchangeTotal(
        add_collection=attr(info, 'AddCollection'),
        change_fee=attr(info, 'ChangeFee'),
        exchange_amount=attr(info, 'ExchangeAmount'),
        refund=_refund(info),
        pricing_tag=attr(info, 'PricingTag'),
    )


def _parse_pricing_details(node: Any) -> PricingDetails | None:
    if node is None:
        return None
    return PricingDetails(
        conversion_rate=to_float(attr(node, 'ConversionRate')),
        discount_applies=to_bool(attr(node, 'DiscountApplies')),
        low_fare_found=to_bool(attr(node, 'LowFareFound')),
        low_fare_pricing=to_bool(attr(node, 'LowFarePricing')),
        penalty_applies=to_bool(attr(node, 'PenaltyApplies')),
        pricing_type=attr(node, 'PricingType'),
        rate_of_exchange=to_float(attr(node, 'RateOfExchange')),
        validating_vendor=attr(node, 'ValidatingVendorCode'),
    )


def _parse_pricing_info(info: DecodedNode) -> ExchangePricingInfo:
    fare_infos: dict[str, DecodedNode] = index_by_key(get(info, 'air:FareInfo'))
    booking_infos: list[ExchangeBookingInfo] = []
    for booking in as_list(get(info, 'air:BookingInfo')):
        fare: DecodedNode | None = fare_infos.get(attr(booking, 'FareInfoRef') or '')
        allowance: list[Baggage] = parse_baggage(fare)
        booking_infos.append(
            ExchangeBookingInfo(
                baggage=allowance[0] if allowance else None,
                booking_code=attr(booking, 'BookingCode'),
                cabin_class=attr(booking, 'CabinClass'),
                fare_basis=attr(fare, 'FareBasis'),
                from_=attr(fare, 'Origin'),
                to=attr(fare, 'Destination'),
                uapi_segment_ref=attr(booking, 'SegmentRef'),
            )
        )
    calculation, first_origin, roe = split_fare_calc(node_text(get(info, 'air:FareCalc')))
    return ExchangePricingInfo(
        base_price=attr(info, 'BasePrice'),
        booking_info=booking_infos,
        equivalent_base_price=attr(info, 'EquivalentBasePrice'),
        fare_calculation=calculation,
        first_origin=first_origin,
        roe=roe,
        taxes=attr(info, 'Taxes'),
        total_price=attr(info, 'TotalPrice'),
        uapi_pricing_info_ref=attr(info, 'Key'),
    )


def _parse_segments(solution: DecodedNode, pricing_infos: list[DecodedNode]) -> list[ExchangeSegment]:
    bookings: dict[str, DecodedNode] = index_by_key(
        [booking for info in pricing_infos for booking in as_list(get(info, 'air:BookingInfo'))],
        key='SegmentRef',
    )
    segments: list[ExchangeSegment] = []
    for node in as_list(get(solution, 'air:AirSegment')):
        fields: dict[str, Any] = segment_fields(node)
        booking: DecodedNode | None = bookings.get(attr(node, 'Key') or '')
        segments.append(
            ExchangeSegment(
                from_=fields['from_'],
                to=fields['to'],
                airline=fields['airline'],
                operating_airline=fields['operating_airline'],
                departure=fields['departure'],
                arrival=fields['arrival'],
                booking_class=attr(booking, 'BookingCode') or fields['booking_class'],
                service_class=attr(booking, 'CabinClass') or fields['service_class'],
                flight_number=fields['flight_number'],
                group=fields['group'],
                uapi_segment_ref=fields['uapi_segment_ref'],
            )
        )
    return segments


class ExchangeQuoteResponse(BaseModel):
    """Response model for AirExchangeQuoteRsp."""

    quote: ExchangeQuote

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'ExchangeQuoteResponse':
        """
        Normalize an exchange quote body.

        Raises:
            AirError: RESPONSE_DATA_MISSING without a pricing solution.
        """
        solution: DecodedNode = first(require(body, 'air:AirPricingSolution'))
        pricing_infos: list[DecodedNode] = as_list(get(solution, 'air:AirPricingInfo'))
        details_node: Any = get(first(pricing_infos), 'air:PricingDetails') or get(body, 'air:PricingDetails')

        quote: ExchangeQuote = ExchangeQuote(
            exchange_details=_parse_exchange_details(body),
            exchange_total=_parse_exchange_total(body),
            pricing_details=_parse_pricing_details(details_node),
            pricing_solution=PricingSolutionAmounts(
                base_price=attr(solution, 'BasePrice'),
                equivalent_base_price=attr(solution, 'EquivalentBasePrice'),
                taxes=attr(solution, 'Taxes'),
                total_price=attr(solution, 'TotalPrice'),
            ),
            segments=_parse_segments(solution, pricing_infos),
            pricing_info=[_parse_pricing_info(info) for info in pricing_infos],
            exchange_token=make_token(
                {
                    'solution': merge_leaves(solution),
                    'bundles': merge_leaves(get(body, 'air:AirExchangeBundle')),
                }
            ),
        )
        logger.info(f'Parsed exchange quote with {len(quote.exchange_details)} bundles')
        return cls(quote=quote)


class ExchangeResponse(BaseModel):
    """Response model for AirExchangeRsp. ``exchanged`` is always True."""

    exchanged: bool = True

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'ExchangeResponse':
        """
        Raises:
            AirError: CANT_DETECT_EXCHANGE_RESPONSE when the body holds
                      neither a reservation locator nor an ETR.
        """
        if get(body, 'air:AirReservationLocatorCode') is not None or get(body, 'air:ETR') is not None:
            return cls(exchanged=True)
        logger.error('Exchange response carries neither reservation locator nor ETR')
        raise AirError(ErrorKind.CANT_DETECT_EXCHANGE_RESPONSE, {'keys': sorted(body)})
