# uapi_air/response_models/__init__.py
"""
Response models for uAPI air operations.

This package contains Pydantic models for normalizing decoded uAPI
responses. Each operation has its own module with a response model exposing
a ``from_decoded(body, context, options)`` classmethod.
"""

from uapi_air.response_models.availability_response import (
    AvailabilityResponse,
    AvailabilitySegment,
    ClassAvailability,
)
from uapi_air.response_models.booking_response import (
    Booking,
    BookingResponse,
    BookingSegment,
    FareQuote,
    PricingInfo,
    ServiceSegment,
)
from uapi_air.response_models.common import Baggage, Segment, TaxInfo
from uapi_air.response_models.emd_response import (
    EmdItem,
    EmdItemResponse,
    EmdListItem,
    EmdListResponse,
)
from uapi_air.response_models.exchange_response import (
    ExchangeQuote,
    ExchangeQuoteResponse,
    ExchangeResponse,
)
from uapi_air.response_models.fare_rules_response import FareRule, FareRulesResponse
from uapi_air.response_models.flight_info_response import FlightInfo, FlightInfoResponse
from uapi_air.response_models.low_fare_search_response import (
    FareProposal,
    Leg,
    LowFareSearchResponse,
)
from uapi_air.response_models.price_response import AirPriceResponse, PriceQuote
from uapi_air.response_models.seat_map_response import SeatMapResponse, SegmentSeatMap
from uapi_air.response_models.ticket_response import (
    Coupon,
    GetTicketResponse,
    GetTicketsResponse,
    TicketDocument,
)
from uapi_air.response_models.ticketing_response import (
    CancelRecordResponse,
    TicketingResponse,
    VoidTicketResponse,
)

__all__: list[str] = [
    # price_response.py
    'AirPriceResponse',
    # availability_response.py
    'AvailabilityResponse',
    'AvailabilitySegment',
    # common.py
    'Baggage',
    # booking_response.py
    'Booking',
    'BookingResponse',
    'BookingSegment',
    # ticketing_response.py
    'CancelRecordResponse',
    'ClassAvailability',
    # ticket_response.py
    'Coupon',
    # emd_response.py
    'EmdItem',
    'EmdItemResponse',
    'EmdListItem',
    'EmdListResponse',
    # exchange_response.py
    'ExchangeQuote',
    'ExchangeQuoteResponse',
    'ExchangeResponse',
    # low_fare_search_response.py
    'FareProposal',
    'FareQuote',
    # fare_rules_response.py
    'FareRule',
    'FareRulesResponse',
    # flight_info_response.py
    'FlightInfo',
    'FlightInfoResponse',
    'GetTicketResponse',
    'GetTicketsResponse',
    'Leg',
    'LowFareSearchResponse',
    'PriceQuote',
    'PricingInfo',
    # seat_map_response.py
    'SeatMapResponse',
    'Segment',
    'SegmentSeatMap',
    'ServiceSegment',
    'TaxInfo',
    'TicketDocument',
    'TicketingResponse',
    'VoidTicketResponse',
]
