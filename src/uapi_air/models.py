# uapi_air/models.py
"""
Pydantic request models for uAPI air operations.

Each request model knows the operation it represents, the Jinja2 template
that renders its SOAP body and the uAPI service (URL path) it is posted to.
Field validation happens on construction, so a request that reaches the
transport layer is already well formed.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from uapi_air.response_models.common import read_token
from uapi_air.utils import as_list, format_date, format_for_soap

AIR_SERVICE: str = 'AirService'
UNIVERSAL_RECORD_SERVICE: str = 'UniversalRecordService'

PASSENGER_TITLES: tuple[str, ...] = ('Mr', 'Mrs', 'Mstr', 'Ms', 'Dr', 'Prof')

# Inclusive lower / exclusive upper age bound per passenger category
AGE_RANGES: dict[str, tuple[int, int]] = {
    'ADT': (12, 200),
    'CHD': (2, 12),
    'CNN': (2, 12),
    'INF': (0, 2),
}

# Average Gregorian year, used to turn a birth date into an age
SECONDS_PER_YEAR: float = 365.25 * 24 * 3600


class UapiOperationRequest(BaseModel, ABC):
    """
    Abstract base class for all uAPI operation request models.

    Subclasses must define:
    - operation_name: Name of the operation; also the dispatch key.
    - template_name: Jinja2 template file for the SOAP body.
    - service_name: uAPI service the request is posted to.
    - to_soap_format(): Template context for the request.
    """

    operation_name: str
    template_name: str
    service_name: str = AIR_SERVICE

    @abstractmethod
    def to_soap_format(self) -> dict[str, Any]:
        """
        Convert request data to the template context.

        Returns:
            Dictionary of values referenced by the operation's template.
        """
        ...


# =============================================================================
# Shared building blocks
# =============================================================================


class SearchPassenger(BaseModel):
    """A passenger as far as searching and pricing are concerned."""

    age_category: str = Field('ADT', min_length=3, max_length=3)
    age: int | None = Field(None, ge=0)

    def to_soap_format(self, index: int) -> dict[str, Any]:
        return {'key': f'P_{index}', 'code': self.age_category, 'age': self.age}


class Passenger(SearchPassenger):
    """
    A named passenger.

    The age is either given or derived from ``birth_date`` by the request
    that holds the passenger (relative to its first departure).

    Attributes:
        title: One of Mr, Mrs, Mstr, Ms, Dr, Prof.
        first_name: Given name.
        last_name: Family name.
        birth_date: Date of birth, used when ``age`` is not given.
    """

    title: str
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    birth_date: date | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, title: str) -> str:
        if title not in PASSENGER_TITLES:
            raise ValueError(f'title must be one of {", ".join(PASSENGER_TITLES)}')
        return title

    @field_validator('last_name')
    @classmethod
    def validate_name_length(cls, last_name: str, info: ValidationInfo) -> str:
        """Ensure first and last name together have at least three characters."""
        first_name: str = info.data.get('first_name', '')
        if len(first_name) + len(last_name) < 3:
            raise ValueError('first_name and last_name must have at least 3 characters combined')
        return last_name

    def resolve_age(self, first_departure: datetime | None) -> 'Passenger':
        """
        Return the passenger with ``age`` set and checked against its category.

        Args:
            first_departure: Departure of the first segment of the itinerary.

        Raises:
            ValueError: If no age can be determined or it does not fit the
                        passenger category.
        """
        age: int | None = self.age
        if age is None and self.birth_date is not None and first_departure is not None:
            birth: datetime = datetime.combine(self.birth_date, datetime.min.time(), tzinfo=first_departure.tzinfo)
            age = int((first_departure - birth).total_seconds() // SECONDS_PER_YEAR)
        if age is None:
            raise ValueError(f'age or birth_date is required for {self.last_name}/{self.first_name}')

        age_range: tuple[int, int] | None = AGE_RANGES.get(self.age_category)
        if age_range is not None and not age_range[0] <= age < age_range[1]:
            raise ValueError(f'age {age} does not fit passenger category {self.age_category}')
        return self.model_copy(update={'age': age})

    def to_soap_format(self, index: int) -> dict[str, Any]:
        return {
            **super().to_soap_format(index),
            'title': self.title,
            'first_name': self.first_name,
            'last_name': self.last_name,
        }


class SegmentRequest(BaseModel):
    """
    One flight segment sent to pricing, seat map and exchange requests.

    Attributes:
        group: Direction index (0 outbound, 1 return, ...).
        transfer: True when the next segment is a connection of this one.
    """

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias='from', min_length=3, max_length=3)
    to: str = Field(..., min_length=3, max_length=3)
    departure: datetime
    arrival: datetime
    airline: str = Field(..., min_length=2, max_length=2)
    flight_number: str = Field(..., min_length=1)
    service_class: str = 'Economy'
    booking_class: str = Field(..., min_length=1, max_length=2)
    group: int = 0
    transfer: bool = False
    host_token: str | None = None

    def to_soap_format(self, index: int) -> dict[str, Any]:
        return {
            'key': str(index),
            'group': str(self.group),
            'origin': self.from_,
            'destination': self.to,
            'departure_time': format_for_soap(self.departure),
            'arrival_time': format_for_soap(self.arrival),
            'carrier': self.airline,
            'flight_number': self.flight_number,
            'cabin_class': self.service_class,
            'class_of_service': self.booking_class,
            'transfer': self.transfer,
            'host_token': self.host_token,
        }


class SearchLeg(BaseModel):
    """An origin/destination pair searched on one day."""

    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(..., alias='from', min_length=3, max_length=3)
    to: str = Field(..., min_length=3, max_length=3)
    departure_date: date

    def to_soap_format(self) -> dict[str, str]:
        return {
            'origin': self.from_,
            'destination': self.to,
            'departure_date': format_date(self.departure_date),
        }


def _segments_soap(segments: list[SegmentRequest]) -> list[dict[str, Any]]:
    return [segment.to_soap_format(index) for index, segment in enumerate(segments)]


def _passengers_soap(passengers: list[SearchPassenger]) -> list[dict[str, Any]]:
    return [passenger.to_soap_format(index) for index, passenger in enumerate(passengers)]


# =============================================================================
# Search & pricing
# =============================================================================


class LowFareSearchRequest(UapiOperationRequest):
    """
    Request model for a low fare search.

    Example:
        >>> request = LowFareSearchRequest(
        ...     legs=[SearchLeg(from_='KBP', to='LON', departure_date=date(2025, 11, 14))],
        ...     passengers=[SearchPassenger(age_category='ADT')],
        ... )
    """

    operation_name: str = 'low_fare_search'
    template_name: str = 'LowFareSearchReq.xml'

    legs: list[SearchLeg] = Field(..., min_length=1)
    passengers: list[SearchPassenger] = Field(..., min_length=1)
    cabins: list[str] = Field(default_factory=list)
    carriers: list[str] = Field(default_factory=list)
    max_solutions: int | None = Field(None, gt=0)

    def to_soap_format(self) -> dict[str, Any]:
        return {
            'legs': [leg.to_soap_format() for leg in self.legs],
            'passengers': _passengers_soap(list(self.passengers)),
            'cabins': self.cabins,
            'carriers': self.carriers,
            'max_solutions': self.max_solutions,
        }


class AirPriceRequest(UapiOperationRequest):
    """
    Request model for pricing (or re-pricing) a concrete itinerary.

    Attributes:
        segments: Segments to price, in travel order.
        passengers: Passengers to price for.
        plating_carrier: Optional validating carrier override.
        business: Permit business cabin only.
        pcc: Optional pseudo city code to price in.
    """

    operation_name: str = 'price'
    template_name: str = 'AirPriceReq.xml'

    segments: list[SegmentRequest] = Field(..., min_length=1)
    passengers: list[SearchPassenger] = Field(..., min_length=1)
    plating_carrier: str | None = Field(None, min_length=2, max_length=2)
    business: bool = False
    pcc: str | None = None

    def fare_rule_type(self) -> str | None:
        return None

    def to_soap_format(self) -> dict[str, Any]:
        return {
            'segments': _segments_soap(self.segments),
            'passengers': _passengers_soap(list(self.passengers)),
            'plating_carrier': self.plating_carrier,
            'business': self.business,
            'pcc': self.pcc,
            'fare_rule_type': self.fare_rule_type(),
        }


class FareRulesRequest(AirPriceRequest):
    """Pricing request that asks for the long fare rules of the itinerary."""

    operation_name: str = 'fare_rules'

    def fare_rule_type(self) -> str | None:
        return 'long'


class AvailabilityRequest(UapiOperationRequest):
    """Request model for an availability search, optionally continuing a previous one."""

    operation_name: str = 'availability'
    template_name: str = 'AvailabilitySearchReq.xml'

    legs: list[SearchLeg] = Field(..., min_length=1)
    passengers: list[SearchPassenger] = Field(default_factory=lambda: [SearchPassenger()])
    cabins: list[str] = Field(default_factory=list)
    carriers: list[str] = Field(default_factory=list)
    next_result_reference: str | None = None

    def to_soap_format(self) -> dict[str, Any]:
        return {
            'legs': [leg.to_soap_format() for leg in self.legs],
            'passengers': _passengers_soap(list(self.passengers)),
            'cabins': self.cabins,
            'carriers': self.carriers,
            'next_result_reference': self.next_result_reference,
        }


class SeatMapRequest(UapiOperationRequest):
    """
    Request model for the seat map of a set of segments.

    Infants do not occupy a seat and are left out of the traveler list.
    """

    operation_name: str = 'seat_map'
    template_name: str = 'SeatMapReq.xml'

    segments: list[SegmentRequest] = Field(..., min_length=1)
    passengers: list[Passenger] = Field(..., min_length=1)

    @model_validator(mode='after')
    def resolve_passenger_ages(self) -> 'SeatMapRequest':
        """Derive missing ages from birth dates relative to the first departure."""
        first_departure: datetime = self.segments[0].departure
        self.passengers = [passenger.resolve_age(first_departure) for passenger in self.passengers]
        return self

    def to_soap_format(self) -> dict[str, Any]:
        return {
            'segments': _segments_soap(self.segments),
            'travelers': [
                passenger.to_soap_format(index)
                for index, passenger in enumerate(self.passengers)
                if passenger.age_category != 'INF'
            ],
        }


class FlightInfoItem(BaseModel):
    airline: str = Field(..., min_length=2, max_length=2)
    flight_number: str = Field(..., min_length=1)
    departure: date

    def to_soap_format(self) -> dict[str, str]:
        return {
            'carrier': self.airline,
            'flight_number': self.flight_number,
            'departure_date': format_date(self.departure),
        }


class FlightInfoRequest(UapiOperationRequest):
    operation_name: str = 'flight_info'
    template_name: str = 'FlightInformationReq.xml'

    flights: list[FlightInfoItem] = Field(..., min_length=1)

    def to_soap_format(self) -> dict[str, Any]:
        return {'flights': [flight.to_soap_format() for flight in self.flights]}


# =============================================================================
# Records & documents
# =============================================================================


class ImportBookingRequest(UapiOperationRequest):
    """Request model for importing a provider reservation into a universal record."""

    operation_name: str = 'import_booking'
    template_name: str = 'UniversalRecordImportReq.xml'
    service_name: str = UNIVERSAL_RECORD_SERVICE

    pnr: str = Field(..., min_length=5, max_length=8)

    def to_soap_format(self) -> dict[str, Any]:
        return {'pnr': self.pnr}


class GetTicketRequest(UapiOperationRequest):
    operation_name: str = 'get_ticket'
    template_name: str = 'AirRetrieveDocumentReq.xml'

    ticket_number: str = Field(..., pattern=r'^\d{13}$')

    def to_soap_format(self) -> dict[str, Any]:
        return {'ticket_number': self.ticket_number, 'reservation_locator_code': None}


class GetTicketsRequest(UapiOperationRequest):
    """Request model for every ticket of an air reservation."""

    operation_name: str = 'get_tickets'
    template_name: str = 'AirRetrieveDocumentReq.xml'

    reservation_locator_code: str = Field(..., min_length=5)

    def to_soap_format(self) -> dict[str, Any]:
        return {'ticket_number': None, 'reservation_locator_code': self.reservation_locator_code}


class EmdListRequest(UapiOperationRequest):
    operation_name: str = 'emd_list'
    template_name: str = 'EMDRetrieveReq.xml'

    pnr: str = Field(..., min_length=5, max_length=8)

    def to_soap_format(self) -> dict[str, Any]:
        return {'pnr': self.pnr, 'emd_number': None}


class EmdItemRequest(UapiOperationRequest):
    operation_name: str = 'emd_item'
    template_name: str = 'EMDRetrieveReq.xml'

    pnr: str = Field(..., min_length=5, max_length=8)
    emd_number: str = Field(..., pattern=r'^\d{13}$')

    def to_soap_format(self) -> dict[str, Any]:
        return {'pnr': self.pnr, 'emd_number': self.emd_number}


# =============================================================================
# Ticketing & changes
# =============================================================================


class ExchangeQuoteRequest(UapiOperationRequest):
    """
    Request model for quoting the exchange of issued tickets to new segments.

    Attributes:
        reservation_locator_code: Air reservation the tickets belong to.
        ticket_numbers: Tickets to exchange.
        segments: New itinerary.
    """

    operation_name: str = 'exchange_quote'
    template_name: str = 'AirExchangeQuoteReq.xml'

    reservation_locator_code: str = Field(..., min_length=5)
    ticket_numbers: list[str] = Field(..., min_length=1)
    segments: list[SegmentRequest] = Field(..., min_length=1)

    @field_validator('ticket_numbers')
    @classmethod
    def validate_ticket_numbers(cls, ticket_numbers: list[str]) -> list[str]:
        for number in ticket_numbers:
            if not (len(number) == 13 and number.isdigit()):
                raise ValueError(f'ticket number must have 13 digits: {number!r}')
        return ticket_numbers

    def to_soap_format(self) -> dict[str, Any]:
        return {
            'reservation_locator_code': self.reservation_locator_code,
            'ticket_numbers': self.ticket_numbers,
            'segments': _segments_soap(self.segments),
        }


class ExchangeRequest(UapiOperationRequest):
    """
    Request model for confirming an exchange quoted earlier.

    The ``exchange_token`` of the quote carries the pricing solution and
    exchange bundles; they are sent back as they were received.
    """

    operation_name: str = 'exchange'
    template_name: str = 'AirExchangeReq.xml'

    reservation_locator_code: str = Field(..., min_length=5)
    exchange_token: str = Field(..., min_length=1)

    @field_validator('exchange_token')
    @classmethod
    def validate_exchange_token(cls, exchange_token: str) -> str:
        payload: dict[str, Any] = read_token(exchange_token)
        if 'solution' not in payload:
            raise ValueError('exchange_token does not carry a pricing solution')
        return exchange_token

    def to_soap_format(self) -> dict[str, Any]:
        payload: dict[str, Any] = read_token(self.exchange_token)
        return {
            'reservation_locator_code': self.reservation_locator_code,
            'solution': payload['solution'],
            'bundles': as_list(payload.get('bundles')),
        }


class TicketRequest(UapiOperationRequest):
    """
    Request model for issuing the tickets of an air reservation.

    Attributes:
        reservation_locator_code: Air reservation to ticket.
        pricing_info_refs: Keys of the pricing infos to ticket (all if empty).
        commission: Percentage ('5') or amount ('UAH10') agency commission.
    """

    operation_name: str = 'ticket'
    template_name: str = 'AirTicketingReq.xml'

    reservation_locator_code: str = Field(..., min_length=5)
    pricing_info_refs: list[str] = Field(default_factory=list)
    commission_type: Literal['Z', 'ZA'] | None = None
    commission: str | None = None

    @field_validator('commission')
    @classmethod
    def validate_commission(cls, commission: str | None, info: ValidationInfo) -> str | None:
        if commission is not None and info.data.get('commission_type') is None:
            raise ValueError('commission cannot be provided without commission_type')
        return commission

    def to_soap_format(self) -> dict[str, Any]:
        return {
            'reservation_locator_code': self.reservation_locator_code,
            'pricing_info_refs': self.pricing_info_refs,
            # Z is a percentage, ZA an amount
            'commission_percentage': self.commission if self.commission_type == 'Z' else None,
            'commission_amount': self.commission if self.commission_type == 'ZA' else None,
        }


class VoidTicketRequest(UapiOperationRequest):
    operation_name: str = 'void_ticket'
    template_name: str = 'AirVoidDocumentReq.xml'

    reservation_locator_code: str = Field(..., min_length=5)
    ticket_number: str = Field(..., pattern=r'^\d{13}$')

    def to_soap_format(self) -> dict[str, Any]:
        return {
            'reservation_locator_code': self.reservation_locator_code,
            'ticket_number': self.ticket_number,
        }


class CancelRecordRequest(UapiOperationRequest):
    """Request model for cancelling a universal record."""

    operation_name: str = 'cancel_record'
    template_name: str = 'UniversalRecordCancelReq.xml'
    service_name: str = UNIVERSAL_RECORD_SERVICE

    universal_record_locator_code: str = Field(..., min_length=5)
    version: int = Field(0, ge=0)

    def to_soap_format(self) -> dict[str, Any]:
        return {
            'universal_record_locator_code': self.universal_record_locator_code,
            'version': str(self.version),
        }
