# uapi_air/response_models/booking_response.py
"""
Pydantic models for parsing universal record responses (booking retrieval,
import and creation).

UniversalRecordRetrieveRsp, UniversalRecordImportRsp and
AirCreateReservationRsp all carry one or more ``universal:UniversalRecord``
nodes; each becomes one Booking. A record may hold several air reservations;
segments, pricing and tickets are collected across all of them, while the
reservation locator and dates come from the first. Within a record:

- air segments and service segments (optional services sold as EMDs) are
  merged into one travel order and numbered 1..N across both lists,
- segments the host reports twice with identical key attributes collapse,
- pricing infos are grouped into fare quotes by their pricing-info group,
- tickets come from the reservations' document info, one per number,
- links to split-off records are returned as a side list.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.errors import AirError, ErrorKind
from uapi_air.faults import check_response_messages
from uapi_air.response_models.common import (
    Baggage,
    RecordModel,
    Segment,
    TaxInfo,
    parse_baggage,
    parse_tax_infos,
    segment_fields,
    to_int,
)
from uapi_air.utils import (
    DecodedNode,
    as_list,
    attr,
    first,
    from_node,
    get,
    index_by_key,
    merge_leaves,
    node_text,
    ns,
    parse_money,
    parse_timestamp,
)

logger: logging.Logger = logging.getLogger(__name__)

BOOKING_TYPE: str = 'uAPI'

NO_VALID_FARE_MARKER: str = 'NO VALID FARE'


class AirlineLocator(RecordModel):
    """Airline (supplier) locator of a reservation, read from ``SupplierLocator``."""

    create_date: datetime | None = Field(None, alias='CreateDateTime')
    supplier_code: str = Field(..., alias='SupplierCode')
    locator_code: str = Field(..., alias='SupplierLocatorCode')


class BookingPassenger(RecordModel):
    first_name: str | None = None
    last_name: str | None = None
    age_category: str | None = None
    age: int | None = None
    uapi_passenger_ref: str


class PricingPassenger(RecordModel):
    uapi_passenger_ref: str
    is_ticketed: bool = False
    ticket_number: str | None = None


class PricingInfo(RecordModel):
    """
    One ``air:AirPricingInfo`` of a reservation.

    Attributes:
        uapi_pricing_info_ref: Key of the pricing info.
        passengers: Covered passengers, with their ticket when issued.
        passengers_count: Number of passengers per type code.
        time_to_reprice: Latest ticketing time of the stored fare.
    """

    uapi_pricing_info_ref: str
    fare_calculation: str | None = None
    fare_pricing_method: str | None = None
    fare_pricing_type: str | None = None
    time_to_reprice: datetime | None = None
    baggage: list[Baggage] = Field(default_factory=list)
    passengers: list[PricingPassenger] = Field(default_factory=list)
    passengers_count: dict[str, int] = Field(default_factory=dict)
    total_price: str | None = None
    base_price: str | None = None
    equivalent_base_price: str | None = None
    taxes: str | None = None
    taxes_info: list[TaxInfo] = Field(default_factory=list)


class FareQuote(RecordModel):
    index: int
    pricing_infos: list[PricingInfo]
    uapi_segment_refs: list[str] = Field(default_factory=list)
    uapi_passenger_refs: list[str] = Field(default_factory=list)
    endorsement: str | None = None
    effective_date: datetime | None = None
    tour_code: str | None = None
    plating_carrier: str | None = None


class BookingSegment(Segment):
    index: int
    status: str | None = None
    next_segment_reference: str | None = None


class ServiceSegment(RecordModel):
    """An optional service (ancillary) sold in the reservation."""

    index: int
    carrier: str | None = None
    airport: str | None = None
    date: datetime | None = None
    rfi_code: str | None = None
    rfi_subcode: str | None = None
    fee_description: str | None = None
    name: str | None = None
    amount: float | None = None
    currency: str | None = None
    document_number: str | None = None
    uapi_segment_ref: str | None = None


class TicketName(RecordModel):
    first_name: str | None = None
    last_name: str | None = None


class BookingTicket(RecordModel):
    number: str
    uapi_passenger_ref: str | None = None
    uapi_pricing_info_ref: str | None = None
    passengers: list[TicketName] = Field(default_factory=list)


class Email(RecordModel):
    index: int
    email: str


class Booking(BaseModel):
    """
    A normalized universal record.

    Attributes:
        version: Record version (increments on every modification).
        uapi_ur_locator: Universal record locator.
        uapi_reservation_locator: Air reservation locator.
        pnr: Provider (GDS) locator.
        booking_pcc: PCC owning the provider reservation.
        segments: Air segments in travel order.
        service_segments: Optional services, numbered after/among segments.
        split_bookings: Locators of records split from or into this one.
        messages: Warnings the service returned with the record.
    """

    model_config = ConfigDict(frozen=True)

    type: str = BOOKING_TYPE
    version: int = 0
    uapi_ur_locator: str
    uapi_reservation_locator: str | None = None
    airline_locator_info: list[AirlineLocator] = Field(default_factory=list)
    booking_pcc: str | None = None
    pnr: str | None = None
    passengers: list[BookingPassenger] = Field(default_factory=list)
    fare_quotes: list[FareQuote] = Field(default_factory=list)
    segments: list[BookingSegment] = Field(default_factory=list)
    service_segments: list[ServiceSegment] = Field(default_factory=list)
    host_created_at: str | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None
    tickets: list[BookingTicket] = Field(default_factory=list)
    emails: list[Email] = Field(default_factory=list)
    split_bookings: list[str] = Field(default_factory=list)
    messages: list[Any] = Field(default_factory=list)

    def __repr__(self) -> str:
        return (
            f'Booking(ur={self.uapi_ur_locator}, pnr={self.pnr}, '
            f'segments={len(self.segments)}, fare_quotes={len(self.fare_quotes)})'
        )


# --- Passengers ---


def _parse_passengers(travelers: list[DecodedNode], version: str) -> list[BookingPassenger]:
    passengers: list[BookingPassenger] = []
    for traveler in travelers:
        key: str | None = attr(traveler, 'Key')
        if key is None:
            continue
        name: Any = get(traveler, ns(version, 'common', 'BookingTravelerName'))
        passengers.append(
            BookingPassenger(
                first_name=attr(name, 'First'),
                last_name=attr(name, 'Last'),
                age_category=attr(traveler, 'TravelerType'),
                age=to_int(attr(traveler, 'Age')),
                uapi_passenger_ref=key,
            )
        )
    return passengers


def _parse_emails(travelers: list[DecodedNode], version: str) -> list[Email]:
    addresses: list[str] = [
        attr(email, 'EmailID') or ''
        for traveler in travelers
        for email in as_list(get(traveler, ns(version, 'common', 'Email')))
        if attr(email, 'EmailID')
    ]
    return [Email(index=index, email=address) for index, address in enumerate(addresses, start=1)]


# --- Segments ---


def _collect(reservations: list[Any], path: str) -> list[Any]:
    """Nodes at ``path`` across every air reservation of a record, in order."""
    return [node for reservation in reservations for node in as_list(get(reservation, path))]


def _segment_key(node: DecodedNode) -> tuple[str | None, ...]:
    return tuple(
        attr(node, name)
        for name in ('Carrier', 'FlightNumber', 'Origin', 'Destination', 'DepartureTime', 'ClassOfService')
    )


def dedupe_segments(nodes: Iterable[DecodedNode]) -> list[DecodedNode]:
    """
    Drop segments repeating an earlier one on every key attribute.

    Key attributes: carrier, flight number, origin, destination, departure
    and booking class. Segments differing in any of them are all kept.
    """
    seen: set[tuple[str | None, ...]] = set()
    unique: list[DecodedNode] = []
    for node in nodes:
        key: tuple[str | None, ...] = _segment_key(node)
        if key in seen:
            logger.debug(f'Dropping duplicated segment {key}')
            continue
        seen.add(key)
        unique.append(node)
    return unique


def _travel_order(node: DecodedNode, position: int) -> tuple[int, int]:
    order: int | None = to_int(attr(node, 'TravelOrder'))
    return (order if order is not None else position, position)


def _parse_service_segment(
    service: DecodedNode,
    index: int,
    segments_by_key: dict[str, DecodedNode],
    names_by_key: dict[str, str],
    version: str,
) -> ServiceSegment:
    service_data: Any = first(get(service, ns(version, 'common', 'ServiceData')))
    segment_ref: str | None = attr(service_data, 'AirSegmentRef')
    traveler_ref: str | None = attr(service_data, 'BookingTravelerRef')
    segment: DecodedNode | None = segments_by_key.get(segment_ref or '')
    emd: Any = get(service, 'air:EMD')
    price: tuple[str, Decimal] | None = parse_money(attr(service, 'TotalPrice'))
    description: str | None = node_text(get(service, ns(version, 'common', 'Description'))) or attr(
        service, 'DisplayText'
    )
    return ServiceSegment(
        index=index,
        carrier=attr(service, 'SupplierCode'),
        airport=attr(segment, 'Origin'),
        date=parse_timestamp(attr(segment, 'DepartureTime')),
        rfi_code=attr(emd, 'ReasonForIssuanceCode'),
        rfi_subcode=attr(service, 'ServiceSubCode'),
        fee_description=description,
        name=names_by_key.get(traveler_ref or ''),
        amount=float(price[1]) if price else None,
        currency=price[0] if price else None,
        document_number=attr(emd, 'DocumentNumber'),
        uapi_segment_ref=segment_ref,
    )


def _parse_segments(
    reservations: list[Any],
    names_by_key: dict[str, str],
    version: str,
) -> tuple[list[BookingSegment], list[ServiceSegment]]:
    air_nodes: list[DecodedNode] = dedupe_segments(_collect(reservations, 'air:AirSegment'))
    service_nodes: list[DecodedNode] = [
        service
        for service in _collect(reservations, 'air:OptionalServices/air:OptionalService')
        if attr(service, 'ServiceSubCode') or get(service, 'air:EMD') is not None
    ]
    segments_by_key: dict[str, DecodedNode] = index_by_key(air_nodes)

    # One travel order across both lists; air segments first on ties
    ordered: list[tuple[tuple[int, int], str, DecodedNode]] = sorted(
        [(_travel_order(node, pos), 'air', node) for pos, node in enumerate(air_nodes)]
        + [
            (_travel_order(node, len(air_nodes) + pos), 'service', node)
            for pos, node in enumerate(service_nodes)
        ],
        key=lambda item: item[0],
    )

    air_in_order: list[DecodedNode] = [node for _, kind, node in ordered if kind == 'air']
    next_keys: dict[int, str | None] = {
        id(node): (attr(air_in_order[i + 1], 'Key') if i + 1 < len(air_in_order) else None)
        for i, node in enumerate(air_in_order)
    }

    segments: list[BookingSegment] = []
    services: list[ServiceSegment] = []
    for index, (_, kind, node) in enumerate(ordered, start=1):
        if kind == 'service':
            services.append(_parse_service_segment(node, index, segments_by_key, names_by_key, version))
            continue
        connected: bool = get(node, 'air:Connection') is not None
        segments.append(
            BookingSegment(
                **segment_fields(node),
                index=index,
                status=attr(node, 'Status'),
                next_segment_reference=next_keys[id(node)] if connected else None,
            )
        )
    return segments, services


# --- Fare quotes ---


def _ticket_index(tickets: list[BookingTicket]) -> dict[tuple[str | None, str | None], str]:
    return {(t.uapi_passenger_ref, t.uapi_pricing_info_ref): t.number for t in tickets}


def _parse_pricing_info(
    node: DecodedNode,
    tickets_by_ref: dict[tuple[str | None, str | None], str],
    version: str,
) -> PricingInfo:
    key: str = attr(node, 'Key') or ''
    passenger_refs: list[str] = [
        attr(ref, 'Key') or ''
        for ref in as_list(get(node, ns(version, 'common', 'BookingTravelerRef')))
        if attr(ref, 'Key')
    ]
    counts: dict[str, int] = {}
    for passenger_type in as_list(get(node, 'air:PassengerType')):
        code: str | None = attr(passenger_type, 'Code')
        if code:
            counts[code] = counts.get(code, 0) + 1

    passengers: list[PricingPassenger] = []
    for ref in passenger_refs:
        number: str | None = tickets_by_ref.get((ref, key))
        passengers.append(
            PricingPassenger(uapi_passenger_ref=ref, is_ticketed=number is not None, ticket_number=number)
        )

    return PricingInfo(
        uapi_pricing_info_ref=key,
        fare_calculation=node_text(get(node, 'air:FareCalc')),
        fare_pricing_method=attr(node, 'PricingMethod'),
        fare_pricing_type=attr(node, 'PricingType'),
        time_to_reprice=parse_timestamp(attr(node, 'LatestTicketingTime')),
        baggage=parse_baggage(first(get(node, 'air:FareInfo'))),
        passengers=passengers,
        passengers_count=counts,
        total_price=attr(node, 'TotalPrice'),
        base_price=attr(node, 'BasePrice'),
        equivalent_base_price=attr(node, 'EquivalentBasePrice'),
        taxes=attr(node, 'Taxes'),
        taxes_info=parse_tax_infos(get(node, 'air:TaxInfo'), version),
    )


def _parse_fare_quotes(
    reservations: list[Any],
    tickets: list[BookingTicket],
    version: str,
) -> list[FareQuote]:
    groups: dict[str, list[DecodedNode]] = {}
    for node in _collect(reservations, 'air:AirPricingInfo'):
        group: str = attr(node, 'AirPricingInfoGroup') or attr(node, 'Key') or ''
        groups.setdefault(group, []).append(node)

    tickets_by_ref: dict[tuple[str | None, str | None], str] = _ticket_index(tickets)

    quotes: list[FareQuote] = []
    for position, (group, nodes) in enumerate(groups.items(), start=1):
        fare_infos: list[Any] = [info for node in nodes for info in as_list(get(node, 'air:FareInfo'))]
        segment_refs: list[str] = []
        for node in nodes:
            for booking_info in as_list(get(node, 'air:BookingInfo')):
                ref: str | None = attr(booking_info, 'SegmentRef')
                if ref and ref not in segment_refs:
                    segment_refs.append(ref)
        passenger_refs: list[str] = []
        for node in nodes:
            for ref_node in as_list(get(node, ns(version, 'common', 'BookingTravelerRef'))):
                key: str | None = attr(ref_node, 'Key')
                if key and key not in passenger_refs:
                    passenger_refs.append(key)
        endorsements: list[str] = [
            attr(item, 'Value') or ''
            for info in fare_infos
            for item in as_list(get(info, ns(version, 'common', 'Endorsement')))
            if attr(item, 'Value')
        ]
        tour_code: str | None = next(
            (attr(get(info, 'air:TourCode'), 'Value') for info in fare_infos if get(info, 'air:TourCode')),
            None,
        )
        quotes.append(
            FareQuote(
                index=to_int(group) or position,
                pricing_infos=[_parse_pricing_info(node, tickets_by_ref, version) for node in nodes],
                uapi_segment_refs=segment_refs,
                uapi_passenger_refs=passenger_refs,
                endorsement=' '.join(dict.fromkeys(endorsements)) or None,
                effective_date=parse_timestamp(attr(first(fare_infos), 'EffectiveDate')),
                tour_code=tour_code,
                plating_carrier=attr(nodes[0], 'PlatingCarrier'),
            )
        )
    return sorted(quotes, key=lambda quote: quote.index)


# --- Tickets ---


def _parse_tickets(
    reservations: list[Any], travelers_by_key: dict[str, DecodedNode], version: str
) -> list[BookingTicket]:
    tickets: list[BookingTicket] = []
    seen: set[str] = set()
    for info in _collect(reservations, 'air:DocumentInfo/air:TicketInfo'):
        number: str | None = attr(info, 'Number')
        if number is None or number in seen:
            continue
        seen.add(number)
        traveler_ref: str | None = attr(info, 'BookingTravelerRef')
        name: Any = get(info, ns(version, 'common', 'Name'))
        if name is None and traveler_ref in travelers_by_key:
            name = get(travelers_by_key[traveler_ref], ns(version, 'common', 'BookingTravelerName'))
        tickets.append(
            BookingTicket(
                number=number,
                uapi_passenger_ref=traveler_ref,
                uapi_pricing_info_ref=attr(info, 'AirPricingInfoRef'),
                passengers=[TicketName(first_name=attr(name, 'First'), last_name=attr(name, 'Last'))],
            )
        )
    return tickets


# --- Record ---


def parse_universal_record(
    record: DecodedNode,
    messages: list[Any],
    context: RequestContext,
) -> Booking:
    """
    Build a Booking from one ``universal:UniversalRecord`` node.

    Raises:
        AirError: RESERVATIONS_MISSING when the record has neither an air
                  reservation nor travelers.
    """
    version: str = context.uapi_version
    reservations: list[Any] = as_list(get(record, 'air:AirReservation'))
    reservation: Any = first(reservations)
    travelers: list[DecodedNode] = as_list(get(record, ns(version, 'common', 'BookingTraveler')))

    if reservation is None and not travelers:
        logger.error(f'Universal record {attr(record, "LocatorCode")} has no reservation or travelers')
        raise AirError(ErrorKind.RESERVATIONS_MISSING, {'uapi_ur_locator': attr(record, 'LocatorCode')})

    travelers_by_key: dict[str, DecodedNode] = index_by_key(travelers)
    passengers: list[BookingPassenger] = _parse_passengers(travelers, version)
    # Travelers without a surname get no name on their service segments
    names_by_key: dict[str, str] = {
        p.uapi_passenger_ref: '/'.join(filter(None, (p.last_name, p.first_name)))
        for p in passengers
        if p.last_name
    }

    provider_info: Any = first(get(record, 'universal:ProviderReservationInfo'))
    segments, services = _parse_segments(reservations, names_by_key, version)
    tickets: list[BookingTicket] = _parse_tickets(reservations, travelers_by_key, version)

    return Booking(
        version=to_int(attr(record, 'Version'), 0) or 0,
        uapi_ur_locator=attr(record, 'LocatorCode') or '',
        uapi_reservation_locator=attr(reservation, 'LocatorCode'),
        airline_locator_info=[
            from_node(node, AirlineLocator)
            for node in _collect(reservations, ns(version, 'common', 'SupplierLocator'))
        ],
        booking_pcc=attr(provider_info, 'OwningPCC'),
        pnr=attr(provider_info, 'LocatorCode'),
        passengers=passengers,
        fare_quotes=_parse_fare_quotes(reservations, tickets, version),
        segments=segments,
        service_segments=services,
        host_created_at=attr(provider_info, 'HostCreateDate'),
        created_at=parse_timestamp(attr(provider_info, 'CreateDate') or attr(reservation, 'CreateDate')),
        modified_at=parse_timestamp(attr(provider_info, 'ModifiedDate') or attr(reservation, 'ModifiedDate')),
        tickets=tickets,
        emails=_parse_emails(travelers, version),
        split_bookings=[
            attr(link, 'LocatorCode') or ''
            for link in as_list(get(record, ns(version, 'common', 'LinkedUniversalRecord')))
            if attr(link, 'LocatorCode')
        ],
        messages=messages,
    )


def _check_body(body: DecodedNode, version: str) -> list[Any]:
    failure: Any = get(body, 'air:AirSegmentSellFailureInfo')
    if failure is not None:
        logger.error('Segment sell failure reported in reservation response')
        raise AirError(ErrorKind.SEGMENT_BOOKING_FAILED, {'failure': merge_leaves(failure)})

    messages: list[Any] = as_list(get(body, ns(version, 'common', 'ResponseMessage')))
    for message in messages:
        message_text: str = (node_text(message) or '').upper()
        if NO_VALID_FARE_MARKER in message_text:
            raise AirError(ErrorKind.NO_VALID_FARE, {'message': node_text(message)})
    check_response_messages(messages, version)
    return [merge_leaves(message) for message in messages]


class BookingResponse(BaseModel):
    """
    Response model for universal record retrieve/import and reservation
    creation.

    Attributes:
        bookings: One Booking per universal record in the response.
    """

    bookings: list[Booking] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'BookingResponse':
        """
        Normalize a universal record response body.

        Raises:
            AirError: SEGMENT_BOOKING_FAILED for a segment sell failure,
                      NO_VALID_FARE or NO_AGREEMENT or UR_DATA_COULD_BE_STALE
                      from response messages, RESPONSE_DATA_MISSING without
                      a universal record, RESERVATIONS_MISSING for an empty
                      record.
        """
        version: str = context.uapi_version
        messages: list[Any] = _check_body(body, version)
        records: list[Any] = as_list(get(body, 'universal:UniversalRecord'))
        if not records:
            raise AirError(ErrorKind.RESPONSE_DATA_MISSING, {'missing': 'universal:UniversalRecord'})
        bookings: list[Booking] = [parse_universal_record(record, messages, context) for record in records]
        logger.info(f'Parsed {len(bookings)} universal records')
        return cls(bookings=bookings)
