# uapi_air/response_models/ticket_response.py
"""
Pydantic models for parsing AirRetrieveDocument responses (ticket retrieval).

An AirRetrieveDocumentRsp holds one ``air:ETR`` per ticketed passenger
document. A conjunction ticket arrives as one ETR holding several
``air:Ticket`` nodes (one per physical document) whose coupons form a single
logical itinerary. Stopovers are therefore computed over the coupons of every
ticket in the ETR taken together, never per physical document.

Failures are reported in the success body as well: ``air:DocumentFailureInfo``
nodes and response messages are checked before any ETR is read.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.errors import AirError, ErrorKind
from uapi_air.faults import check_document_failure, check_response_messages
from uapi_air.response_models.common import (
    RecordModel,
    TaxInfo,
    compute_stopovers,
    parse_tax_infos,
    split_fare_calc,
    to_float,
)
from uapi_air.utils import DecodedNode, as_list, attr, first, get, node_text, ns, parse_money, parse_timestamp

logger: logging.Logger = logging.getLogger(__name__)


# --- Module-level constants ---

# Coupon status codes per the ticketing host
VALID_COUPON_STATUSES: set[str] = {
    'A', 'C', 'F', 'L', 'O', 'P', 'R', 'E', 'V', 'Z', 'U', 'S', 'I', 'D', 'X',
}

# Mapping of coupon fields to DataFrame column names
COUPON_FIELD_MAP: dict[str, str] = {
    'ticket_number': 'ticket_number',
    'coupon_number': 'coupon_number',
    'from_': 'from',
    'to': 'to',
    'departure': 'departure',
    'airline': 'airline',
    'flight_number': 'flight_number',
    'booking_class': 'booking_class',
    'fare_basis_code': 'fare_basis_code',
    'status': 'status',
    'not_valid_before': 'not_valid_before',
    'not_valid_after': 'not_valid_after',
    'stopover': 'stopover',
}


class Coupon(RecordModel):
    """
    A flight coupon of a ticket.

    Attributes:
        ticket_number: Number of the physical ticket document owning the coupon.
        coupon_number: Position of the coupon within its ticket ('1'..'4').
        fare_basis_code: Fare basis, with the ticket designator appended as
                         '/<designator>' when present.
        status: Single-letter coupon status (O open, A airport control, ...).
        stopover: True when the itinerary breaks after this coupon.
    """

    ticket_number: str
    coupon_number: str
    from_: str = Field(..., alias='from')
    to: str
    departure: datetime | None = None
    airline: str | None = None
    flight_number: str | None = None
    fare_basis_code: str | None = None
    status: str | None = None
    not_valid_before: str | None = None
    not_valid_after: str | None = None
    booking_class: str | None = None
    stopover: bool = False

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is not None and value not in VALID_COUPON_STATUSES:
            logger.warning(
                f"Unexpected coupon status '{value}'. "
                f'Expected one of {sorted(VALID_COUPON_STATUSES)}'
            )
        return value


class PhysicalTicket(RecordModel):
    ticket_number: str
    coupons: list[Coupon]


class TicketPassenger(RecordModel):
    first_name: str | None = None
    last_name: str | None = None


class Commission(RecordModel):
    """Commission as 'Z' (percentage as a fraction) or 'ZA' (amount)."""

    type: str
    value: float


class TicketDocument(BaseModel):
    """
    A ticketed passenger document (one ``air:ETR``).

    Attributes:
        uapi_ur_locator: Universal record locator.
        uapi_reservation_locator: Air reservation locator.
        pnr: Provider (GDS) locator. May be None only when parsing was
             allowed to accept records without one.
        ticket_number: Number of the first physical ticket.
        price_info_available: The ETR carries a total price.
        price_info_details_available: The ETR carries a pricing info block.
        no_adc: The total price is zero (no additional collection).
        is_conjunction_ticket: More than one physical ticket.
        tickets: Physical tickets with their coupons, in document order.
    """

    model_config = ConfigDict(frozen=True)

    uapi_ur_locator: str | None = None
    uapi_reservation_locator: str | None = None
    pnr: str | None = None
    ticket_number: str
    plating_carrier: str | None = None
    ticketing_pcc: str | None = None
    issued_at: datetime | None = None
    fare_calculation: str | None = None
    first_origin: str | None = None
    roe: str | None = None
    fare_pricing_method: str | None = None
    fare_pricing_type: str | None = None
    price_info_available: bool = False
    price_info_details_available: bool = False
    total_price: str | None = None
    base_price: str | None = None
    equivalent_base_price: str | None = None
    taxes: str | None = None
    taxes_info: list[TaxInfo] = Field(default_factory=list)
    commission: Commission | None = None
    tour_code: str | None = None
    form_of_payment: list[str] = Field(default_factory=list)
    iata_number: str | None = None
    no_adc: bool = False
    is_conjunction_ticket: bool = False
    exchanged_tickets: list[str] = Field(default_factory=list)
    passengers: list[TicketPassenger] = Field(default_factory=list)
    tickets: list[PhysicalTicket] = Field(default_factory=list)

    @property
    def coupons(self) -> list[Coupon]:
        """Coupons of all physical tickets as one logical sequence."""
        return [coupon for ticket in self.tickets for coupon in ticket.coupons]

    def __repr__(self) -> str:
        return (
            f'TicketDocument(ticket_number={self.ticket_number}, '
            f'pnr={self.pnr}, coupons={len(self.coupons)})'
        )


# --- ETR parsing ---


def _parse_commission(etr: DecodedNode, pricing_info: Any) -> Commission | None:
    candidates: list[Any] = as_list(get(etr, 'air:Commission'))
    for fare_info in as_list(get(pricing_info, 'air:FareInfo')):
        candidates.extend(as_list(get(fare_info, 'air:Commission')))
    commission: Any = first(candidates)
    if commission is None:
        return None
    percentage: float | None = to_float(attr(commission, 'Percentage'))
    if percentage is not None:
        return Commission(type='Z', value=round(percentage / 100, 6))
    money: tuple[str, Decimal] | None = parse_money(attr(commission, 'Amount'))
    if money is not None:
        return Commission(type='ZA', value=float(money[1]))
    return None


def _parse_tickets(etr: DecodedNode, options: ParseOptions) -> list[PhysicalTicket]:
    # Collapse repeated ticket numbers, first occurrence wins
    ticket_nodes: list[DecodedNode] = []
    seen: set[str] = set()
    for node in as_list(get(etr, 'air:Ticket')):
        number: str | None = attr(node, 'TicketNumber')
        if number is None or number in seen:
            continue
        seen.add(number)
        ticket_nodes.append(node)

    flat: list[tuple[str, DecodedNode]] = [
        (attr(ticket, 'TicketNumber') or '', coupon)
        for ticket in ticket_nodes
        for coupon in as_list(get(ticket, 'air:Coupon'))
    ]
    stopovers: list[bool] = compute_stopovers(
        [
            (
                attr(coupon, 'Origin'),
                attr(coupon, 'Destination'),
                parse_timestamp(attr(coupon, 'DepartureTime')),
                parse_timestamp(attr(coupon, 'ArrivalTime')),
            )
            for _, coupon in flat
        ],
        options.stopover_threshold_hours,
    )

    coupons_by_ticket: dict[str, list[Coupon]] = {}
    for (ticket_number, coupon), stopover in zip(flat, stopovers, strict=True):
        fare_basis: str | None = attr(coupon, 'FareBasis')
        designator: str | None = attr(get(coupon, 'air:TicketDesignator'), 'Value')
        if fare_basis and designator:
            fare_basis = f'{fare_basis}/{designator}'
        coupons_by_ticket.setdefault(ticket_number, []).append(
            Coupon(
                ticket_number=ticket_number,
                coupon_number=attr(coupon, 'CouponNumber') or '',
                from_=attr(coupon, 'Origin') or '',
                to=attr(coupon, 'Destination') or '',
                departure=parse_timestamp(attr(coupon, 'DepartureTime')),
                airline=attr(coupon, 'MarketingCarrier'),
                flight_number=attr(coupon, 'MarketingFlightNumber'),
                fare_basis_code=fare_basis,
                status=attr(coupon, 'Status'),
                not_valid_before=attr(coupon, 'NotValidBefore'),
                not_valid_after=attr(coupon, 'NotValidAfter'),
                booking_class=attr(coupon, 'BookingClass'),
                stopover=stopover,
            )
        )

    return [
        PhysicalTicket(
            ticket_number=attr(ticket, 'TicketNumber') or '',
            coupons=coupons_by_ticket.get(attr(ticket, 'TicketNumber') or '', []),
        )
        for ticket in ticket_nodes
    ]


def parse_etr(
    etr: DecodedNode,
    body: DecodedNode,
    context: RequestContext,
    options: ParseOptions,
) -> TicketDocument:
    """
    Build a TicketDocument from one ``air:ETR`` node.

    Raises:
        AirError: TICKET_INFO_INCOMPLETE when the provider locator is missing
                  and ``options.allow_no_provider_locator_code_retrieval`` is
                  off; RESPONSE_DATA_MISSING when the ETR has no ticket.
    """
    version: str = context.uapi_version
    pnr: str | None = attr(etr, 'ProviderLocatorCode')
    if pnr is None and not options.allow_no_provider_locator_code_retrieval:
        logger.warning('Ticket record has no provider locator code')
        raise AirError(
            ErrorKind.TICKET_INFO_INCOMPLETE,
            {'missing': 'ProviderLocatorCode', 'ticketing_pcc': attr(etr, 'PseudoCityCode')},
        )

    tickets: list[PhysicalTicket] = _parse_tickets(etr, options)
    if not tickets:
        raise AirError(ErrorKind.RESPONSE_DATA_MISSING, {'missing': 'air:ETR/air:Ticket'})

    pricing_info: Any = first(get(etr, 'air:AirPricingInfo'))
    fare_calculation, first_origin, roe = split_fare_calc(
        node_text(get(etr, 'air:FareCalc')) or node_text(get(pricing_info, 'air:FareCalc'))
    )

    taxes_info: list[TaxInfo] = parse_tax_infos(get(pricing_info, 'air:TaxInfo'), version)
    if not taxes_info:
        taxes_info = parse_tax_infos(get(etr, 'air:TaxInfo'), version)

    total_price: str | None = attr(etr, 'TotalPrice')
    total: tuple[str, Decimal] | None = parse_money(total_price)

    tour_code: str | None = attr(get(etr, 'air:TourCode'), 'Value') or attr(
        get(pricing_info, 'air:TourCode'), 'Value'
    )

    passengers: list[TicketPassenger] = []
    for traveler in as_list(get(etr, ns(version, 'common', 'BookingTraveler'))):
        name: Any = get(traveler, ns(version, 'common', 'BookingTravelerName'))
        passengers.append(TicketPassenger(first_name=attr(name, 'First'), last_name=attr(name, 'Last')))

    return TicketDocument(
        uapi_ur_locator=attr(body, 'UniversalRecordLocatorCode') or attr(etr, 'UniversalRecordLocatorCode'),
        uapi_reservation_locator=node_text(get(etr, 'air:AirReservationLocatorCode')),
        pnr=pnr,
        ticket_number=tickets[0].ticket_number,
        plating_carrier=attr(etr, 'PlatingCarrier') or attr(pricing_info, 'PlatingCarrier'),
        ticketing_pcc=attr(etr, 'PseudoCityCode'),
        issued_at=parse_timestamp(attr(etr, 'IssuedDate')),
        fare_calculation=fare_calculation,
        first_origin=first_origin,
        roe=roe,
        fare_pricing_method=attr(pricing_info, 'PricingMethod'),
        fare_pricing_type=attr(pricing_info, 'PricingType'),
        price_info_available=total_price is not None,
        price_info_details_available=pricing_info is not None,
        total_price=total_price,
        base_price=attr(etr, 'BasePrice'),
        equivalent_base_price=attr(etr, 'EquivalentBasePrice'),
        taxes=attr(etr, 'Taxes'),
        taxes_info=taxes_info,
        commission=_parse_commission(etr, pricing_info),
        tour_code=tour_code,
        form_of_payment=[
            (attr(fop, 'Type') or '').upper()
            for fop in as_list(get(etr, ns(version, 'common', 'FormOfPayment')))
            if attr(fop, 'Type')
        ],
        iata_number=attr(etr, 'IATANumber'),
        no_adc=total is not None and total[1] == 0,
        is_conjunction_ticket=len(tickets) > 1,
        exchanged_tickets=[
            attr(item, 'Number') or ''
            for item in as_list(get(etr, 'air:ExchangedTicketInfo'))
            if attr(item, 'Number')
        ],
        passengers=passengers,
        tickets=tickets,
    )


def _check_body(body: DecodedNode, context: RequestContext) -> None:
    version: str = context.uapi_version
    check_document_failure(get(body, 'air:DocumentFailureInfo'), version)
    check_response_messages(get(body, ns(version, 'common', 'ResponseMessage')), version)


def _parse_etrs(
    body: DecodedNode,
    context: RequestContext,
    options: ParseOptions,
) -> list[TicketDocument]:
    documents: list[TicketDocument] = []
    seen: set[str] = set()
    for etr in as_list(get(body, 'air:ETR')):
        document: TicketDocument = parse_etr(etr, body, context, options)
        if document.ticket_number in seen:
            logger.debug(f'Skipping repeated ticket {document.ticket_number}')
            continue
        seen.add(document.ticket_number)
        documents.append(document)
    return documents


class GetTicketResponse(BaseModel):
    """Result of retrieving a single ticket by number."""

    ticket: TicketDocument

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'GetTicketResponse':
        """
        Normalize an AirRetrieveDocumentRsp body holding one ticket.

        Raises:
            AirError: DUPLICATE_TICKET_FOUND or SERVICE_ERROR for document
                      failures, NO_AGREEMENT from response messages,
                      UNABLE_TO_RETRIEVE_TICKET when no ETR is present,
                      TICKET_INFO_INCOMPLETE for records without a PNR.
        """
        _check_body(body, context)
        documents: list[TicketDocument] = _parse_etrs(body, context, options)
        if not documents:
            logger.error('Ticket retrieve response holds no ticket record')
            raise AirError(ErrorKind.UNABLE_TO_RETRIEVE_TICKET, {'missing': 'air:ETR'})
        logger.info(f'Parsed ticket {documents[0].ticket_number}')
        return cls(ticket=documents[0])


class GetTicketsResponse(BaseModel):
    """
    Result of retrieving every ticket of a reservation.

    Attributes:
        tickets: One TicketDocument per ETR, repeated ticket numbers removed.
    """

    tickets: list[TicketDocument] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'GetTicketsResponse':
        """Normalize an AirRetrieveDocumentRsp body. No ETR nodes gives an empty list."""
        _check_body(body, context)
        documents: list[TicketDocument] = _parse_etrs(body, context, options)
        logger.info(f'Parsed {len(documents)} ticket records')
        return cls(tickets=documents)

    @classmethod
    def empty(cls) -> 'GetTicketsResponse':
        return cls(tickets=[])

    def to_dataframe(self) -> pd.DataFrame:
        """
        Flatten all coupons of all tickets into a DataFrame, one row per coupon.

        Example:
            >>> df = response.to_dataframe()
            >>> df[df['stopover']][['ticket_number', 'to']]
        """
        columns: list[str] = ['pnr', *COUPON_FIELD_MAP.values()]
        rows: list[dict[str, Any]] = []
        for document in self.tickets:
            for coupon in document.coupons:
                row: dict[str, Any] = {'pnr': document.pnr}
                row.update(
                    {col: getattr(coupon, field) for field, col in COUPON_FIELD_MAP.items()}
                )
                rows.append(row)
        if not rows:
            return pd.DataFrame(columns=columns)
        return pd.DataFrame(rows, columns=columns)

    @property
    def ticket_count(self) -> int:
        return len(self.tickets)
