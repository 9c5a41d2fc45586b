# uapi_air/air_service.py
"""
Air service entry points.

Each public AirService method sends one request through UapiClient and hands
the decoded envelope to dispatch(), which picks the operation's normalizer,
or its fault rule table when the envelope holds a SOAP fault.

dispatch() itself does no I/O: it is a pure function of the decoded
envelope, the request context and the parse options, so recorded responses
can be replayed through it without a client.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any, NamedTuple, cast

from pydantic import BaseModel

from uapi_air.context import ContextPassenger, ParseOptions, RequestContext
from uapi_air.faults import AIR_RULES, BOOKING_RULES, FaultRule, classify_fault, is_no_tickets_fault
from uapi_air.models import (
    AirPriceRequest,
    AvailabilityRequest,
    CancelRecordRequest,
    EmdItemRequest,
    EmdListRequest,
    ExchangeQuoteRequest,
    ExchangeRequest,
    FareRulesRequest,
    FlightInfoRequest,
    GetTicketRequest,
    GetTicketsRequest,
    ImportBookingRequest,
    LowFareSearchRequest,
    SearchPassenger,
    SeatMapRequest,
    TicketRequest,
    UapiOperationRequest,
    VoidTicketRequest,
)
from uapi_air.response_models import (
    AirPriceResponse,
    AvailabilityResponse,
    BookingResponse,
    CancelRecordResponse,
    EmdItemResponse,
    EmdListResponse,
    ExchangeQuoteResponse,
    ExchangeResponse,
    FareRulesResponse,
    FlightInfoResponse,
    GetTicketResponse,
    GetTicketsResponse,
    LowFareSearchResponse,
    SeatMapResponse,
    TicketingResponse,
    VoidTicketResponse,
)
from uapi_air.uapi_client import UapiClient
from uapi_air.utils import DecodedNode, DecodedResponse

logger: logging.Logger = logging.getLogger(__name__)

Normalizer = Callable[[DecodedNode, RequestContext, ParseOptions], BaseModel]


class Operation(NamedTuple):
    """A normalizer and the fault rules that apply to one operation."""

    normalizer: Normalizer
    rules: tuple[FaultRule, ...] = AIR_RULES


OPERATIONS: dict[str, Operation] = {
    'low_fare_search': Operation(LowFareSearchResponse.from_decoded),
    'price': Operation(AirPriceResponse.from_decoded),
    'fare_rules': Operation(FareRulesResponse.from_decoded),
    'availability': Operation(AvailabilityResponse.from_decoded),
    'import_booking': Operation(BookingResponse.from_decoded, BOOKING_RULES),
    'get_ticket': Operation(GetTicketResponse.from_decoded),
    'get_tickets': Operation(GetTicketsResponse.from_decoded),
    'exchange_quote': Operation(ExchangeQuoteResponse.from_decoded),
    'exchange': Operation(ExchangeResponse.from_decoded),
    'seat_map': Operation(SeatMapResponse.from_decoded),
    'emd_list': Operation(EmdListResponse.from_decoded),
    'emd_item': Operation(EmdItemResponse.from_decoded),
    'flight_info': Operation(FlightInfoResponse.from_decoded),
    'ticket': Operation(TicketingResponse.from_decoded),
    'void_ticket': Operation(VoidTicketResponse.from_decoded),
    'cancel_record': Operation(CancelRecordResponse.from_decoded, BOOKING_RULES),
}


def dispatch(
    operation: str,
    decoded: DecodedResponse,
    context: RequestContext,
    options: ParseOptions | None = None,
) -> BaseModel:
    """
    Turn a decoded envelope into the operation's result or raise its error.

    Args:
        operation: Operation name, a key of OPERATIONS.
        decoded: Envelope decoded by the transport layer.
        context: Request-side data the normalizer may need.
        options: Parse switches; defaults apply when None.

    Returns:
        The response model of the operation.

    Raises:
        KeyError: If the operation is unknown.
        AirError: The classified fault, or whatever the normalizer raises.
    """
    if operation not in OPERATIONS:
        logger.error(f'Unknown operation: {operation!r}')
        raise KeyError(operation)

    entry: Operation = OPERATIONS[operation]
    parse_options: ParseOptions = options if options is not None else ParseOptions()

    if decoded.fault is not None:
        # A reservation without tickets is an empty listing, not an error
        if operation == 'get_tickets' and is_no_tickets_fault(decoded.fault, context.uapi_version):
            logger.info('Reservation has no tickets')
            return GetTicketsResponse.empty()
        logger.debug(f'Classifying fault for operation {operation!r}')
        classify_fault(decoded.fault, context.uapi_version, entry.rules)

    logger.debug(f'Normalizing {decoded.root_name!r} for operation {operation!r}')
    return entry.normalizer(decoded.body or {}, context, parse_options)


def _context_passengers(passengers: Iterable[SearchPassenger]) -> list[ContextPassenger]:
    return [
        ContextPassenger(
            **passenger.model_dump(include={'age_category', 'age', 'first_name', 'last_name'})
        )
        for passenger in passengers
    ]


class AirService:
    """
    Air operations over a UapiClient.

    The schema version and provider of every call come from the client's
    configuration; parse options default to its 'parsing' section.

    Example:
        >>> with UapiClient() as client:
        >>>     service = AirService(client)
        >>>     booking = service.import_booking(ImportBookingRequest(pnr='ABC123'))
    """

    def __init__(self, client: UapiClient, options: ParseOptions | None = None) -> None:
        self.client: UapiClient = client
        self.options: ParseOptions = (
            options if options is not None else ParseOptions.from_config(client.config.parsing)
        )

    def context(
        self,
        passengers: Iterable[SearchPassenger] = (),
        cabins: Iterable[str] = (),
        pricing_solution: dict[str, Any] | None = None,
    ) -> RequestContext:
        """Build the request context for a call made with this service's configuration."""
        return RequestContext(
            uapi_version=self.client.config.uapi.version,
            provider=self.client.config.uapi.provider,
            passengers=_context_passengers(passengers),
            cabins=list(cabins),
            pricing_solution=pricing_solution,
        )

    def _call(self, request: UapiOperationRequest, context: RequestContext | None = None) -> BaseModel:
        decoded: DecodedResponse = self.client.execute_operation(request)
        return dispatch(
            request.operation_name,
            decoded,
            context if context is not None else self.context(),
            self.options,
        )

    # --- Search & pricing ---

    def low_fare_search(self, request: LowFareSearchRequest) -> LowFareSearchResponse:
        context: RequestContext = self.context(request.passengers, request.cabins)
        return cast(LowFareSearchResponse, self._call(request, context))

    def price(
        self,
        request: AirPriceRequest,
        pricing_solution: dict[str, Any] | None = None,
    ) -> AirPriceResponse:
        """
        Price an itinerary.

        Args:
            request: Segments and passengers to price.
            pricing_solution: Data of a previous pricing to echo into the
                              pricing token of the result.
        """
        context: RequestContext = self.context(request.passengers, pricing_solution=pricing_solution)
        return cast(AirPriceResponse, self._call(request, context))

    def fare_rules(self, request: FareRulesRequest) -> FareRulesResponse:
        return cast(FareRulesResponse, self._call(request, self.context(request.passengers)))

    def availability(self, request: AvailabilityRequest) -> AvailabilityResponse:
        context: RequestContext = self.context(request.passengers, request.cabins)
        return cast(AvailabilityResponse, self._call(request, context))

    def seat_map(self, request: SeatMapRequest) -> SeatMapResponse:
        return cast(SeatMapResponse, self._call(request, self.context(request.passengers)))

    def flight_info(self, request: FlightInfoRequest) -> FlightInfoResponse:
        return cast(FlightInfoResponse, self._call(request))

    # --- Records & documents ---

    def import_booking(self, request: ImportBookingRequest) -> BookingResponse:
        return cast(BookingResponse, self._call(request))

    def get_ticket(self, request: GetTicketRequest) -> GetTicketResponse:
        return cast(GetTicketResponse, self._call(request))

    def get_tickets(self, request: GetTicketsRequest) -> GetTicketsResponse:
        return cast(GetTicketsResponse, self._call(request))

    def emd_list(self, request: EmdListRequest) -> EmdListResponse:
        return cast(EmdListResponse, self._call(request))

    def emd_item(self, request: EmdItemRequest) -> EmdItemResponse:
        return cast(EmdItemResponse, self._call(request))

    # --- Ticketing & changes ---

    def exchange_quote(self, request: ExchangeQuoteRequest) -> ExchangeQuoteResponse:
        return cast(ExchangeQuoteResponse, self._call(request))

    def exchange(self, request: ExchangeRequest) -> ExchangeResponse:
        return cast(ExchangeResponse, self._call(request))

    def ticket(self, request: TicketRequest) -> TicketingResponse:
        return cast(TicketingResponse, self._call(request))

    def void_ticket(self, request: VoidTicketRequest) -> VoidTicketResponse:
        return cast(VoidTicketResponse, self._call(request))

    def cancel_record(self, request: CancelRecordRequest) -> CancelRecordResponse:
        return cast(CancelRecordResponse, self._call(request))
