# uapi_air/errors.py
"""
Error kinds raised by the uapi_air package.

Every failure the package raises on its own is an AirError carrying a kind
from the closed ErrorKind enumeration and a structured data payload. Callers
branch on ``err.kind`` (or ``err.family``) instead of catching a tree of
exception subclasses:

    >>> try:
    ...     service.ticket(request)
    ... except AirError as err:
    ...     if err.kind is ErrorKind.TICKETING_CREDIT_CARD_REJECTED:
    ...         ask_for_another_card(err.data)
    ...     else:
    ...         raise

Kinds fall into three families:
- PARSING: a success-shaped response is missing a mandatory node. Not retried.
- RUNTIME: the remote service reported a business or system fault.
- TRANSPORT: the HTTP exchange produced something that is not a SOAP message.
"""

from enum import Enum
from typing import Any


class ErrorFamily(str, Enum):
    """Top-level grouping of error kinds."""

    PARSING = 'parsing'
    RUNTIME = 'runtime'
    TRANSPORT = 'transport'


class ErrorKind(str, Enum):
    """Closed set of error kinds. The value is a stable, loggable identifier."""

    # --- Parsing family ---
    RESPONSE_DATA_MISSING = 'response_data_missing'
    RESERVATIONS_MISSING = 'reservations_missing'
    CANCEL_RESPONSE_NOT_FOUND = 'cancel_response_not_found'
    INVALID_NODE_SHAPE = 'invalid_node_shape'

    # --- Runtime family ---
    NO_RESULTS_FOUND = 'no_results_found'
    INVALID_REQUEST_DATA = 'invalid_request_data'
    NO_AGREEMENT = 'no_agreement'
    SEGMENT_BOOKING_FAILED = 'segment_booking_failed'
    SEGMENT_WAITLISTED = 'segment_waitlisted'
    TICKET_INFO_INCOMPLETE = 'ticket_info_incomplete'
    DUPLICATE_TICKET_FOUND = 'duplicate_ticket_found'
    NO_VALID_FARE = 'no_valid_fare'
    TICKETING_FAILED = 'ticketing_failed'
    TICKETING_RESPONSE_MISSING = 'ticketing_response_missing'
    TICKETING_PNR_BUSY = 'ticketing_pnr_busy'
    TICKETING_FOP_UNAVAILABLE = 'ticketing_fop_unavailable'
    TICKETING_CREDIT_CARD_REJECTED = 'ticketing_credit_card_rejected'
    TICKET_CANCEL_RESULT_UNKNOWN = 'ticket_cancel_result_unknown'
    NO_RESIDUAL_VALUE = 'no_residual_value'
    TICKETS_NOT_ISSUED = 'tickets_not_issued'
    CANT_DETECT_EXCHANGE_RESPONSE = 'cant_detect_exchange_response'
    FLIGHT_NOT_FOUND = 'flight_not_found'
    AIRLINE_NOT_SUPPORTED = 'airline_not_supported'
    INVALID_FLIGHT_NUMBER = 'invalid_flight_number'
    FLIGHT_INFO_ERROR = 'flight_info_error'
    UR_DATA_COULD_BE_STALE = 'ur_data_could_be_stale'
    UNABLE_TO_RETRIEVE = 'unable_to_retrieve'
    UNABLE_TO_RETRIEVE_TICKET = 'unable_to_retrieve_ticket'
    RECORD_LOCATOR_NOT_FOUND = 'record_locator_not_found'
    NO_SEATS_AVAILABLE = 'no_seats_available'
    SERVICE_ERROR = 'service_error'
    UNHANDLED_ERROR = 'unhandled_error'

    # --- Transport family ---
    SOAP_SERVER_ERROR = 'soap_server_error'

    @property
    def family(self) -> ErrorFamily:
        if self in _PARSING_KINDS:
            return ErrorFamily.PARSING
        if self in _TRANSPORT_KINDS:
            return ErrorFamily.TRANSPORT
        return ErrorFamily.RUNTIME


_PARSING_KINDS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.RESPONSE_DATA_MISSING,
        ErrorKind.RESERVATIONS_MISSING,
        ErrorKind.CANCEL_RESPONSE_NOT_FOUND,
        ErrorKind.INVALID_NODE_SHAPE,
    }
)

_TRANSPORT_KINDS: frozenset[ErrorKind] = frozenset({ErrorKind.SOAP_SERVER_ERROR})


# Human-readable default messages, used when no explicit message is given
DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.RESPONSE_DATA_MISSING: 'Mandatory data is missing from the response',
    ErrorKind.RESERVATIONS_MISSING: 'Universal record has no reservations or travelers',
    ErrorKind.CANCEL_RESPONSE_NOT_FOUND: 'Cancel response does not confirm cancellation',
    ErrorKind.INVALID_NODE_SHAPE: 'Response node could not be converted to a record',
    ErrorKind.NO_RESULTS_FOUND: 'No results found',
    ErrorKind.INVALID_REQUEST_DATA: 'Request data was rejected by the service',
    ErrorKind.NO_AGREEMENT: 'No agreement exists for the agency',
    ErrorKind.SEGMENT_BOOKING_FAILED: 'Failed to book one or more segments',
    ErrorKind.SEGMENT_WAITLISTED: 'One or more segments were waitlisted',
    ErrorKind.TICKET_INFO_INCOMPLETE: 'Ticket information is incomplete',
    ErrorKind.DUPLICATE_TICKET_FOUND: 'Duplicate ticket number found',
    ErrorKind.NO_VALID_FARE: 'No valid fare for the itinerary',
    ErrorKind.TICKETING_FAILED: 'Ticketing failed',
    ErrorKind.TICKETING_RESPONSE_MISSING: 'Ticketing response is missing',
    ErrorKind.TICKETING_PNR_BUSY: 'Booking is in use by another agent',
    ErrorKind.TICKETING_FOP_UNAVAILABLE: 'Form of payment is not available',
    ErrorKind.TICKETING_CREDIT_CARD_REJECTED: 'Credit card was rejected',
    ErrorKind.TICKET_CANCEL_RESULT_UNKNOWN: 'Ticket void result is unknown',
    ErrorKind.NO_RESIDUAL_VALUE: 'Ticket has no residual value',
    ErrorKind.TICKETS_NOT_ISSUED: 'Tickets are not issued',
    ErrorKind.CANT_DETECT_EXCHANGE_RESPONSE: 'Exchange response type is unknown',
    ErrorKind.FLIGHT_NOT_FOUND: 'Flight not found',
    ErrorKind.AIRLINE_NOT_SUPPORTED: 'Airline not supported',
    ErrorKind.INVALID_FLIGHT_NUMBER: 'Invalid flight number',
    ErrorKind.FLIGHT_INFO_ERROR: 'Flight information error',
    ErrorKind.UR_DATA_COULD_BE_STALE: 'Universal record data could be stale',
    ErrorKind.UNABLE_TO_RETRIEVE: 'Unable to retrieve record',
    ErrorKind.UNABLE_TO_RETRIEVE_TICKET: 'Unable to retrieve ticket',
    ErrorKind.RECORD_LOCATOR_NOT_FOUND: 'Record locator not found',
    ErrorKind.NO_SEATS_AVAILABLE: 'No seats available',
    ErrorKind.SERVICE_ERROR: 'Service returned an error',
    ErrorKind.UNHANDLED_ERROR: 'Service returned an error without details',
    ErrorKind.SOAP_SERVER_ERROR: 'Server response is not a SOAP message',
}


class AirError(Exception):
    """
    Classified error raised by normalizers, the fault classifier and transport.

    Attributes:
        kind: The ErrorKind identifying what went wrong.
        data: Structured payload. Runtime errors keep the original fault
              (faultcode/faultstring/detail) or the extracted entities
              (e.g. ``pcc``) the caller needs to act.
    """

    def __init__(
        self,
        kind: ErrorKind,
        data: dict[str, Any] | None = None,
        message: str | None = None,
    ) -> None:
        self.kind: ErrorKind = kind
        self.data: dict[str, Any] = data if data is not None else {}
        self.message: str = message or DEFAULT_MESSAGES[kind]
        super().__init__(self.message)

    @property
    def family(self) -> ErrorFamily:
        return self.kind.family

    def __repr__(self) -> str:
        return f'AirError(kind={self.kind.value}, message={self.message!r})'
