# uapi_air/faults.py
"""
Classification of uAPI service errors.

A SOAP fault coming back from uAPI carries a numeric code and a description
inside ``detail/common_<version>:ErrorInfo`` plus a free-text faultstring.
classify_fault() turns that record into an AirError with a specific kind by
walking an ordered table of FaultRule entries; the first rule that matches
wins. Rules that look at text or at the structure of the detail are listed
before the rules that only look at the code, so a generic code never hides a
more specific condition.

Default order of AIR_RULES:
    1. no agreement for agency (PCC extracted from the text)
    2. code 3000: waitlisted, segment booking failed, ticket info incomplete
    3. code 12008: credit card rejected, form of payment unavailable,
       generic ticketing failure
    4. no-results codes: request date in the past, no results found
    5. text-only rules (residual value, tickets not issued, seats, busy
       record, no valid fare, stale record data)
    6. code-only rules (345, 4965, 3031)
Anything left over is a SERVICE_ERROR carrying the fault verbatim.

Service errors reported inside a success-shaped body (ticket document
failures, ticketing failures, response messages, flight information
messages) are classified here as well.
"""

import logging
import re
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any, NoReturn

from pydantic import BaseModel, ConfigDict

from uapi_air.errors import AirError, ErrorKind
from uapi_air.utils.accessor import as_list, attr, merge_leaves, node_text, ns, text

logger: logging.Logger = logging.getLogger(__name__)

NO_AGREEMENT_PATTERN: re.Pattern[str] = re.compile(
    r'NO AGREEMENT EXISTS FOR AGENCY\s*-\s*([A-Z0-9]{3,4})', re.IGNORECASE
)

# Free-text markers, compared against the upper-cased faultstring + description
WAITLIST_MARKERS: tuple[str, ...] = ('WAITLISTED',)
HOST_ERROR_MARKERS: tuple[str, ...] = ('HOST ERROR',)
CREDIT_CARD_MARKERS: tuple[str, ...] = ('CREDIT CARD',)
FOP_MARKERS: tuple[str, ...] = ('UNABLE TO PROCESS CARD', 'FORM OF PAYMENT')
PAST_DATE_MARKERS: tuple[str, ...] = ('IN THE PAST', 'PAST DATE')
PNR_BUSY_MARKERS: tuple[str, ...] = ('PNR BUSY', 'SIMULTANEOUS')
NO_TICKETS_MARKERS: tuple[str, ...] = ('NO TICKETS', 'NO ELECTRONIC TICKETS')

NO_RESULTS_CODES: frozenset[str] = frozenset({'3037', '14058', '13003', '2602'})

DUPLICATE_TICKET_CODE: str = '3273'
STALE_DATA_CODE: str = '1301'


class FaultInfo(BaseModel):
    """
    The parts of a fault record the rules look at.

    Attributes:
        code: Numeric error code from the detail (as a string).
        description: Error description from the detail.
        record: The leaf-merged fault record {faultcode, faultstring, detail}.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    description: str | None = None
    record: dict[str, Any]

    @property
    def faultstring(self) -> str | None:
        return node_text(self.record.get('faultstring'))

    @property
    def detail(self) -> Any:
        return self.record.get('detail')

    @property
    def text(self) -> str:
        """Upper-cased faultstring and description, for marker matching."""
        parts: list[str] = [p for p in (self.faultstring, self.description) if p]
        return ' '.join(parts).upper()


class FaultRule(BaseModel):
    """
    One entry of a classification table.

    A rule matches when every condition it declares holds: the code is one of
    ``codes`` (if given), the text contains one of ``markers`` (if given) and
    ``predicate`` returns True (if given). ``extract`` adds caller-relevant
    entities (e.g. the PCC) to the error payload.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ErrorKind
    codes: frozenset[str] = frozenset()
    markers: tuple[str, ...] = ()
    predicate: Callable[[FaultInfo], bool] | None = None
    extract: Callable[[FaultInfo], dict[str, Any]] | None = None

    def matches(self, info: FaultInfo) -> bool:
        if self.codes and info.code not in self.codes:
            return False
        if self.markers and not any(marker in info.text for marker in self.markers):
            return False
        if self.predicate is not None and not self.predicate(info):
            return False
        return True


# --- Structural predicates ---


def _find_first(node: Any, key: str) -> Any:
    """Return the value of the shallowest occurrence of ``key``, or None."""
    queue: deque[Any] = deque([node])
    while queue:
        current: Any = queue.popleft()
        if isinstance(current, dict):
            if key in current:
                return current[key]
            queue.extend(current.values())
        elif isinstance(current, list):
            queue.extend(current)
    return None


def _find_local(node: Any, local_name: str) -> Any:
    """Like _find_first, but matches ``local_name`` under any prefix."""
    suffix: str = f':{local_name}'
    queue: deque[Any] = deque([node])
    while queue:
        current: Any = queue.popleft()
        if isinstance(current, dict):
            for key, value in current.items():
                if key == local_name or key.endswith(suffix):
                    return value
            queue.extend(current.values())
        elif isinstance(current, list):
            queue.extend(current)
    return None


def _has_segment_error(info: FaultInfo) -> bool:
    return _find_local(info.detail, 'AirSegmentError') is not None


def _is_no_agreement(info: FaultInfo) -> bool:
    return NO_AGREEMENT_PATTERN.search(info.text) is not None


def _extract_pcc(info: FaultInfo) -> dict[str, Any]:
    match: re.Match[str] | None = NO_AGREEMENT_PATTERN.search(info.text)
    return {'pcc': match.group(1)} if match else {}


# --- Rule tables ---

AIR_RULES: tuple[FaultRule, ...] = (
    FaultRule(
        name='no_agreement',
        kind=ErrorKind.NO_AGREEMENT,
        predicate=_is_no_agreement,
        extract=_extract_pcc,
    ),
    FaultRule(
        name='segment_waitlisted',
        kind=ErrorKind.SEGMENT_WAITLISTED,
        codes=frozenset({'3000'}),
        markers=WAITLIST_MARKERS,
    ),
    FaultRule(
        name='segment_booking_failed',
        kind=ErrorKind.SEGMENT_BOOKING_FAILED,
        codes=frozenset({'3000'}),
        predicate=_has_segment_error,
    ),
    FaultRule(
        name='ticket_info_incomplete',
        kind=ErrorKind.TICKET_INFO_INCOMPLETE,
        codes=frozenset({'3000'}),
        markers=HOST_ERROR_MARKERS,
    ),
    FaultRule(
        name='credit_card_rejected',
        kind=ErrorKind.TICKETING_CREDIT_CARD_REJECTED,
        codes=frozenset({'12008'}),
        markers=CREDIT_CARD_MARKERS,
    ),
    FaultRule(
        name='fop_unavailable',
        kind=ErrorKind.TICKETING_FOP_UNAVAILABLE,
        codes=frozenset({'12008'}),
        markers=FOP_MARKERS,
    ),
    FaultRule(
        name='ticketing_host_error',
        kind=ErrorKind.TICKETING_FAILED,
        codes=frozenset({'12008'}),
    ),
    FaultRule(
        name='date_in_past',
        kind=ErrorKind.INVALID_REQUEST_DATA,
        codes=NO_RESULTS_CODES,
        markers=PAST_DATE_MARKERS,
    ),
    FaultRule(
        name='no_results',
        kind=ErrorKind.NO_RESULTS_FOUND,
        codes=NO_RESULTS_CODES,
    ),
    FaultRule(
        name='no_residual_value',
        kind=ErrorKind.NO_RESIDUAL_VALUE,
        markers=('NO RESIDUAL VALUE',),
    ),
    FaultRule(
        name='tickets_not_issued',
        kind=ErrorKind.TICKETS_NOT_ISSUED,
        markers=('TICKETS NOT ISSUED', *NO_TICKETS_MARKERS),
    ),
    FaultRule(
        name='no_seats_available',
        kind=ErrorKind.NO_SEATS_AVAILABLE,
        markers=('NO SEATS AVAILABLE',),
    ),
    FaultRule(
        name='pnr_busy',
        kind=ErrorKind.TICKETING_PNR_BUSY,
        markers=PNR_BUSY_MARKERS,
    ),
    FaultRule(
        name='no_valid_fare',
        kind=ErrorKind.NO_VALID_FARE,
        markers=('NO VALID FARE',),
    ),
    FaultRule(
        name='ur_data_stale',
        kind=ErrorKind.UR_DATA_COULD_BE_STALE,
        markers=('DATA COULD BE STALE', 'DATA MAY BE STALE'),
    ),
    FaultRule(
        name='unable_to_retrieve',
        kind=ErrorKind.UNABLE_TO_RETRIEVE,
        codes=frozenset({'345'}),
    ),
    FaultRule(
        name='ticketing_response_missing',
        kind=ErrorKind.TICKETING_RESPONSE_MISSING,
        codes=frozenset({'4965'}),
    ),
    FaultRule(
        name='ticketing_pnr_busy_code',
        kind=ErrorKind.TICKETING_PNR_BUSY,
        codes=frozenset({'3031'}),
    ),
)

# Booking import knows what 3130 means; the generic table does not
BOOKING_RULES: tuple[FaultRule, ...] = (
    FaultRule(
        name='record_locator_not_found',
        kind=ErrorKind.RECORD_LOCATOR_NOT_FOUND,
        codes=frozenset({'3130'}),
    ),
    *AIR_RULES,
)

# Ticketing failures reported in the body (air:TicketFailureInfo)
TICKETING_FAILURE_RULES: tuple[FaultRule, ...] = (
    *(rule for rule in AIR_RULES if rule.codes == frozenset({'12008'})),
    FaultRule(
        name='ticketing_pnr_busy',
        kind=ErrorKind.TICKETING_PNR_BUSY,
        markers=PNR_BUSY_MARKERS,
    ),
    FaultRule(
        name='ticketing_pnr_busy_code',
        kind=ErrorKind.TICKETING_PNR_BUSY,
        codes=frozenset({'3031'}),
    ),
)

# Flight information messages: marker -> kind, checked in order
FLIGHT_INFO_MESSAGES: tuple[tuple[str, ErrorKind], ...] = (
    ('FLIGHT NOT FOUND', ErrorKind.FLIGHT_NOT_FOUND),
    ('AIRLINE NOT SUPPORTED', ErrorKind.AIRLINE_NOT_SUPPORTED),
    ('INVALID FLIGHT NUMBER', ErrorKind.INVALID_FLIGHT_NUMBER),
)


# --- Fault record inspection ---


def fault_info(fault: dict[str, Any], version: str) -> FaultInfo | None:
    """
    Pull code and description out of a fault record.

    Args:
        fault: The fault record, merged or not.
        version: Schema version in effect for the call (e.g. 'v52_0').

    Returns:
        FaultInfo, or None when the detail carries no error code.

    Keys qualified with ``version`` are preferred; a detail written in another
    schema dialect (e.g. 'common_v51_0:Code') is still understood.
    """
    record: dict[str, Any] = merge_leaves(fault)
    detail: Any = record.get('detail')
    code: str | None = (
        node_text(_find_first(detail, ns(version, 'common', 'Code')))
        or node_text(_find_local(detail, 'Code'))
    )
    if not code:
        return None
    description: str | None = (
        node_text(_find_first(detail, ns(version, 'common', 'Description')))
        or node_text(_find_local(detail, 'Description'))
    )
    return FaultInfo(code=code, description=description, record=record)


def _fault_payload(info: FaultInfo, extra: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        **info.record,
        'code': info.code,
        'description': info.description,
    }
    if extra:
        payload.update(extra)
    return payload


def match_rule(info: FaultInfo, rules: Iterable[FaultRule]) -> FaultRule | None:
    """Return the first rule of ``rules`` matching ``info``, or None."""
    for rule in rules:
        if rule.matches(info):
            return rule
    return None


def classify_fault(
    fault: dict[str, Any],
    version: str,
    rules: Iterable[FaultRule] = AIR_RULES,
) -> NoReturn:
    """
    Raise the AirError describing a SOAP fault. Never returns.

    Args:
        fault: Fault record {faultcode, faultstring, detail}.
        version: Schema version in effect for the call.
        rules: Ordered rule table; first match wins.

    Raises:
        AirError: UNHANDLED_ERROR when the detail has no error code, the kind
                  of the first matching rule, or SERVICE_ERROR carrying the
                  fault record verbatim when nothing matches.

    Example:
        >>> classify_fault(fault, 'v52_0')
        Traceback (most recent call last):
        ...
        uapi_air.errors.AirError: Service returned an error
    """
    info: FaultInfo | None = fault_info(fault, version)

    if info is None:
        logger.error(f'Fault without error code: {fault!r}')
        raise AirError(ErrorKind.UNHANDLED_ERROR, merge_leaves(fault))

    rule: FaultRule | None = match_rule(info, rules)

    if rule is None:
        logger.warning(f'Unclassified service error {info.code}: {info.description}')
        raise AirError(
            ErrorKind.SERVICE_ERROR,
            dict(fault),
            message=info.faultstring or info.description,
        )

    logger.debug(f'Fault {info.code} matched rule {rule.name!r}')
    extra: dict[str, Any] = rule.extract(info) if rule.extract else {}
    raise AirError(
        rule.kind,
        _fault_payload(info, extra),
        message=info.faultstring or info.description,
    )


def is_no_tickets_fault(fault: dict[str, Any], version: str) -> bool:
    """True when a ticket listing fault only says the record has no tickets."""
    info: FaultInfo | None = fault_info(fault, version)
    if info is None:
        return False
    return any(marker in info.text for marker in NO_TICKETS_MARKERS)


# --- In-body errors ---


def classify_message(message: str | None, data: dict[str, Any] | None = None) -> NoReturn:
    """
    Raise the flight-information error matching an in-body message.

    Raises:
        AirError: FLIGHT_NOT_FOUND, AIRLINE_NOT_SUPPORTED,
                  INVALID_FLIGHT_NUMBER, or FLIGHT_INFO_ERROR otherwise.
    """
    upper: str = (message or '').upper()
    payload: dict[str, Any] = {'message': message, **(data or {})}
    for marker, kind in FLIGHT_INFO_MESSAGES:
        if marker in upper:
            raise AirError(kind, payload, message=message)
    raise AirError(ErrorKind.FLIGHT_INFO_ERROR, payload, message=message)


def check_document_failure(failures: Any, version: str) -> None:
    """
    Raise for ticket document failures reported in a retrieve response.

    Args:
        failures: The ``air:DocumentFailureInfo`` node(s), or None.
        version: Schema version in effect for the call.

    Raises:
        AirError: DUPLICATE_TICKET_FOUND for code 3273, SERVICE_ERROR with the
                  failure data for any other code.
    """
    for failure in as_list(failures):
        code: str | None = attr(failure, 'Code') or text(failure, ns(version, 'common', 'Code'))
        failure_data: dict[str, Any] = merge_leaves(failure) if isinstance(failure, dict) else {'message': failure}
        if code == DUPLICATE_TICKET_CODE:
            raise AirError(ErrorKind.DUPLICATE_TICKET_FOUND, failure_data)
        logger.warning(f'Ticket document failure with code {code!r}')
        raise AirError(ErrorKind.SERVICE_ERROR, failure_data, message=node_text(failure))


def check_ticketing_failure(failures: Any, version: str) -> None:
    """
    Raise for ``air:TicketFailureInfo`` entries of a ticketing response.

    Raises:
        AirError: TICKETING_CREDIT_CARD_REJECTED, TICKETING_FOP_UNAVAILABLE,
                  TICKETING_PNR_BUSY or TICKETING_FAILED.
    """
    for failure in as_list(failures):
        code: str = attr(failure, 'Code') or text(failure, ns(version, 'common', 'Code')) or ''
        message: str | None = attr(failure, 'Message') or node_text(failure)
        info: FaultInfo = FaultInfo(
            code=code,
            description=message,
            record=merge_leaves(failure) if isinstance(failure, dict) else {},
        )
        rule: FaultRule | None = match_rule(info, TICKETING_FAILURE_RULES)
        kind: ErrorKind = rule.kind if rule else ErrorKind.TICKETING_FAILED
        logger.warning(f'Ticketing failure {code}: {message}')
        raise AirError(kind, {'code': code, 'description': message, **info.record}, message=message)


def check_response_messages(messages: Any, version: str) -> None:
    """
    Raise for response messages that report an error in a success body.

    Raises:
        AirError: NO_AGREEMENT (with ``pcc``) when a message says the agency
                  has no agreement; UR_DATA_COULD_BE_STALE when the record
                  could not be refreshed (payload ``messages``).
    """
    items: list[Any] = as_list(messages)
    for message in items:
        message_text: str = node_text(message) or ''
        match: re.Match[str] | None = NO_AGREEMENT_PATTERN.search(message_text)
        if match:
            raise AirError(
                ErrorKind.NO_AGREEMENT,
                {'pcc': match.group(1), 'message': message_text},
                message=message_text,
            )

    stale: list[Any] = [
        message for message in items
        if attr(message, 'Code') == STALE_DATA_CODE
        or 'MAY BE STALE' in (node_text(message) or '').upper()
    ]
    if stale:
        raise AirError(ErrorKind.UR_DATA_COULD_BE_STALE, {'messages': stale})
