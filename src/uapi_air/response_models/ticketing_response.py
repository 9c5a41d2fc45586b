# uapi_air/response_models/ticketing_response.py
"""
Pydantic models for responses that only confirm an action: ticket issue,
ticket void and record cancellation.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.errors import AirError, ErrorKind
from uapi_air.faults import check_ticketing_failure
from uapi_air.utils import DecodedNode, as_list, attr, get, node_text, ns

logger: logging.Logger = logging.getLogger(__name__)

VOID_SUCCESS: str = 'Success'
CANCELLED_MARKER: str = 'ITINERARY CANCELLED'


class TicketingResponse(BaseModel):
    """
    Response model for AirTicketingRsp.

    Attributes:
        issued: Always True; failures raise instead.
        ticket_numbers: Numbers of the issued ticket documents.
    """

    issued: bool = True
    ticket_numbers: list[str] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'TicketingResponse':
        """
        Raises:
            AirError: the kind matching ``air:TicketFailureInfo`` (credit card
                      rejected, FOP unavailable, PNR busy, ticketing failed),
                      or TICKETING_RESPONSE_MISSING when the body reports
                      neither tickets nor a failure.
        """
        etrs: list[Any] = as_list(get(body, 'air:ETR'))
        if etrs:
            numbers: list[str] = [
                number
                for etr in etrs
                for ticket in as_list(get(etr, 'air:Ticket'))
                if (number := attr(ticket, 'TicketNumber'))
            ]
            logger.info(f'Ticketing succeeded, {len(numbers)} documents issued')
            return cls(issued=True, ticket_numbers=numbers)

        failures: Any = get(body, 'air:TicketFailureInfo')
        if failures is not None:
            check_ticketing_failure(failures, context.uapi_version)

        logger.error('Ticketing response has neither ETR nor failure info')
        raise AirError(ErrorKind.TICKETING_RESPONSE_MISSING, {'keys': sorted(body)})


class VoidTicketResponse(BaseModel):
    voided: bool = True
    document_numbers: list[str] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'VoidTicketResponse':
        """
        Raises:
            AirError: TICKET_CANCEL_RESULT_UNKNOWN unless every
                      ``air:VoidResultInfo`` reports success.
        """
        results: list[Any] = as_list(get(body, 'air:VoidResultInfo'))
        if not results or any(attr(result, 'ResultType') != VOID_SUCCESS for result in results):
            logger.error(f'Void result is not a success: {results!r}')
            raise AirError(ErrorKind.TICKET_CANCEL_RESULT_UNKNOWN, {'results': results})
        return cls(
            voided=True,
            document_numbers=[n for result in results if (n := attr(result, 'DocumentNumber'))],
        )


class CancelRecordResponse(BaseModel):
    cancelled: bool = True

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'CancelRecordResponse':
        """
        Confirm a reservation or universal record cancellation.

        Raises:
            AirError: CANCEL_RESPONSE_NOT_FOUND when no response message says
                      the itinerary was cancelled.
        """
        messages: list[Any] = as_list(get(body, ns(context.uapi_version, 'common', 'ResponseMessage')))
        texts: list[str] = [node_text(message) or '' for message in messages]
        if any(CANCELLED_MARKER in message_text.upper() for message_text in texts):
            return cls(cancelled=True)
        statuses: list[Any] = as_list(get(body, 'universal:ProviderReservationStatus'))
        if statuses and all(attr(status, 'Cancelled') == 'true' for status in statuses):
            return cls(cancelled=True)
        logger.error(f'Cancellation not confirmed, messages: {texts}')
        raise AirError(ErrorKind.CANCEL_RESPONSE_NOT_FOUND, {'messages': texts})
