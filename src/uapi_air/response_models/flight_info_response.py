# uapi_air/response_models/flight_info_response.py
"""
Pydantic models for parsing FlightInformationRsp responses.

The service reports a failed lookup inside the success body as
``air:FlightInfoErrorMessage``; such messages are turned into errors by
classify_message().
"""

import logging
from datetime import datetime

from pydantic import BaseModel, Field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.faults import classify_message
from uapi_air.response_models.common import RecordModel, to_int
from uapi_air.utils import DecodedNode, as_list, attr, get, merge_leaves, node_text, parse_timestamp

logger: logging.Logger = logging.getLogger(__name__)


class FlightLeg(RecordModel):
    from_: str | None = Field(None, alias='from')
    to: str | None = None
    departure: datetime | None = None
    arrival: datetime | None = None
    duration: int | None = None
    plane: str | None = None
    origin_terminal: str | None = None
    destination_terminal: str | None = None


class FlightInfo(RecordModel):
    airline: str | None = None
    flight_number: str | None = None
    departure_date: str | None = None
    legs: list[FlightLeg] = Field(default_factory=list)


class FlightInfoResponse(BaseModel):
    flights: list[FlightInfo] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'FlightInfoResponse':
        """
        Normalize a flight information body.

        Raises:
            AirError: FLIGHT_NOT_FOUND, AIRLINE_NOT_SUPPORTED,
                      INVALID_FLIGHT_NUMBER or FLIGHT_INFO_ERROR when a flight
                      carries an error message.
        """
        flights: list[FlightInfo] = []
        for info in as_list(get(body, 'air:FlightInfo')):
            error: str | None = node_text(get(info, 'air:FlightInfoErrorMessage'))
            if error is not None:
                logger.warning(f'Flight information error: {error}')
                classify_message(error, {'flight': merge_leaves({k: v for k, v in info.items() if ':' not in k})})
            legs: list[FlightLeg] = [
                FlightLeg(
                    from_=attr(detail, 'Origin'),
                    to=attr(detail, 'Destination'),
                    departure=parse_timestamp(attr(detail, 'ScheduledDepartureTime')),
                    arrival=parse_timestamp(attr(detail, 'ScheduledArrivalTime')),
                    duration=to_int(attr(detail, 'TravelTime')),
                    plane=attr(detail, 'Equipment'),
                    origin_terminal=attr(detail, 'OriginTerminal'),
                    destination_terminal=attr(detail, 'DestinationTerminal'),
                )
                for detail in as_list(get(info, 'air:FlightInfoDetail'))
            ]
            flights.append(
                FlightInfo(
                    airline=attr(info, 'Carrier'),
                    flight_number=attr(info, 'FlightNumber'),
                    departure_date=attr(info, 'DepartureDate'),
                    legs=legs,
                )
            )
        logger.info(f'Parsed {len(flights)} flight information entries')
        return cls(flights=flights)
