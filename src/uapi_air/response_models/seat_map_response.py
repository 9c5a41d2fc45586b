# uapi_air/response_models/seat_map_response.py
"""
Pydantic models for parsing SeatMapRsp responses.

Rows are returned per segment (``air:Rows SegmentRef``). A seat that must be
paid for points at an ``air:OptionalService`` through OptionalServiceRef;
its price is copied onto the facility.
"""

import logging

from pydantic import BaseModel, Field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.response_models.common import RecordModel, Segment, build_segment, to_int
from uapi_air.utils import DecodedNode, as_list, attr, get, index_by_key, require

logger: logging.Logger = logging.getLogger(__name__)

SEAT_FACILITY: str = 'Seat'


class Facility(RecordModel):
    """
    One position of a seat row.

    Attributes:
        type: 'Seat', 'Aisle', 'Hallway', ...
        seat_code: Seat designator such as '12A' (seats only).
        availability: 'Available', 'Occupied', 'Blocked', 'NoSeat', ...
        paid: True when the seat is sold as an optional service.
        price: Price of a paid seat, e.g. 'EUR25.00'.
    """

    type: str | None = None
    seat_code: str | None = None
    availability: str | None = None
    paid: bool = False
    price: str | None = None
    characteristics: list[str] = Field(default_factory=list)


class SeatRow(RecordModel):
    number: int | None = None
    facilities: list[Facility] = Field(default_factory=list)

    @property
    def seats(self) -> list[Facility]:
        return [facility for facility in self.facilities if facility.type == SEAT_FACILITY]


class SegmentSeatMap(RecordModel):
    segment: Segment
    rows: list[SeatRow] = Field(default_factory=list)


def _parse_facility(node: DecodedNode, services: dict[str, DecodedNode]) -> Facility:
    service: DecodedNode | None = services.get(attr(node, 'OptionalServiceRef') or '')
    return Facility(
        type=attr(node, 'Type'),
        seat_code=attr(node, 'SeatCode'),
        availability=attr(node, 'Availability'),
        paid=attr(node, 'Paid') == 'true' or service is not None,
        price=attr(service, 'TotalPrice'),
        characteristics=[
            value
            for characteristic in as_list(get(node, 'air:Characteristic'))
            if (value := attr(characteristic, 'Value'))
        ],
    )


class SeatMapResponse(BaseModel):
    seat_maps: list[SegmentSeatMap] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'SeatMapResponse':
        """
        Normalize a seat map body into one seat map per segment.

        Raises:
            AirError: RESPONSE_DATA_MISSING without segments.
        """
        segment_nodes: list[DecodedNode] = as_list(require(body, 'air:AirSegment'))
        services: dict[str, DecodedNode] = index_by_key(get(body, 'air:OptionalServices/air:OptionalService'))

        rows_by_segment: dict[str, list[SeatRow]] = {}
        for rows_node in as_list(get(body, 'air:Rows')):
            rows: list[SeatRow] = [
                SeatRow(
                    number=to_int(attr(row, 'Number')),
                    facilities=[_parse_facility(node, services) for node in as_list(get(row, 'air:Facility'))],
                )
                for row in as_list(get(rows_node, 'air:Row'))
            ]
            rows_by_segment.setdefault(attr(rows_node, 'SegmentRef') or '', []).extend(rows)

        seat_maps: list[SegmentSeatMap] = [
            SegmentSeatMap(segment=build_segment(node), rows=rows_by_segment.get(attr(node, 'Key') or '', []))
            for node in segment_nodes
        ]
        logger.info(f'Parsed seat maps for {len(seat_maps)} segments')
        return cls(seat_maps=seat_maps)
