"""Tests for the seat map normalizer."""

from typing import Any

import pytest

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.errors import AirError, ErrorKind
from uapi_air.response_models.seat_map_response import SeatMapResponse


@pytest.fixture
def seat_map_body() -> dict[str, Any]:
    return {
        'air:AirSegment': [
            {'Key': 'S1', 'Carrier': 'PS', 'FlightNumber': '101', 'Origin': 'KBP', 'Destination': 'WAW',
             'DepartureTime': '2025-06-01T08:00:00.000+03:00', 'Equipment': 'E95'},
            {'Key': 'S2', 'Carrier': 'PS', 'FlightNumber': '102', 'Origin': 'WAW', 'Destination': 'LHR',
             'DepartureTime': '2025-06-01T10:00:00.000+02:00'},
        ],
        'air:OptionalServices': {
            'air:OptionalService': {'Key': 'OS1', 'Type': 'PreReservedSeatAssignment', 'TotalPrice': 'EUR25.00'}
        },
        'air:Rows': {
            'SegmentRef': 'S1',
            'air:Row': [
                {
                    'Number': '1',
                    'air:Facility': [
                        {
                            'Type': 'Seat',
                            'SeatCode': '1-A',
                            'Availability': 'Available',
                            'Paid': 'true',
                            'OptionalServiceRef': 'OS1',
                            'air:Characteristic': [{'Value': 'Window'}, {'Value': 'ExitRow'}],
                        },
                        {'Type': 'Aisle'},
                        {'Type': 'Seat', 'SeatCode': '1-C', 'Availability': 'Occupied'},
                    ],
                },
                {'Number': '2', 'air:Facility': {'Type': 'Seat', 'SeatCode': '2-A', 'Availability': 'Blocked'}},
            ],
        },
    }


class TestSeatMapResponse:
    """Tests for SeatMapResponse.from_decoded."""

    def test_one_map_per_segment(self, seat_map_body: dict[str, Any]) -> None:
        seat_maps = SeatMapResponse.from_decoded(seat_map_body, RequestContext(), ParseOptions()).seat_maps

        assert [m.segment.uapi_segment_ref for m in seat_maps] == ['S1', 'S2']
        assert [row.number for row in seat_maps[0].rows] == [1, 2]
        assert seat_maps[1].rows == []

    def test_facilities(self, seat_map_body: dict[str, Any]) -> None:
        row = SeatMapResponse.from_decoded(seat_map_body, RequestContext(), ParseOptions()).seat_maps[0].rows[0]

        assert [f.type for f in row.facilities] == ['Seat', 'Aisle', 'Seat']
        assert [s.seat_code for s in row.seats] == ['1-A', '1-C']
        paid = row.seats[0]
        assert paid.paid is True
        assert paid.price == 'EUR25.00'
        assert paid.characteristics == ['Window', 'ExitRow']
        assert row.seats[1].paid is False
        assert row.seats[1].price is None

    def test_missing_segments(self) -> None:
        with pytest.raises(AirError) as excinfo:
            SeatMapResponse.from_decoded({'air:Rows': {}}, RequestContext(), ParseOptions())

        assert excinfo.value.kind is ErrorKind.RESPONSE_DATA_MISSING
