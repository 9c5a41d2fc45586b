"""Tests for the availability search normalizer."""

from typing import Any

import pytest

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.response_models.availability_response import (
    AvailabilityResponse,
    ClassAvailability,
    parse_booking_counts,
)

COMMON: str = 'common_v52_0'


def _avail_segment(key: str, origin: str, destination: str, number: str, provider: str = '1G') -> dict[str, Any]:
    return {
        'Key': key,
        'Group': '0',
        'Carrier': 'PS',
        'FlightNumber': number,
        'Origin': origin,
        'Destination': destination,
        'DepartureTime': '2025-06-01T08:00:00.000+03:00',
        'ArrivalTime': '2025-06-01T09:30:00.000+02:00',
        'Equipment': 'E95',
        'FlightTime': '90',
        'air:AirAvailInfo': {
            'ProviderCode': provider,
            'air:BookingCodeInfo': [
                {'CabinClass': 'Economy', 'BookingCounts': 'Y9|B4|MC'},
                {'CabinClass': 'Business', 'BookingCounts': 'C4|DA'},
            ],
        },
    }


@pytest.fixture
def availability_body() -> dict[str, Any]:
    """Two connecting segments, a direct one and one offered by another provider only."""
    return {
        'air:AirSegmentList': {
            'air:AirSegment': [
                _avail_segment('A1', 'KBP', 'WAW', '101'),
                _avail_segment('A2', 'WAW', 'LHR', '102'),
                _avail_segment('A3', 'KBP', 'LHR', '103'),
                _avail_segment('A4', 'KBP', 'LHR', '104', provider='1V'),
            ]
        },
        'air:AirItinerarySolution': {
            'air:AirSegmentRef': [{'Key': 'A1'}, {'Key': 'A2'}, {'Key': 'A3'}, {'Key': 'A4'}],
            'air:Connection': {'SegmentIndex': '0'},
        },
        f'{COMMON}:NextResultReference': {'ProviderCode': '1G', '_': 'REF123'},
    }


class TestParseBookingCounts:
    """Tests for parse_booking_counts function."""

    def test_counts_and_status_letters(self) -> None:
        assert parse_booking_counts('Y9|MC', 'Economy') == [
            ClassAvailability(booking_class='Y', cabin='Economy', seats='9'),
            ClassAvailability(booking_class='M', cabin='Economy', seats='C'),
        ]

    def test_empty_or_malformed(self) -> None:
        assert parse_booking_counts(None, None) == []
        assert parse_booking_counts('Y||B', None) == []


class TestAvailabilityResponse:
    """Tests for AvailabilityResponse.from_decoded."""

    def test_connections_form_legs(self, availability_body: dict[str, Any]) -> None:
        response = AvailabilityResponse.from_decoded(availability_body, RequestContext(), ParseOptions())

        assert [[s.uapi_segment_ref for s in leg] for leg in response.legs] == [['A1', 'A2'], ['A3']]

    def test_segment_fields(self, availability_body: dict[str, Any]) -> None:
        response = AvailabilityResponse.from_decoded(availability_body, RequestContext(), ParseOptions())

        segment = response.legs[0][0]
        assert (segment.from_, segment.to) == ('KBP', 'WAW')
        assert segment.plane == 'E95'
        assert segment.duration == '90'
        assert [a.booking_class for a in segment.availability] == ['Y', 'B', 'M', 'C', 'D']

    def test_requested_cabins_only(self, availability_body: dict[str, Any]) -> None:
        context = RequestContext(cabins=['Business'])

        response = AvailabilityResponse.from_decoded(availability_body, context, ParseOptions())

        assert [(a.booking_class, a.seats) for a in response.legs[0][0].availability] == [('C', '4'), ('D', 'A')]

    def test_other_provider(self, availability_body: dict[str, Any]) -> None:
        response = AvailabilityResponse.from_decoded(availability_body, RequestContext(provider='1V'), ParseOptions())

        assert [[s.uapi_segment_ref for s in leg] for leg in response.legs] == [['A4']]

    def test_next_result_reference(self, availability_body: dict[str, Any]) -> None:
        response = AvailabilityResponse.from_decoded(availability_body, RequestContext(), ParseOptions())

        assert response.next_result_reference == 'REF123'
        assert response.has_more is True

    @pytest.mark.parametrize(
        'provider, expected',
        [('1G', 'TOKEN1G'), ('ACH', 'TOKENACH'), ('1P', 'TOKEN1G')],
    )
    def test_next_result_reference_per_provider(
        self, availability_body: dict[str, Any], provider: str, expected: str
    ) -> None:
        availability_body[f'{COMMON}:NextResultReference'] = [
            {'ProviderCode': '1G', '_': 'TOKEN1G'},
            {'ProviderCode': 'ACH', '_': 'TOKENACH'},
        ]

        response = AvailabilityResponse.from_decoded(
            availability_body, RequestContext(provider=provider), ParseOptions()
        )

        assert response.next_result_reference == expected
        assert response.has_more is True

    def test_last_page(self, availability_body: dict[str, Any]) -> None:
        del availability_body[f'{COMMON}:NextResultReference']

        response = AvailabilityResponse.from_decoded(availability_body, RequestContext(), ParseOptions())

        assert response.next_result_reference is None
        assert response.has_more is False

    def test_without_solutions_every_segment_is_a_leg(self, availability_body: dict[str, Any]) -> None:
        del availability_body['air:AirItinerarySolution']

        response = AvailabilityResponse.from_decoded(availability_body, RequestContext(), ParseOptions())

        assert [[s.uapi_segment_ref for s in leg] for leg in response.legs] == [['A1'], ['A2'], ['A3']]

    def test_unknown_reference_drops_the_leg(self, availability_body: dict[str, Any]) -> None:
        availability_body['air:AirItinerarySolution']['air:AirSegmentRef'][1] = {'Key': 'A404'}

        response = AvailabilityResponse.from_decoded(availability_body, RequestContext(), ParseOptions())

        assert [[s.uapi_segment_ref for s in leg] for leg in response.legs] == [['A3']]

    def test_empty_body(self) -> None:
        response = AvailabilityResponse.from_decoded({}, RequestContext(), ParseOptions())

        assert response.legs == []
        assert response.has_more is False
