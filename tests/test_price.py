"""Tests for the price quote normalizer."""

from typing import Any

import pytest

from uapi_air.context import ContextPassenger, ParseOptions, RequestContext
from uapi_air.errors import AirError, ErrorKind
from uapi_air.response_models.common import TaxDetail, read_token
from uapi_air.response_models.price_response import AirPriceResponse


def _segment(key: str, group: str, origin: str, destination: str, departure: str, number: str) -> dict[str, Any]:
    return {
        'Key': key,
        'Group': group,
        'Carrier': 'PS',
        'FlightNumber': number,
        'Origin': origin,
        'Destination': destination,
        'DepartureTime': departure,
        'Equipment': '738',
        'FlightTime': '120',
    }


@pytest.fixture
def price_body() -> dict[str, Any]:
    """An AirPriceRsp body for KBP-WAW-LHR and back, priced for an adult and a child."""
    booking_infos: list[dict[str, str]] = [
        {'BookingCode': 'Y', 'CabinClass': 'Economy', 'FareInfoRef': 'F1', 'SegmentRef': 'S1'},
        {'BookingCode': 'Y', 'CabinClass': 'Economy', 'FareInfoRef': 'F1', 'SegmentRef': 'S2'},
        {'BookingCode': 'M', 'CabinClass': 'Economy', 'FareInfoRef': 'F2', 'SegmentRef': 'S3'},
    ]
    return {
        'air:AirItinerary': {
            'air:AirSegment': [
                # Listed out of travel order
                _segment('S3', '1', 'LHR', 'KBP', '2025-06-10T12:00:00.000+01:00', '202'),
                _segment('S1', '0', 'KBP', 'WAW', '2025-06-01T08:00:00.000+03:00', '101'),
                _segment('S2', '0', 'WAW', 'LHR', '2025-06-01T10:00:00.000+02:00', '102'),
            ]
        },
        'air:AirPriceResult': {
            'air:AirPricingSolution': {
                'Key': 'SOL1',
                'TotalPrice': 'UAH9000',
                'BasePrice': 'UAH7000',
                'Taxes': 'UAH2000',
                'air:AirPricingInfo': [
                    {
                        'Key': 'PI1',
                        'PlatingCarrier': 'PS',
                        'TotalPrice': 'UAH5000',
                        'BasePrice': 'UAH4000',
                        'Taxes': 'UAH1000',
                        'air:FareInfo': [
                            {'Key': 'F1', 'FareBasis': 'YOW'},
                            {'Key': 'F2', 'FareBasis': 'MOW'},
                        ],
                        'air:BookingInfo': booking_infos,
                        'air:TaxInfo': [
                            {'Category': 'UA', 'Amount': 'UAH700'},
                            {
                                'Category': 'XF',
                                'Amount': 'UAH300',
                                'common_v52_0:TaxDetail': {'OriginAirport': 'KBP', 'Amount': 'UAH300'},
                            },
                        ],
                        'air:FareCalc': 'IEV PS X/WAW PS LON 100.00 NUC100.00 END ROE1.0',
                        'air:PassengerType': {'Code': 'ADT'},
                    },
                    {
                        'Key': 'PI2',
                        'PlatingCarrier': 'PS',
                        'TotalPrice': 'UAH4000',
                        'air:BookingInfo': booking_infos,
                        'air:PassengerType': {'Code': 'CNN', 'Age': '8'},
                    },
                ],
            }
        },
    }


@pytest.fixture
def price_context() -> RequestContext:
    return RequestContext(
        passengers=[
            ContextPassenger(age_category='ADT', first_name='IVAN', last_name='IVANOV'),
            ContextPassenger(age_category='CHD', age=8),
        ]
    )


class TestAirPriceResponse:
    """Tests for AirPriceResponse.from_decoded."""

    def test_totals_and_reference(self, price_body: dict[str, Any], price_context: RequestContext) -> None:
        quote = AirPriceResponse.from_decoded(price_body, price_context, ParseOptions()).quote

        assert quote.total_price == 'UAH9000'
        assert quote.plating_carrier == 'PS'
        assert quote.uapi_pricing_solution_ref == 'SOL1'
        assert quote.booking_components[0].uapi_fare_reference == 'SOL1'

    def test_directions_follow_segment_groups(
        self, price_body: dict[str, Any], price_context: RequestContext
    ) -> None:
        quote = AirPriceResponse.from_decoded(price_body, price_context, ParseOptions()).quote

        assert len(quote.directions) == 2
        assert all(len(direction) == 1 for direction in quote.directions)
        outbound = quote.directions[0][0]
        assert (outbound.from_, outbound.to) == ('KBP', 'LHR')
        assert [s.flight_number for s in outbound.segments] == ['101', '102']
        assert outbound.segments[0].fare_basis_code == 'YOW'
        assert quote.directions[1][0].segments[0].booking_class == 'M'

    def test_passenger_fares(self, price_body: dict[str, Any], price_context: RequestContext) -> None:
        quote = AirPriceResponse.from_decoded(price_body, price_context, ParseOptions()).quote

        adult = quote.passenger_fares['ADT']
        assert adult.fare_calculation == 'IEV PS X/WAW PS LON 100.00 NUC100.00 END ROE1.0'
        assert [tax.type for tax in adult.taxes_info] == ['UA', 'XF']
        assert adult.taxes_info[1].details == [TaxDetail(airport='KBP', value='UAH300')]
        assert quote.passenger_fares['CNN'].total_price == 'UAH4000'

    def test_child_categories_are_interchangeable(
        self, price_body: dict[str, Any], price_context: RequestContext
    ) -> None:
        quote = AirPriceResponse.from_decoded(price_body, price_context, ParseOptions()).quote

        assert [p.uapi_pricing_info_ref for p in quote.passengers] == ['PI1', 'PI2']
        assert quote.passengers[0].last_name == 'IVANOV'

    def test_unmatched_passenger_has_no_reference(self, price_body: dict[str, Any]) -> None:
        context = RequestContext(passengers=[ContextPassenger(age_category='INF')])

        quote = AirPriceResponse.from_decoded(price_body, context, ParseOptions()).quote

        assert quote.passengers[0].uapi_pricing_info_ref is None

    def test_pricing_token(self, price_body: dict[str, Any], price_context: RequestContext) -> None:
        first = AirPriceResponse.from_decoded(price_body, price_context, ParseOptions()).quote
        second = AirPriceResponse.from_decoded(price_body, price_context, ParseOptions()).quote

        payload: dict[str, Any] = read_token(first.pricing_token)

        assert first.pricing_token == second.pricing_token
        assert payload['solution'] == 'SOL1'
        assert payload['segments'] == ['S3', 'S1', 'S2']
        assert payload['passengers'] == ['ADT', 'CHD']

    def test_pricing_solution_changes_the_token(
        self, price_body: dict[str, Any], price_context: RequestContext
    ) -> None:
        repriced_context = price_context.model_copy(update={'pricing_solution': {'Key': 'OLD'}})

        plain = AirPriceResponse.from_decoded(price_body, price_context, ParseOptions()).quote
        repriced = AirPriceResponse.from_decoded(price_body, repriced_context, ParseOptions()).quote

        assert plain.pricing_token != repriced.pricing_token
        assert read_token(repriced.pricing_token)['context'] == {'Key': 'OLD'}

    @pytest.mark.parametrize('missing', ['air:AirItinerary', 'air:AirPriceResult'])
    def test_missing_itinerary_or_result(self, price_body: dict[str, Any], missing: str) -> None:
        del price_body[missing]

        with pytest.raises(AirError) as excinfo:
            AirPriceResponse.from_decoded(price_body, RequestContext(), ParseOptions())

        assert excinfo.value.kind is ErrorKind.RESPONSE_DATA_MISSING
