"""Tests for operation dispatch and the AirService entry points."""

from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any
from unittest.mock import Mock, patch

import pytest

from uapi_air.air_service import OPERATIONS, AirService, dispatch
from uapi_air.context import ParseOptions, RequestContext
from uapi_air.errors import AirError, ErrorKind
from uapi_air.faults import BOOKING_RULES
from uapi_air.models import (
    AirPriceRequest,
    FlightInfoItem,
    FlightInfoRequest,
    GetTicketsRequest,
    ImportBookingRequest,
    LowFareSearchRequest,
    SearchLeg,
    SearchPassenger,
    SegmentRequest,
)
from uapi_air.response_models import BookingResponse, FlightInfoResponse, GetTicketsResponse
from uapi_air.uapi_client import UapiClient
from uapi_air.utils import DecodedResponse, UapiAirConfig, decode_envelope

FaultFactory = Callable[..., dict[str, Any]]


def _fault(fault: dict[str, Any]) -> DecodedResponse:
    return DecodedResponse(root_name='SOAP:Fault', fault=fault)


@pytest.fixture
def client(sample_config: UapiAirConfig) -> Mock:
    """A UapiClient stand-in that never touches the network."""
    mock_client = Mock(spec=UapiClient)
    mock_client.config = sample_config
    return mock_client


class TestOperations:
    """Tests for the operation table."""

    def test_every_operation_is_registered(self) -> None:
        assert set(OPERATIONS) == {
            'low_fare_search',
            'price',
            'fare_rules',
            'availability',
            'import_booking',
            'get_ticket',
            'get_tickets',
            'exchange_quote',
            'exchange',
            'seat_map',
            'emd_list',
            'emd_item',
            'flight_info',
            'ticket',
            'void_ticket',
            'cancel_record',
        }

    def test_record_operations_use_booking_rules(self) -> None:
        assert OPERATIONS['import_booking'].rules == BOOKING_RULES
        assert OPERATIONS['cancel_record'].rules == BOOKING_RULES
        assert OPERATIONS['low_fare_search'].rules != BOOKING_RULES


class TestDispatch:
    """Tests for dispatch()."""

    def test_body_is_normalized(
        self, import_response_xml: str, context: RequestContext, options: ParseOptions
    ) -> None:
        result = dispatch('import_booking', decode_envelope(import_response_xml), context, options)

        assert isinstance(result, BookingResponse)
        assert result.bookings[0].pnr == 'PNR001'

    def test_default_options(self, import_response_xml: str, context: RequestContext) -> None:
        result = dispatch('import_booking', decode_envelope(import_response_xml), context)

        assert isinstance(result, BookingResponse)

    def test_booking_fault_uses_booking_rules(
        self, fault_response_xml: str, context: RequestContext
    ) -> None:
        with pytest.raises(AirError) as excinfo:
            dispatch('import_booking', decode_envelope(fault_response_xml), context)

        assert excinfo.value.kind is ErrorKind.RECORD_LOCATOR_NOT_FOUND

    def test_same_fault_is_unclassified_for_air_operations(
        self, fault_response_xml: str, context: RequestContext
    ) -> None:
        with pytest.raises(AirError) as excinfo:
            dispatch('low_fare_search', decode_envelope(fault_response_xml), context)

        assert excinfo.value.kind is ErrorKind.SERVICE_ERROR
        assert excinfo.value.data['faultcode'] == 'Server.Business'

    def test_no_tickets_fault_gives_empty_listing(
        self, make_fault: FaultFactory, context: RequestContext
    ) -> None:
        fault = make_fault('1', 'No electronic tickets found for this reservation')

        result = dispatch('get_tickets', _fault(fault), context)

        assert isinstance(result, GetTicketsResponse)
        assert result.tickets == []

    def test_no_tickets_fault_is_an_error_for_a_single_ticket(
        self, make_fault: FaultFactory, context: RequestContext
    ) -> None:
        fault = make_fault('1', 'No electronic tickets found for this reservation')

        with pytest.raises(AirError) as excinfo:
            dispatch('get_ticket', _fault(fault), context)

        assert excinfo.value.kind is ErrorKind.TICKETS_NOT_ISSUED

    def test_other_ticket_listing_fault(self, make_fault: FaultFactory, context: RequestContext) -> None:
        fault = make_fault('345', 'Unable to retrieve documents')

        with pytest.raises(AirError) as excinfo:
            dispatch('get_tickets', _fault(fault), context)

        assert excinfo.value.kind is ErrorKind.UNABLE_TO_RETRIEVE

    def test_unknown_operation(self, import_response_xml: str, context: RequestContext) -> None:
        with pytest.raises(KeyError):
            dispatch('hotel_search', decode_envelope(import_response_xml), context)


class TestAirService:
    """Tests for AirService methods over a mocked client."""

    def test_options_come_from_config(self, client: Mock) -> None:
        service = AirService(client)

        assert service.options.stopover_threshold_hours == 24
        assert service.options.allow_no_provider_locator_code_retrieval is False

    def test_explicit_options(self, client: Mock) -> None:
        options = ParseOptions(stopover_threshold_hours=6)

        assert AirService(client, options).options is options

    def test_context_uses_configured_version_and_provider(self, client: Mock) -> None:
        context = AirService(client).context(
            [SearchPassenger(age_category='ADT'), SearchPassenger(age_category='CNN', age=8)],
            ['Economy'],
        )

        assert context.uapi_version == 'v52_0'
        assert context.provider == '1G'
        assert [(p.age_category, p.age) for p in context.passengers] == [('ADT', None), ('CNN', 8)]
        assert context.cabins == ['Economy']
        assert context.pricing_solution is None

    def test_import_booking(self, client: Mock, import_response_xml: str) -> None:
        client.execute_operation.return_value = decode_envelope(import_response_xml)
        request = ImportBookingRequest(pnr='PNR001')

        booking = AirService(client).import_booking(request)

        assert booking.bookings[0].uapi_ur_locator == 'UR0001'
        client.execute_operation.assert_called_once_with(request)

    def test_import_booking_fault(self, client: Mock, fault_response_xml: str) -> None:
        client.execute_operation.return_value = decode_envelope(fault_response_xml)

        with pytest.raises(AirError) as excinfo:
            AirService(client).import_booking(ImportBookingRequest(pnr='PNR001'))

        assert excinfo.value.kind is ErrorKind.RECORD_LOCATOR_NOT_FOUND

    def test_get_tickets_without_tickets(self, client: Mock, make_fault: FaultFactory) -> None:
        client.execute_operation.return_value = _fault(make_fault('1', 'NO TICKETS'))

        response = AirService(client).get_tickets(GetTicketsRequest(reservation_locator_code='AR0001'))

        assert response.tickets == []

    def test_flight_info(self, client: Mock) -> None:
        client.execute_operation.return_value = DecodedResponse(
            root_name='air:FlightInformationRsp',
            body={'air:FlightInfo': {'Carrier': 'PS', 'FlightNumber': '101', 'DepartureDate': '2025-06-01'}},
        )
        request = FlightInfoRequest(
            flights=[FlightInfoItem(airline='PS', flight_number='101', departure=date(2025, 6, 1))]
        )

        response = AirService(client).flight_info(request)

        assert isinstance(response, FlightInfoResponse)
        assert response.flights[0].flight_number == '101'

    @patch('uapi_air.air_service.dispatch')
    def test_low_fare_search_context(self, mock_dispatch: Mock, client: Mock) -> None:
        request = LowFareSearchRequest(
            legs=[SearchLeg(from_='KBP', to='LON', departure_date=date(2025, 11, 14))],
            passengers=[SearchPassenger(age_category='ADT'), SearchPassenger(age_category='INF', age=1)],
            cabins=['Business'],
        )

        AirService(client).low_fare_search(request)

        operation, _, context, _ = mock_dispatch.call_args.args
        assert operation == 'low_fare_search'
        assert [p.age_category for p in context.passengers] == ['ADT', 'INF']
        assert context.cabins == ['Business']

    @patch('uapi_air.air_service.dispatch')
    def test_price_carries_pricing_solution(self, mock_dispatch: Mock, client: Mock) -> None:
        request = AirPriceRequest(
            segments=[
                SegmentRequest(
                    from_='KBP',
                    to='LHR',
                    departure=datetime(2025, 6, 1, 8, 0, tzinfo=UTC),
                    arrival=datetime(2025, 6, 1, 10, 0, tzinfo=UTC),
                    airline='PS',
                    flight_number='101',
                    booking_class='Y',
                )
            ],
            passengers=[SearchPassenger(age_category='ADT')],
        )
        solution: dict[str, Any] = {'Key': 'SOL1', 'TotalPrice': 'UAH1000'}

        AirService(client).price(request, pricing_solution=solution)

        context: RequestContext = mock_dispatch.call_args.args[2]
        assert context.pricing_solution == solution
        assert [p.age_category for p in context.passengers] == ['ADT']
