"""Tests for the uAPI SOAP client."""

from datetime import date
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import requests
from lxml import etree

from uapi_air.errors import AirError, ErrorKind
from uapi_air.models import ImportBookingRequest, LowFareSearchRequest, SearchLeg, SearchPassenger
from uapi_air.uapi_client import UapiClient
from uapi_air.utils import DecodedResponse, UapiAirConfig

AIR_NS: str = 'http://www.travelport.com/schema/air_v52_0'
COMMON_NS: str = 'http://www.travelport.com/schema/common_v52_0'


def _search_request() -> LowFareSearchRequest:
    return LowFareSearchRequest(
        legs=[
            SearchLeg(from_='KBP', to='LON', departure_date=date(2025, 11, 14)),
            SearchLeg(from_='LON', to='KBP', departure_date=date(2025, 11, 21)),
        ],
        passengers=[SearchPassenger(age_category='ADT'), SearchPassenger(age_category='CNN', age=8)],
        cabins=['Economy'],
    )


class TestUapiClientInit:
    """Tests for UapiClient initialization."""

    def test_client_initialization_with_config(self, sample_config: UapiAirConfig) -> None:
        """Test client initialization with a config object."""
        client = UapiClient(config=sample_config)

        assert client.config == sample_config
        assert client.session.auth == ('Universal API/uAPI-test', 'test_password')
        assert client.session.verify is True

    def test_client_initialization_with_config_path(self, temp_config_file: Path) -> None:
        """Test client initialization from a config file."""
        client = UapiClient(config_path=temp_config_file)

        assert client.config.uapi.target_branch == 'P7000000'
        assert client.config.uapi.password.get_secret_value() == 'test_password'

    @patch('uapi_air.uapi_client.load_config')
    def test_client_initialization_without_config(
        self, mock_load: Mock, sample_config: UapiAirConfig
    ) -> None:
        """Test client initialization without config (uses default)."""
        mock_load.return_value = sample_config

        client = UapiClient()

        assert client.config == sample_config
        mock_load.assert_called_once_with()


class TestUapiClientRequestBuilding:
    """Tests for URL, header and envelope construction."""

    def test_service_url(self, sample_config: UapiAirConfig) -> None:
        client = UapiClient(config=sample_config)

        assert client.service_url('AirService') == 'https://test.example.com/uAPI/AirService'

    def test_build_headers_includes_soap_action(self, sample_config: UapiAirConfig) -> None:
        """Test that headers include SOAPAction."""
        client = UapiClient(config=sample_config)

        headers: dict[str, str] = client._build_headers('import_booking')  # pyright: ignore[reportPrivateUsage]

        assert headers['SOAPAction'] == 'import_booking'
        assert headers['Content-Type'] == 'text/xml; charset=utf-8'
        assert headers['Accept'] == 'text/xml'
        # Per-operation headers must not leak into the shared base headers
        assert 'SOAPAction' not in client.base_soap_headers

    def test_render_import_request(self, sample_config: UapiAirConfig) -> None:
        """Test that branch, provider and version from the config are rendered."""
        client = UapiClient(config=sample_config)

        rendered: str = client.render_request(ImportBookingRequest(pnr='ABC123'))

        assert 'TargetBranch="P7000000"' in rendered
        assert 'ProviderCode="1G"' in rendered
        assert 'ProviderLocatorCode="ABC123"' in rendered
        assert 'xmlns:universal="http://www.travelport.com/schema/universal_v52_0"' in rendered

    def test_render_search_request_is_well_formed(self, sample_config: UapiAirConfig) -> None:
        client = UapiClient(config=sample_config)

        rendered: str = client.render_request(_search_request())
        root = etree.fromstring(rendered.strip().encode('utf-8'))

        legs = root.findall(f'.//{{{AIR_NS}}}SearchAirLeg')
        passengers = root.findall(f'.//{{{COMMON_NS}}}SearchPassenger')
        assert len(legs) == 2
        assert len(passengers) == 2
        assert 'Economy' in rendered


class TestUapiClientExecuteOperation:
    """Tests for execute_operation method."""

    @patch('uapi_air.uapi_client.requests.Session.post')
    def test_execute_operation_success(
        self,
        mock_post: Mock,
        sample_config: UapiAirConfig,
        mock_requests_response: Mock,
        import_response_xml: str,
    ) -> None:
        """Test successful operation execution."""
        mock_requests_response.text = import_response_xml
        mock_post.return_value = mock_requests_response

        client = UapiClient(config=sample_config)
        decoded: DecodedResponse = client.execute_operation(ImportBookingRequest(pnr='PNR001'))

        assert decoded.root_name == 'universal:UniversalRecordImportRsp'
        assert decoded.fault is None
        assert decoded.body is not None
        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == 'https://test.example.com/uAPI/UniversalRecordService'
        assert kwargs['headers']['SOAPAction'] == 'import_booking'
        assert kwargs['timeout'] == sample_config.client.request_timeout
        assert b'ProviderLocatorCode="PNR001"' in kwargs['data']

    @patch('uapi_air.uapi_client.requests.Session.post')
    def test_http_500_fault_is_decoded(
        self,
        mock_post: Mock,
        sample_config: UapiAirConfig,
        mock_requests_response: Mock,
        fault_response_xml: str,
    ) -> None:
        """Test that a SOAP fault carried by HTTP 500 is returned decoded."""
        mock_requests_response.status_code = 500
        mock_requests_response.text = fault_response_xml
        mock_post.return_value = mock_requests_response

        client = UapiClient(config=sample_config)
        decoded: DecodedResponse = client.execute_operation(ImportBookingRequest(pnr='PNR001'))

        assert decoded.is_fault
        assert decoded.fault is not None
        assert decoded.fault['faultcode'] == 'Server.Business'
        mock_requests_response.raise_for_status.assert_not_called()

    @pytest.mark.parametrize(
        'text',
        [
            'Service Unavailable',
            '<html><body>Bad gateway</body></html>',
        ],
    )
    @patch('uapi_air.uapi_client.requests.Session.post')
    def test_non_soap_response(
        self,
        mock_post: Mock,
        text: str,
        sample_config: UapiAirConfig,
        mock_requests_response: Mock,
    ) -> None:
        """Test that a body which is not a SOAP envelope raises SOAP_SERVER_ERROR."""
        mock_requests_response.text = text
        mock_post.return_value = mock_requests_response

        client = UapiClient(config=sample_config)

        with pytest.raises(AirError) as excinfo:
            client.execute_operation(ImportBookingRequest(pnr='PNR001'))

        assert excinfo.value.kind is ErrorKind.SOAP_SERVER_ERROR
        assert excinfo.value.data == {'status': 200, 'body': text}

    @patch('uapi_air.uapi_client.requests.Session.post')
    def test_http_error_is_raised(
        self,
        mock_post: Mock,
        sample_config: UapiAirConfig,
        mock_requests_response: Mock,
    ) -> None:
        """Test that HTTP errors other than a SOAP fault propagate."""
        mock_requests_response.status_code = 401
        mock_requests_response.text = 'Unauthorized'
        mock_requests_response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            '401 Client Error'
        )
        mock_post.return_value = mock_requests_response

        client = UapiClient(config=sample_config)

        with pytest.raises(requests.exceptions.HTTPError, match='401'):
            client.execute_operation(ImportBookingRequest(pnr='PNR001'))

    @patch('uapi_air.uapi_client.requests.Session.post')
    def test_timeout_is_raised(self, mock_post: Mock, sample_config: UapiAirConfig) -> None:
        mock_post.side_effect = requests.exceptions.Timeout('read timed out')

        client = UapiClient(config=sample_config)

        with pytest.raises(requests.exceptions.Timeout):
            client.execute_operation(ImportBookingRequest(pnr='PNR001'))


class TestUapiClientContextManager:
    """Tests for context manager functionality."""

    @patch('uapi_air.uapi_client.requests.Session.close')
    def test_context_manager_closes_session(
        self, mock_close: Mock, sample_config: UapiAirConfig
    ) -> None:
        """Test that the session is closed on exit."""
        with UapiClient(config=sample_config) as client:
            assert isinstance(client, UapiClient)

        mock_close.assert_called_once()

    @patch('uapi_air.uapi_client.requests.Session.close')
    def test_context_manager_closes_on_exception(
        self, mock_close: Mock, sample_config: UapiAirConfig
    ) -> None:
        """Test that the session is closed even if an exception occurs."""
        with (
            pytest.raises(ValueError, match='Test error'),
            UapiClient(config=sample_config),
        ):
            raise ValueError('Test error')

        mock_close.assert_called_once()
