"""Pytest configuration and shared fixtures for uapi_air tests."""

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import yaml
from requests import Response

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.utils import UapiAirConfig

VERSION: str = 'v52_0'
COMMON: str = f'common_{VERSION}'

FaultFactory = Callable[..., dict[str, Any]]


@pytest.fixture
def sample_config() -> UapiAirConfig:
    """Create a sample UapiAirConfig for testing."""
    config_dict: dict[str, Any] = {
        'uapi': {
            'endpoint_url': 'https://test.example.com/uAPI',
            'username': 'Universal API/uAPI-test',
            'password': 'test_password',
            'target_branch': 'P7000000',
            'provider': '1G',
            'version': VERSION,
        },
        'client': {
            'request_timeout': [10, 30],
            'verify_ssl': True,
        },
        'parsing': {
            'allow_no_provider_locator_code_retrieval': False,
            'stopover_threshold_hours': 24,
        },
        'logging': {
            'console_level': 'INFO',
        },
    }
    return UapiAirConfig.model_validate(config_dict)


@pytest.fixture
def temp_config_file(tmp_path: Path, sample_config: UapiAirConfig) -> Path:
    """Create a temporary config file for testing."""
    config_path: Path = tmp_path / 'config.yaml'

    config_dict: dict[str, Any] = sample_config.model_dump(mode='json')
    # SecretStr dumps masked; write the real value back
    config_dict['uapi']['password'] = sample_config.uapi.password.get_secret_value()

    config_path.write_text(yaml.safe_dump(config_dict, sort_keys=False))

    return config_path


@pytest.fixture
def context() -> RequestContext:
    """Request context with default version and provider."""
    return RequestContext(uapi_version=VERSION)


@pytest.fixture
def options() -> ParseOptions:
    return ParseOptions()


@pytest.fixture
def make_fault() -> FaultFactory:
    """
    Build a fault record shaped the way decode_envelope() returns it.

    The factory takes code, description and faultstring; extra detail
    children can be passed as ``detail_extra``.
    """

    def _make_fault(
        code: str | None,
        description: str = '',
        faultstring: str | None = None,
        faultcode: str = 'Server.Business',
        detail_extra: dict[str, Any] | None = None,
        version: str = VERSION,
    ) -> dict[str, Any]:
        common: str = f'common_{version}'
        error_info: dict[str, Any] = {
            f'xmlns:{common}': f'http://www.travelport.com/schema/{common}',
            f'{common}:Service': 'AIRSVC',
            f'{common}:Type': 'Business',
            f'{common}:Description': description,
            f'{common}:TransactionId': 'A1B2C3D4',
        }
        if code is not None:
            error_info[f'{common}:Code'] = code
        detail: dict[str, Any] = {f'{common}:ErrorInfo': error_info}
        if detail_extra:
            detail.update(detail_extra)
        return {
            'faultcode': faultcode,
            'faultstring': faultstring if faultstring is not None else description,
            'detail': detail,
        }

    return _make_fault


@pytest.fixture
def soap_envelope() -> Callable[[str], str]:
    """Wrap a response element in a SOAP envelope."""

    def _wrap(payload: str) -> str:
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<SOAP:Envelope xmlns:SOAP="http://schemas.xmlsoap.org/soap/envelope/">
    <SOAP:Body>
        {payload}
    </SOAP:Body>
</SOAP:Envelope>"""

    return _wrap


@pytest.fixture
def import_response_xml(soap_envelope: Callable[[str], str]) -> str:
    """A minimal UniversalRecordImportRsp envelope."""
    return soap_envelope(
        f"""<universal:UniversalRecordImportRsp TransactionId="T1" ResponseTime="120"
            xmlns:universal="http://www.travelport.com/schema/universal_{VERSION}"
            xmlns:{COMMON}="http://www.travelport.com/schema/{COMMON}"
            xmlns:air="http://www.travelport.com/schema/air_{VERSION}">
            <universal:UniversalRecord LocatorCode="UR0001" Version="2" Status="Active">
                <{COMMON}:BookingTraveler Key="BT1" TravelerType="ADT" Age="30">
                    <{COMMON}:BookingTravelerName First="IVAN" Last="IVANOV" Prefix="MR"/>
                </{COMMON}:BookingTraveler>
                <universal:ProviderReservationInfo Key="PR1" ProviderCode="1G" LocatorCode="PNR001"
                    OwningPCC="7J8J" CreateDate="2021-05-10T10:00:00.000+00:00"/>
                <air:AirReservation LocatorCode="AR0001">
                    <{COMMON}:SupplierLocator SupplierCode="PS" SupplierLocatorCode="PSLOC1"
                        CreateDateTime="2021-05-10T10:01:00.000+00:00"/>
                    <air:AirSegment Key="S1" Group="0" Carrier="PS" FlightNumber="101" Origin="KBP"
                        Destination="LHR" DepartureTime="2021-06-01T08:00:00.000+03:00"
                        ArrivalTime="2021-06-01T10:00:00.000+01:00" ClassOfService="Y"
                        CabinClass="Economy" Status="HK" TravelOrder="1" ProviderCode="1G"/>
                </air:AirReservation>
            </universal:UniversalRecord>
        </universal:UniversalRecordImportRsp>"""
    )


@pytest.fixture
def fault_response_xml(soap_envelope: Callable[[str], str]) -> str:
    """A SOAP fault envelope with a uAPI ErrorInfo detail."""
    return soap_envelope(
        f"""<SOAP:Fault>
            <faultcode>Server.Business</faultcode>
            <faultstring>Unable to retrieve record: Record locator not found</faultstring>
            <detail>
                <{COMMON}:ErrorInfo xmlns:{COMMON}="http://www.travelport.com/schema/{COMMON}">
                    <{COMMON}:Code>3130</{COMMON}:Code>
                    <{COMMON}:Service>UNIVERSAL</{COMMON}:Service>
                    <{COMMON}:Type>Business</{COMMON}:Type>
                    <{COMMON}:Description>Record locator not found</{COMMON}:Description>
                    <{COMMON}:TransactionId>A1B2C3D4</{COMMON}:TransactionId>
                </{COMMON}:ErrorInfo>
            </detail>
        </SOAP:Fault>"""
    )


@pytest.fixture
def mock_requests_response() -> Mock:
    """Create a mock requests.Response object."""
    response = Mock(spec=Response)
    response.status_code = 200
    response.text = ''
    response.headers = {'Content-Type': 'text/xml'}
    return response
