# uapi_air/uapi_client.py
"""
uAPI SOAP Client

This module provides the transport client for the Travelport Universal API.
It handles credentials, request construction using Jinja2 templates,
communication with the service endpoints and decoding of the SOAP envelope.
"""

import logging
from pathlib import Path
from types import TracebackType

import requests
from jinja2 import Environment, FileSystemLoader, Template
from lxml import etree

from uapi_air.errors import AirError, ErrorKind
from uapi_air.models import UapiOperationRequest
from uapi_air.utils import (
    DecodedResponse,
    UapiAirConfig,
    decode_envelope,
    load_config,
    setup_logger,
)

# Set up module-level logger
logger: logging.Logger = logging.getLogger(__name__)


class UapiClient:
    """
    Client for posting SOAP requests to uAPI.

    This class renders request models into SOAP envelopes, posts them to the
    service each model names and decodes the envelope it gets back. It does
    NOT normalize responses or classify faults; that belongs to AirService.

    Attributes:
        config: The uAPI configuration object containing endpoint and credentials.
        session: The requests session carrying HTTP basic credentials.
        base_soap_headers: The base HTTP headers used for all SOAP requests.
                          The SOAPAction header is added per-operation.
        jinja_env: The Jinja2 environment for loading and rendering templates.

    Usage:
        Context Manager (Recommended):
            >>> with UapiClient() as client:
            >>>     decoded = client.execute_operation(request)
            >>> # The HTTP session is closed when exiting the with block

        Manual Management:
            >>> client = UapiClient()
            >>> try:
            >>>     decoded = client.execute_operation(request)
            >>> finally:
            >>>     client.close()
    """

    def __init__(
        self, config_path: Path | None = None, config: UapiAirConfig | None = None
    ) -> None:
        """
        Initialize the uAPI client with configuration.

        Args:
            config_path: Config file to load. When None, load_config() looks
                         for its default location.
            config: Already loaded configuration; takes precedence over
                    config_path.

        Raises:
            FileNotFoundError: If the config file or the bundled templates
                               are missing.
            ValueError: If the config file is invalid.
        """
        # --- Configuration and logging ---
        if config is not None:
            self.config: UapiAirConfig = config
            logger.debug('UapiClient uses an injected configuration')
        elif config_path is not None:
            logger.info('Loading uAPI configuration from: %r', config_path)
            self.config = load_config(config_path)
        else:
            self.config = load_config()

        # Configure the package-level logger (all module loggers inherit from it)
        setup_logger(self.config.logging)

        # --- HTTP session ---
        # Basic credentials ride on every request; uAPI has no login call
        self.session: requests.Session = requests.Session()
        self.session.auth = (
            self.config.uapi.username,
            self.config.uapi.password.get_secret_value(),
        )
        self.session.verify = self.config.client.verify_ssl
        self.base_soap_headers: dict[str, str] = {
            'Content-Type': 'text/xml; charset=utf-8',
            'Accept': 'text/xml',
        }

        # --- Request templates ---
        templates_dir: Path = Path(__file__).parent / 'templates'
        if not templates_dir.is_dir():
            message: str = f'uAPI request templates missing at: {templates_dir}'
            logger.error(message)
            raise FileNotFoundError(message)

        self.jinja_env: Environment = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

        logger.info(
            'UapiClient ready for branch %r at %s (schema %s, provider %s)',
            self.config.uapi.target_branch,
            self.config.uapi.endpoint_url,
            self.config.uapi.version,
            self.config.uapi.provider,
        )

    def service_url(self, service_name: str) -> str:
        """Full URL of a uAPI service, e.g. '<endpoint>/AirService'."""
        return f'{str(self.config.uapi.endpoint_url).rstrip("/")}/{service_name}'

    def _build_headers(self, operation_name: str) -> dict[str, str]:
        """Base SOAP headers plus the SOAPAction of ``operation_name``."""
        return {**self.base_soap_headers, 'SOAPAction': operation_name}

    def render_request(self, request_model: UapiOperationRequest) -> str:
        """
        Render the SOAP envelope for a validated request model.

        The branch, provider and schema version from the configuration are
        added to the template context of every request; the model's own
        values win on a name clash.

        Raises:
            jinja2.TemplateNotFound: If the model names a template that is
                                     not bundled.
        """
        template: Template = self.jinja_env.get_template(request_model.template_name)
        template_context: dict[str, object] = {
            'target_branch': self.config.uapi.target_branch,
            'provider': self.config.uapi.provider,
            'uapi_version': self.config.uapi.version,
            **request_model.to_soap_format(),
        }
        logger.debug(
            'Rendering %r with %d context values',
            request_model.template_name,
            len(template_context),
        )
        return template.render(template_context)

    def _send_request(
        self,
        operation_name: str,
        url: str,
        headers: dict[str, str],
        body: str,
    ) -> requests.Response:
        """
        POST a SOAP envelope and return the HTTP response.

        uAPI reports SOAP faults with HTTP 500, so a 500 that carries a body
        is handed back for fault decoding. Any other error status raises.

        Raises:
            requests.exceptions.Timeout: If connecting or reading times out.
            requests.exceptions.HTTPError: For an error status without a
                                           SOAP fault to decode.
            requests.exceptions.RequestException: For other network errors.
        """
        connect_timeout, read_timeout = self.config.client.request_timeout
        logger.debug(
            'POST %s for %r (connect %ss, read %ss)',
            url,
            operation_name,
            connect_timeout,
            read_timeout,
        )

        try:
            response: requests.Response = self.session.post(
                url,
                data=body.encode('utf-8'),
                headers=headers,
                timeout=self.config.client.request_timeout,
            )
        except requests.exceptions.Timeout as timeout_error:
            logger.error(
                '%r timed out after (connect %ss, read %ss): %r',
                operation_name,
                connect_timeout,
                read_timeout,
                timeout_error,
            )
            raise
        except requests.exceptions.RequestException as request_error:
            logger.error('%r failed to reach %s: %r', operation_name, url, request_error)
            raise

        if response.status_code == 500 and response.text:
            logger.warning('%r answered HTTP 500; decoding it as a SOAP fault', operation_name)
            return response

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as http_error:
            logger.error('%r got HTTP %r: %r', operation_name, response.status_code, http_error)
            logger.debug('--- request envelope ---\n%s', body)
            logger.debug('--- response body ---\n%s', response.text)
            raise

        logger.info('%r answered HTTP %r', operation_name, response.status_code)
        return response

    def execute_operation(
        self,
        request_model: UapiOperationRequest,
    ) -> DecodedResponse:
        """
        Execute a SOAP operation and decode the envelope it returns.

        Args:
            request_model: A validated request model. It knows its own
                           operation, template and service names.

        Returns:
            DecodedResponse with either the decoded body or the SOAP fault.

        Raises:
            AirError: SOAP_SERVER_ERROR when the response is not a SOAP
                      envelope.
            requests.exceptions.HTTPError: If the server returns an HTTP error.
            requests.exceptions.Timeout: If the request times out.
            requests.exceptions.RequestException: For other network-level errors.
            jinja2.TemplateNotFound: If the template file doesn't exist.

        Example:
            >>> with UapiClient() as client:
            >>>     decoded = client.execute_operation(
            >>>         ImportBookingRequest(pnr='ABC123')
            >>>     )
        """
        operation_name: str = request_model.operation_name
        logger.info('Executing uAPI operation: %r', operation_name)

        headers: dict[str, str] = self._build_headers(operation_name)
        body: str = self.render_request(request_model)
        url: str = self.service_url(request_model.service_name)

        response: requests.Response = self._send_request(operation_name, url, headers, body)

        try:
            return decode_envelope(response.text)
        except (etree.XMLSyntaxError, ValueError) as decode_error:
            logger.error(
                '%r answered with something other than a SOAP envelope: %r',
                operation_name,
                decode_error,
            )
            logger.debug('--- response body ---\n%s', response.text)
            raise AirError(
                ErrorKind.SOAP_SERVER_ERROR,
                {'status': response.status_code, 'body': response.text},
            ) from decode_error

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
        logger.debug('uAPI HTTP session closed')

    def __enter__(self) -> 'UapiClient':
        """
        Enter the runtime context for the client.

        Returns:
            The client instance itself.
        """
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """
        Exit the runtime context and close the HTTP session.

        Exceptions raised inside the with block are not suppressed.
        """
        self.close()
