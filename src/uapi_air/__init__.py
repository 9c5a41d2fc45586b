# uapi_air/__init__.py

from .air_service import AirService, dispatch
from .context import ParseOptions, RequestContext
from .errors import AirError, ErrorFamily, ErrorKind
from .uapi_client import UapiClient

__all__: list[str] = [
    # errors.py
    'AirError',
    # air_service.py
    'AirService',
    'ErrorFamily',
    'ErrorKind',
    # context.py
    'ParseOptions',
    'RequestContext',
    # uapi_client.py
    'UapiClient',
    'dispatch',
]
