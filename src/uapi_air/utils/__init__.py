# uapi_air/utils/__init__.py

from .accessor import (
    DecodedNode,
    as_list,
    attr,
    first,
    get,
    index_by_key,
    merge_leaves,
    node_text,
    ns,
    require,
    text,
)
from .config_loader import UapiAirConfig, load_config
from .datetime_utils import format_date, format_for_soap, hours_between, parse_timestamp
from .logger import setup_logger
from .model_tools import from_node, node_to_dict
from .money import format_money, parse_money, sum_money
from .xml_parser import DecodedResponse, decode_envelope, element_to_node

__all__: list[str] = [
    # accessor.py
    'DecodedNode',
    # xml_parser.py
    'DecodedResponse',
    # config_loader.py
    'UapiAirConfig',
    'as_list',
    'attr',
    'decode_envelope',
    'element_to_node',
    'first',
    # datetime_utils.py
    'format_date',
    'format_for_soap',
    # money.py
    'format_money',
    # model_tools.py
    'from_node',
    'get',
    'hours_between',
    'index_by_key',
    'load_config',
    'merge_leaves',
    'node_text',
    'node_to_dict',
    'ns',
    'parse_money',
    'parse_timestamp',
    'require',
    # logger.py
    'setup_logger',
    'sum_money',
    'text',
]
