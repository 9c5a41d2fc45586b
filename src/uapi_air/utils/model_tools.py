# uapi_air/utils/model_tools.py
"""
Utilities for converting DecodedNode mappings into Pydantic-ready dictionaries.

This module provides low-level tools for pulling flat records out of a
decoded uAPI node by introspecting a Pydantic model's field aliases. A field
aliased 'Number' is read from the node's 'Number' attribute; a field typed as
a nested model (or a list of them) recurses into the child node(s) under its
alias. It bridges the gap between the decoded XML tree and typed Python
objects for records whose shape maps one-to-one onto a uAPI element.
"""
# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false, reportUnknownArgumentType=false

import logging
import types
from typing import Any, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError

from ..errors import AirError, ErrorKind
from .accessor import as_list, get, node_text

logger: logging.Logger = logging.getLogger(__name__)

ModelT = TypeVar('ModelT', bound=BaseModel)


# --- Type Introspection Helpers ---


def _unwrap_optional(field_type: Any) -> Any:
    """
    Unwrap Optional[X] or X | None to get the actual type X.

    Example:
        >>> _unwrap_optional(str | None)
        str
        >>> _unwrap_optional(list[int])
        list[int]
    """
    origin: Any = get_origin(field_type)
    args: tuple[Any, ...] = get_args(field_type)

    # Check for Union types (both typing.Union and types.UnionType for | syntax)
    if origin is Union or origin is types.UnionType:
        non_none_types: list[type] = [arg for arg in args if arg is not type(None)]
        if non_none_types:
            return non_none_types[0]

    return field_type


def _is_list_type(field_type: Any) -> bool:
    return get_origin(field_type) is list


def _get_list_item_type(field_type: Any) -> Any | None:
    """
    Extract the item type from a list[X] annotation, unwrapping Optional.

    Returns:
        The type X, or None if not a list or has no args.
    """
    if not _is_list_type(field_type):
        return None
    args: tuple[Any, ...] = get_args(field_type)
    if not args:
        return None
    return _unwrap_optional(args[0])


def _is_pydantic_model(field_type: Any) -> bool:
    return isinstance(field_type, type) and issubclass(field_type, BaseModel)


# --- Main Extractor ---


def node_to_dict(node: Any, model_class: type[BaseModel]) -> dict[str, Any]:
    """
    Extract a dictionary matching a Pydantic model from a decoded node.

    Each model field is looked up under its alias (or its own name when it has
    no alias). Absent values are left out so model defaults apply.

    Args:
        node: The DecodedNode holding this record's attributes and children.
        model_class: The Pydantic model class definition to inspect.

    Returns:
        A dictionary keyed by alias, ready for model_validate().

    Example:
        >>> data = node_to_dict(coupon_node, EmdCoupon)
        >>> coupon = EmdCoupon.model_validate(data)
    """
    data: dict[str, Any] = {}

    for field_name, field_info in model_class.model_fields.items():
        key: str = field_info.alias or field_name
        actual_type: Any = _unwrap_optional(field_info.annotation)
        raw: Any = get(node, key)

        if raw is None:
            continue

        if _is_list_type(actual_type):
            item_type: Any | None = _get_list_item_type(actual_type)
            items: list[Any] = as_list(raw)
            if item_type and _is_pydantic_model(item_type):
                data[key] = [node_to_dict(item, item_type) for item in items]
            else:
                data[key] = [node_text(item) for item in items]

        elif _is_pydantic_model(actual_type):
            data[key] = node_to_dict(raw, actual_type)

        else:
            leaf: str | None = node_text(raw)
            if leaf is not None:
                data[key] = leaf

    return data


def from_node(node: Any, model_class: type[ModelT]) -> ModelT:
    """
    Build a model instance from a decoded node.

    Raises:
        AirError: INVALID_NODE_SHAPE when the extracted values do not satisfy
                  the model (e.g. a mandatory attribute is missing).
    """
    data: dict[str, Any] = node_to_dict(node, model_class)
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        logger.error(f'Failed to build {model_class.__name__} from node: {e}')
        raise AirError(
            ErrorKind.INVALID_NODE_SHAPE,
            {'model': model_class.__name__, 'errors': e.errors(include_url=False)},
        ) from e
