# uapi_air/context.py
"""
Per-call inputs handed to the response normalizers.

RequestContext carries what the caller knew when the request was sent
(schema version, requested passengers and cabins, the pricing solution a
re-price refers to). ParseOptions carries the switches that relax or tune
individual normalizers. Both are explicit arguments; nothing is kept on a
parser instance between calls.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from uapi_air.utils.config_loader import ParsingSection


class ContextPassenger(BaseModel):
    """A passenger as requested by the caller."""

    model_config = ConfigDict(frozen=True)

    age_category: str = Field(..., min_length=3, max_length=3)
    age: int | None = None
    first_name: str | None = None
    last_name: str | None = None


class RequestContext(BaseModel):
    """
    Request-side data a normalizer may need to interpret a response.

    Attributes:
        uapi_version: Schema version in effect for the call (e.g. 'v52_0').
                      Decides the prefix of version-qualified keys such as
                      'common_v52_0:ErrorInfo'.
        passengers: Passengers as requested, matched to fares by category.
        cabins: Requested cabin classes; availability is filtered to these.
        pricing_solution: Opaque pricing-solution data from a previous price
                          call, echoed into re-pricing tokens.
        provider: GDS provider whose availability rows are kept.
    """

    model_config = ConfigDict(frozen=True)

    uapi_version: str = Field(default='v52_0', pattern=r'^v\d+_\d+$')
    passengers: list[ContextPassenger] = Field(default_factory=list)
    cabins: list[str] = Field(default_factory=list)
    pricing_solution: dict[str, Any] | None = None
    provider: str = '1G'


class ParseOptions(BaseModel):
    """
    Switches accepted by select normalizers.

    Attributes:
        allow_no_provider_locator_code_retrieval: Return tickets whose record
            has no provider locator instead of raising TICKET_INFO_INCOMPLETE.
        stopover_threshold_hours: Connections longer than this are stopovers.
    """

    model_config = ConfigDict(frozen=True)

    allow_no_provider_locator_code_retrieval: bool = False
    stopover_threshold_hours: float = Field(default=24.0, gt=0.0)

    @classmethod
    def from_config(cls, parsing: ParsingSection) -> 'ParseOptions':
        return cls(
            allow_no_provider_locator_code_retrieval=parsing.allow_no_provider_locator_code_retrieval,
            stopover_threshold_hours=parsing.stopover_threshold_hours,
        )
