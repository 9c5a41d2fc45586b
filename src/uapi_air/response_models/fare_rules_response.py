# uapi_air/response_models/fare_rules_response.py
"""Pydantic models for fare rules returned with an AirPriceRsp."""

import logging

from pydantic import BaseModel, Field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.response_models.common import RecordModel
from uapi_air.utils import DecodedNode, as_list, attr, get, node_text

logger: logging.Logger = logging.getLogger(__name__)


class FareRule(RecordModel):
    """
    Rule texts of one fare component.

    Attributes:
        rule_number: ATPCO rule number.
        source: Fare source (e.g. 'ATPCO').
        tariff_number: Tariff the fare is filed in.
        rules: One string per ``air:FareRuleLong`` category text.
    """

    rule_number: str | None = None
    source: str | None = None
    tariff_number: str | None = None
    rules: list[str] = Field(default_factory=list)


class FareRulesResponse(BaseModel):
    rules: list[FareRule] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'FareRulesResponse':
        rules: list[FareRule] = []
        for node in as_list(get(body, 'air:FareRule')):
            texts: list[str] = [
                text
                for item in as_list(get(node, 'air:FareRuleLong'))
                if (text := node_text(item))
            ]
            rules.append(
                FareRule(
                    rule_number=attr(node, 'RuleNumber'),
                    source=attr(node, 'Source'),
                    tariff_number=attr(node, 'TariffNumber'),
                    rules=texts,
                )
            )
        logger.info(f'Parsed {len(rules)} fare rule sets')
        return cls(rules=rules)
