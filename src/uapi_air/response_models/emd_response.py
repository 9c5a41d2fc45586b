# uapi_air/response_models/emd_response.py
"""
Pydantic models for parsing EMDRetrieveRsp responses (EMD list and item).

Electronic miscellaneous documents are issued for ancillary services. Their
records map one-to-one onto uAPI elements, so most models here declare the
uAPI attribute names as aliases and are filled with from_node():

- list mode: one ``air:EMDSummaryInfo`` per document, summary + passenger,
- item mode: a single ``air:EMDInfo`` with pricing, payments, forms of
  payment and the reservation it belongs to.
"""

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field

from uapi_air.context import ParseOptions, RequestContext
from uapi_air.response_models.common import RecordModel, TaxInfo, parse_tax_infos, to_bool
from uapi_air.utils import DecodedNode, as_list, attr, first, from_node, get, ns, parse_timestamp, require

logger: logging.Logger = logging.getLogger(__name__)


class EmdCoupon(RecordModel):
    number: int = Field(..., alias='Number')
    status: str | None = Field(None, alias='Status')
    consumed_at_issuance_ind: bool = Field(False, alias='ConsumedAtIssuanceInd')
    non_refundable_ind: bool = Field(False, alias='NonRefundableInd', exclude=True)
    rfic: str | None = Field(None, alias='RFIC')
    rfisc: str | None = Field(None, alias='RFISC')
    description: str | None = Field(None, alias='SvcDescription')

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_refundable(self) -> bool:
        return not self.non_refundable_ind


class EmdSummary(RecordModel):
    """
    Document-level data of an EMD.

    Attributes:
        uapi_emd_ref: Key of the EMD in the response.
        number: 13-digit EMD number.
        is_primary_document: False for conjunction documents.
        associated_ticket: Ticket number the EMD is associated with, if any.
    """

    coupons: list[EmdCoupon] = Field(default_factory=list, alias='air:EMDCouponInfo')
    uapi_emd_ref: str | None = Field(None, alias='Key')
    number: str = Field(..., alias='Number')
    is_primary_document: bool = Field(False, alias='PrimaryDocumentIndicator')
    associated_ticket: str | None = Field(None, alias='AssociatedTicketNumber')
    plating_carrier: str | None = Field(None, alias='PlatingCarrier')
    issued_at: datetime | None = Field(None, alias='IssueDate')


class EmdDetails(EmdSummary):
    status: str | None = None


class EmdPassenger(RecordModel):
    last_name: str | None = Field(None, alias='air:NameInfo/Last')
    first_name: str | None = Field(None, alias='air:NameInfo/First')
    age_category: str | None = Field(None, alias='TravelerType')
    age: int | None = Field(None, alias='Age')


class EmdListItem(RecordModel):
    summary: EmdSummary
    passenger: EmdPassenger


class EmdPayment(RecordModel):
    uapi_payment_ref: str | None = None
    type: str | None = None
    amount: str | None = None
    uapi_fop_ref: str | None = None


class EmdFormOfPayment(RecordModel):
    uapi_fop_ref: str | None = None
    type: str | None = None
    reusable: bool = False
    profile_key: str | None = None


class EmdPricingInfo(RecordModel):
    tax_info: list[TaxInfo] = Field(default_factory=list)
    base_fare: str | None = None
    total_fare: str | None = None
    total_tax: str | None = None


class EmdAirlineLocator(RecordModel):
    create_date: datetime | None = None
    supplier_code: str | None = None
    locator_code: str | None = None


class EmdItem(BaseModel):
    passenger: EmdPassenger
    details: EmdDetails
    pricing_info: EmdPricingInfo
    payment: list[EmdPayment] = Field(default_factory=list)
    fop: list[EmdFormOfPayment] = Field(default_factory=list)
    airline_locator_info: list[EmdAirlineLocator] = Field(default_factory=list)
    uapi_emd_ref: str | None = None
    pnr: str | None = None


def _document_status(coupons: list[EmdCoupon]) -> str | None:
    # One status for the document when every coupon shares it
    statuses: set[str] = {coupon.status for coupon in coupons if coupon.status}
    return statuses.pop() if len(statuses) == 1 else None


class EmdListResponse(BaseModel):
    """Response model for an EMD list retrieval."""

    items: list[EmdListItem] = Field(default_factory=list)

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'EmdListResponse':
        items: list[EmdListItem] = [
            EmdListItem(
                summary=from_node(get(info, 'air:EMDSummary'), EmdSummary),
                passenger=from_node(get(info, 'air:EMDTravelerInfo'), EmdPassenger),
            )
            for info in as_list(get(body, 'air:EMDSummaryInfo'))
        ]
        logger.info(f'Parsed {len(items)} EMD summaries')
        return cls(items=items)


class EmdItemResponse(BaseModel):
    """Response model for a single EMD retrieval."""

    item: EmdItem

    @classmethod
    def from_decoded(
        cls,
        body: DecodedNode,
        context: RequestContext,
        options: ParseOptions,
    ) -> 'EmdItemResponse':
        """
        Raises:
            AirError: RESPONSE_DATA_MISSING without ``air:EMDInfo``.
        """
        version: str = context.uapi_version
        info: DecodedNode = first(require(body, 'air:EMDInfo'))

        summary: EmdSummary = from_node(info, EmdSummary)
        pricing: Any = get(info, 'air:EMDPricingInfo')

        item: EmdItem = EmdItem(
            passenger=from_node(get(info, 'air:EMDTravelerInfo'), EmdPassenger),
            details=EmdDetails(**dict(summary), status=_document_status(summary.coupons)),
            pricing_info=EmdPricingInfo(
                tax_info=parse_tax_infos(get(pricing, 'air:TaxInfo'), version),
                base_fare=attr(pricing, 'BaseFare'),
                total_fare=attr(pricing, 'TotalFare'),
                total_tax=attr(pricing, 'TotalTax'),
            ),
            payment=[
                EmdPayment(
                    uapi_payment_ref=attr(node, 'Key'),
                    type=attr(node, 'Type'),
                    amount=attr(node, 'Amount'),
                    uapi_fop_ref=attr(node, 'FormOfPaymentRef'),
                )
                for node in as_list(get(info, ns(version, 'common', 'Payment')))
            ],
            fop=[
                EmdFormOfPayment(
                    uapi_fop_ref=attr(node, 'Key'),
                    type=attr(node, 'Type'),
                    reusable=to_bool(attr(node, 'Reusable')),
                    profile_key=attr(node, 'ProfileKey'),
                )
                for node in as_list(get(info, ns(version, 'common', 'FormOfPayment')))
            ],
            airline_locator_info=[
                EmdAirlineLocator(
                    create_date=parse_timestamp(attr(node, 'CreateDateTime')),
                    supplier_code=attr(node, 'SupplierCode'),
                    locator_code=attr(node, 'SupplierLocatorCode'),
                )
                for node in as_list(get(info, ns(version, 'common', 'SupplierLocator')))
            ],
            uapi_emd_ref=summary.uapi_emd_ref,
            pnr=attr(get(info, ns(version, 'common', 'ProviderReservationDetail')), 'ProviderLocatorCode'),
        )
        logger.info(f'Parsed EMD {summary.number}')
        return cls(item=item)
