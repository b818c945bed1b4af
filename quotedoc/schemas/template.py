"""Template schemas: element variants, page settings, branding, degradation."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ElementType(str, Enum):
    HEADER = "header"
    COMPANY_INFO = "company_info"
    CLIENT_INFO = "client_info"
    QUOTATION_INFO = "quotation_info"
    JOB_DETAILS = "job_details"
    ITEMS_TABLE = "items_table"
    CHARGES_TABLE = "charges_table"
    TOTALS = "totals"
    TERMS = "terms"
    FOOTER = "footer"
    CUSTOM_TEXT = "custom_text"
    IMAGE = "image"
    DIVIDER = "divider"
    SPACER = "spacer"
    SIGNATURE = "signature"
    UNKNOWN = "unknown"


class ThemeName(str, Enum):
    MODERN = "MODERN"
    CLASSIC = "CLASSIC"
    PROFESSIONAL = "PROFESSIONAL"
    CREATIVE = "CREATIVE"


# ── Element content payloads ──


class HeaderContent(CamelModel):
    title: str = ""
    subtitle: str = ""
    show_date: bool = False
    show_quotation_number: bool = False
    alignment: str = "center"


class CompanyInfoContent(CamelModel):
    title: str | None = None
    fields: list[str] = Field(
        default_factory=lambda: [
            "{{company.name}}",
            "{{company.address}}",
            "{{company.phone}}",
            "{{company.email}}",
        ]
    )
    layout: str = "vertical"
    alignment: str = "left"


class ClientInfoContent(CamelModel):
    title: str | None = "Bill To:"
    fields: list[str] = Field(
        default_factory=lambda: [
            "{{client.name}}",
            "{{client.company}}",
            "{{client.address}}",
            "{{client.phone}}",
            "{{client.email}}",
        ]
    )
    layout: str = "vertical"
    alignment: str = "left"


class LabeledField(CamelModel):
    label: str = ""
    value: str = ""


class QuotationInfoContent(CamelModel):
    title: str | None = None
    fields: list[LabeledField] = Field(
        default_factory=lambda: [
            LabeledField(label="Quotation #", value="{{quotation.number}}"),
            LabeledField(label="Date", value="{{quotation.date}}"),
            LabeledField(label="Machine Type", value="{{quotation.machineType}}"),
            LabeledField(label="Duration", value="{{quotation.duration}}"),
        ]
    )
    layout: str = "table"
    alignment: str = "right"


class JobDetailsContent(CamelModel):
    title: str = "Job Details"
    fields: dict[str, bool] = Field(
        default_factory=lambda: {
            "orderType": True,
            "duration": True,
            "workingHours": True,
            "machineType": True,
        }
    )


class ItemsTableContent(CamelModel):
    title: str = "Equipment & Services"
    show_header: bool = True
    alternate_rows: bool = True
    # Missing keys mean visible; only an explicit False hides a column.
    columns: dict[str, bool] = Field(default_factory=dict)


class ChargesTableContent(CamelModel):
    title: str = "Additional Charges"
    charge_types: dict[str, bool] = Field(
        default_factory=lambda: {
            "mobilization": True,
            "demobilization": True,
            "rigger": True,
            "helper": True,
            "incidental": True,
        }
    )


class TotalsContent(CamelModel):
    title: str | None = None
    show_tax: bool = True
    show_breakdown: bool = False


class TermsContent(CamelModel):
    title: str = "Terms & Conditions"
    text: str = ""
    show_title: bool = True


class FooterContent(CamelModel):
    text: str = ""
    alignment: str = "center"


class CustomTextContent(CamelModel):
    text: str = ""


class ImageContent(CamelModel):
    src: str = ""
    alt: str = ""
    title: str = ""


class DividerContent(CamelModel):
    thickness: str = "1px"
    line_style: str = "solid"
    color: str | None = None


class SpacerContent(CamelModel):
    height: str = "20px"


class SignatureContent(CamelModel):
    left_label: str = "For {{company.name}}"
    right_label: str = "Customer Acceptance"
    show_date: bool = False


# ── Elements ──


class ElementPosition(CamelModel):
    x: float | str = 0
    y: float | str = 0
    width: float | str = "100%"
    height: float | str = "auto"


class ElementBase(CamelModel):
    id: str
    visible: bool = True
    style: dict[str, Any] = Field(default_factory=dict)
    position: ElementPosition = Field(default_factory=ElementPosition)


class HeaderElement(ElementBase):
    type: Literal[ElementType.HEADER] = ElementType.HEADER
    content: HeaderContent = Field(default_factory=HeaderContent)


class CompanyInfoElement(ElementBase):
    type: Literal[ElementType.COMPANY_INFO] = ElementType.COMPANY_INFO
    content: CompanyInfoContent = Field(default_factory=CompanyInfoContent)


class ClientInfoElement(ElementBase):
    type: Literal[ElementType.CLIENT_INFO] = ElementType.CLIENT_INFO
    content: ClientInfoContent = Field(default_factory=ClientInfoContent)


class QuotationInfoElement(ElementBase):
    type: Literal[ElementType.QUOTATION_INFO] = ElementType.QUOTATION_INFO
    content: QuotationInfoContent = Field(default_factory=QuotationInfoContent)


class JobDetailsElement(ElementBase):
    type: Literal[ElementType.JOB_DETAILS] = ElementType.JOB_DETAILS
    content: JobDetailsContent = Field(default_factory=JobDetailsContent)


class ItemsTableElement(ElementBase):
    type: Literal[ElementType.ITEMS_TABLE] = ElementType.ITEMS_TABLE
    content: ItemsTableContent = Field(default_factory=ItemsTableContent)


class ChargesTableElement(ElementBase):
    type: Literal[ElementType.CHARGES_TABLE] = ElementType.CHARGES_TABLE
    content: ChargesTableContent = Field(default_factory=ChargesTableContent)


class TotalsElement(ElementBase):
    type: Literal[ElementType.TOTALS] = ElementType.TOTALS
    content: TotalsContent = Field(default_factory=TotalsContent)


class TermsElement(ElementBase):
    type: Literal[ElementType.TERMS] = ElementType.TERMS
    content: TermsContent = Field(default_factory=TermsContent)


class FooterElement(ElementBase):
    type: Literal[ElementType.FOOTER] = ElementType.FOOTER
    content: FooterContent = Field(default_factory=FooterContent)


class CustomTextElement(ElementBase):
    type: Literal[ElementType.CUSTOM_TEXT] = ElementType.CUSTOM_TEXT
    content: CustomTextContent = Field(default_factory=CustomTextContent)


class ImageElement(ElementBase):
    type: Literal[ElementType.IMAGE] = ElementType.IMAGE
    content: ImageContent = Field(default_factory=ImageContent)


class DividerElement(ElementBase):
    type: Literal[ElementType.DIVIDER] = ElementType.DIVIDER
    content: DividerContent = Field(default_factory=DividerContent)


class SpacerElement(ElementBase):
    type: Literal[ElementType.SPACER] = ElementType.SPACER
    content: SpacerContent = Field(default_factory=SpacerContent)


class SignatureElement(ElementBase):
    type: Literal[ElementType.SIGNATURE] = ElementType.SIGNATURE
    content: SignatureContent = Field(default_factory=SignatureContent)


class UnknownElement(ElementBase):
    """Element whose stored type is not supported; renders as a no-op."""

    type: Literal[ElementType.UNKNOWN] = ElementType.UNKNOWN
    declared_type: str = ""
    content: Any = None


# Discriminated union on "type"
TemplateElement = Annotated[
    HeaderElement
    | CompanyInfoElement
    | ClientInfoElement
    | QuotationInfoElement
    | JobDetailsElement
    | ItemsTableElement
    | ChargesTableElement
    | TotalsElement
    | TermsElement
    | FooterElement
    | CustomTextElement
    | ImageElement
    | DividerElement
    | SpacerElement
    | SignatureElement
    | UnknownElement,
    Field(discriminator="type"),
]


# ── Page geometry and branding ──


class PageMargins(CamelModel):
    """Page margins; bare numbers are millimetres."""

    top: float | str = 15
    right: float | str = 15
    bottom: float | str = 15
    left: float | str = 15


class PageSettings(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    page_size: str = "A4"
    orientation: str = "portrait"
    margins: PageMargins = Field(default_factory=PageMargins)


class Branding(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    primary_color: str | None = None
    secondary_color: str | None = None
    accent_color: str | None = None
    logo_url: str | None = None


# ── Template ──


class QuotationTemplate(CamelModel):
    """Canonical in-memory template, decoded from a stored row."""

    id: str
    name: str
    description: str | None = None
    theme: str = ThemeName.MODERN.value
    category: str | None = None
    is_default: bool = False
    is_active: bool = True
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    elements: list[TemplateElement] = Field(default_factory=list)
    layout: dict[str, Any] = Field(default_factory=dict)
    settings: PageSettings = Field(default_factory=PageSettings)
    branding: Branding = Field(default_factory=Branding)


class DegradedColumn(CamelModel):
    column: str
    reason: str


class TemplateMeta(CamelModel):
    """Per-render annotation describing repairs made while decoding.

    Never persisted.
    """

    degraded: bool = False
    degraded_columns: list[DegradedColumn] = Field(default_factory=list)

    def add(self, column: str, reason: str) -> None:
        self.degraded = True
        self.degraded_columns.append(DegradedColumn(column=column, reason=reason))

    @property
    def column_names(self) -> list[str]:
        names: list[str] = []
        for entry in self.degraded_columns:
            if entry.column not in names:
                names.append(entry.column)
        return names


class TemplateSource(str, Enum):
    EXPLICIT = "explicit"
    CONFIGURED = "configured"
    STORE_DEFAULT = "store_default"
    FALLBACK = "fallback"


class LoadedTemplate(BaseModel):
    """A template decoded from the store with its degradation annotation."""

    template: QuotationTemplate
    meta: TemplateMeta = Field(default_factory=TemplateMeta)


class ResolvedTemplate(LoadedTemplate):
    """Template chosen by the resolver, plus where it came from."""

    source: TemplateSource
    requested_id: str | None = None
