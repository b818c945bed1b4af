"""Rendering engine: template elements + rendering context -> HTML (Jinja2)."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup, escape

from quotedoc.core.placeholders import substitute, substitute_markup
from quotedoc.core.styles import Palette, css_value, page_css, resolve_palette, style_to_css
from quotedoc.schemas.context import RenderingContext
from quotedoc.schemas.template import (
    ChargesTableElement,
    ClientInfoElement,
    CompanyInfoElement,
    CustomTextElement,
    DividerElement,
    ElementType,
    FooterElement,
    HeaderElement,
    ImageElement,
    ItemsTableElement,
    JobDetailsElement,
    QuotationInfoElement,
    QuotationTemplate,
    SignatureElement,
    SpacerElement,
    TermsElement,
    TotalsElement,
)
from quotedoc.services.context_builder import format_currency

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "quotation"

_LINE_BREAK = re.compile(r"\r\n|\r|\n|\\n")
_BULLET = re.compile(r"^\s*(?:[•\-*·]|\d+[.)])\s*")


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    numeric: bool = False
    money: bool = False


ITEM_COLUMNS: tuple[Column, ...] = (
    Column("no", "No.", numeric=True),
    Column("description", "Description"),
    Column("jobType", "Job Type"),
    Column("quantity", "Qty", numeric=True),
    Column("duration", "Duration"),
    Column("rate", "Rate", numeric=True, money=True),
    Column("rental", "Rental", numeric=True, money=True),
    Column("mobDemob", "Mob/Demob", numeric=True, money=True),
    Column("riskUsage", "Risk & Usage", numeric=True, money=True),
)

JOB_DETAIL_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("orderType", "Order Type", "orderType"),
    ("machineType", "Machine Type", "machineType"),
    ("duration", "Duration", "duration"),
    ("workingHours", "Working Hours", "workingHours"),
    ("shift", "Shift", "shift"),
)


def _text_lines(text: str) -> list[str]:
    return [line.strip() for line in _LINE_BREAK.split(text) if line.strip()]


@dataclass
class _RenderState:
    """Per-render values shared by all element rules."""

    template: QuotationTemplate
    context: RenderingContext
    data: dict[str, Any]
    palette: Palette


class RenderingEngine:
    """Walks a template's elements in order and produces one HTML document.

    Rendering is deterministic: the only dates emitted are those carried by
    the rendering context.
    """

    def __init__(self, templates_dir: Path = TEMPLATES_DIR) -> None:
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._rules: dict[ElementType, Callable[[Any, _RenderState], Markup]] = {
            ElementType.HEADER: self._render_header,
            ElementType.COMPANY_INFO: self._render_info_block,
            ElementType.CLIENT_INFO: self._render_info_block,
            ElementType.QUOTATION_INFO: self._render_quotation_info,
            ElementType.JOB_DETAILS: self._render_job_details,
            ElementType.ITEMS_TABLE: self._render_items_table,
            ElementType.CHARGES_TABLE: self._render_charges_table,
            ElementType.TOTALS: self._render_totals,
            ElementType.TERMS: self._render_terms,
            ElementType.FOOTER: self._render_footer,
            ElementType.CUSTOM_TEXT: self._render_custom_text,
            ElementType.IMAGE: self._render_image,
            ElementType.DIVIDER: self._render_divider,
            ElementType.SPACER: self._render_spacer,
            ElementType.SIGNATURE: self._render_signature,
        }

    def render(self, template: QuotationTemplate, context: RenderingContext) -> str:
        """Render a full HTML document."""
        state = _RenderState(
            template=template,
            context=context,
            data=context.lookup_data(),
            palette=resolve_palette(template.theme, template.branding),
        )

        fragments: list[Markup] = []
        for element in template.elements:
            if not element.visible:
                continue
            rule = self._rules.get(element.type)
            if rule is None:
                logger.warning(
                    "Skipping unsupported element type %r (id=%s)",
                    getattr(element, "declared_type", element.type.value),
                    element.id,
                )
                continue
            try:
                fragments.append(rule(element, state))
            except Exception:
                logger.exception(
                    "Element %s (%s) failed to render, skipped", element.id, element.type.value
                )
                fragments.append(Markup("<!-- element %s skipped -->") % element.id)

        shell = self.jinja_env.get_template("document.html")
        return shell.render(
            number=context.quotation.number,
            theme=template.theme or "MODERN",
            palette=state.palette,
            page_rule=page_css(template.settings),
            body=Markup("\n").join(fragments),
        )

    # ── Helpers ──

    def _partial(self, name: str, **values: Any) -> Markup:
        return Markup(self.jinja_env.get_template(f"elements/{name}").render(**values))

    @staticmethod
    def _alignment(value: str, default: str = "left") -> str:
        value = (value or "").lower()
        return value if value in ("left", "center", "right", "justify") else default

    def _money(self, value: float, state: _RenderState) -> str:
        return format_currency(value, state.context.currency_symbol)

    # ── Element rules ──

    def _render_header(self, element: HeaderElement, state: _RenderState) -> Markup:
        content = element.content
        meta = []
        if content.show_quotation_number and state.context.quotation.number:
            meta.append(f"Quotation #: {state.context.quotation.number}")
        if content.show_date and state.context.quotation.date:
            meta.append(f"Date: {state.context.quotation.date}")
        return self._partial(
            "header.html",
            element_id=element.id,
            style=style_to_css(element.style),
            alignment=self._alignment(content.alignment, "center"),
            title=substitute(content.title, state.data),
            subtitle=substitute(content.subtitle, state.data),
            meta=meta,
        )

    def _render_info_block(
        self, element: CompanyInfoElement | ClientInfoElement, state: _RenderState
    ) -> Markup:
        content = element.content
        lines = [substitute(field, state.data) for field in content.fields]
        return self._partial(
            "info_block.html",
            element_id=element.id,
            kind=element.type.value.replace("_", "-"),
            style=style_to_css(element.style),
            alignment=self._alignment(content.alignment),
            layout="horizontal" if content.layout == "horizontal" else "vertical",
            title=substitute(content.title, state.data),
            lines=[line for line in lines if line.strip()],
        )

    def _render_quotation_info(self, element: QuotationInfoElement, state: _RenderState) -> Markup:
        content = element.content
        rows = [
            (substitute(field.label, state.data), substitute(field.value, state.data))
            for field in content.fields
        ]
        return self._partial(
            "key_values.html",
            element_id=element.id,
            kind="quotation-info",
            style=style_to_css(element.style),
            alignment=self._alignment(content.alignment, "right"),
            layout="table" if content.layout == "table" else "vertical",
            title=substitute(content.title, state.data),
            rows=rows,
        )

    def _render_job_details(self, element: JobDetailsElement, state: _RenderState) -> Markup:
        quotation = state.data["quotation"]
        rows = [
            (label, quotation.get(data_key) or "-")
            for key, label, data_key in JOB_DETAIL_FIELDS
            if element.content.fields.get(key)
        ]
        return self._partial(
            "key_values.html",
            element_id=element.id,
            kind="job-details",
            style=style_to_css(element.style),
            alignment="left",
            layout="vertical",
            title=substitute(element.content.title, state.data),
            rows=rows,
        )

    def _table_colours(self, style: dict[str, Any], state: _RenderState) -> dict[str, str]:
        return {
            "header_bg": css_value(style.get("tableHeaderBg")) or state.palette.primary,
            "header_color": css_value(style.get("tableHeaderColor")) or state.palette.header_text,
            "border_color": css_value(style.get("tableBorderColor")) or state.palette.border,
            "stripe": state.palette.stripe,
        }

    def _render_items_table(self, element: ItemsTableElement, state: _RenderState) -> Markup:
        content = element.content
        columns = [c for c in ITEM_COLUMNS if content.columns.get(c.key) is not False]
        rows = []
        for item in state.context.items:
            values = item.model_dump(by_alias=True)
            row = []
            for column in columns:
                value = values.get(column.key)
                if column.money:
                    row.append(self._money(value, state))
                elif isinstance(value, float):
                    row.append(f"{value:g}")
                else:
                    row.append(str(value))
            rows.append(row)
        return self._partial(
            "table.html",
            element_id=element.id,
            kind="items-table",
            style=style_to_css(element.style),
            title=substitute(content.title, state.data),
            show_header=content.show_header,
            alternate_rows=content.alternate_rows,
            columns=columns,
            rows=rows,
            **self._table_colours(element.style, state),
        )

    def _render_charges_table(self, element: ChargesTableElement, state: _RenderState) -> Markup:
        enabled = element.content.charge_types

        def wanted(key: str) -> bool:
            if key == "mobilization":
                return enabled.get("mobilization", True) or enabled.get("demobilization", True)
            return enabled.get(key, True)

        columns = [Column("label", "Charge"), Column("amount", "Amount", numeric=True)]
        rows = [[charge.label, charge.formatted] for charge in state.context.charges if wanted(charge.key)]
        return self._partial(
            "table.html",
            element_id=element.id,
            kind="charges-table",
            style=style_to_css(element.style),
            title=substitute(element.content.title, state.data),
            show_header=True,
            alternate_rows=False,
            columns=columns,
            rows=rows,
            **self._table_colours(element.style, state),
        )

    def _render_totals(self, element: TotalsElement, state: _RenderState) -> Markup:
        content = element.content
        totals = state.context.totals
        rows: list[tuple[str, str]] = []
        if content.show_breakdown:
            rows.extend(
                [
                    ("Working Cost", totals.working_cost),
                    ("Mob/Demob Cost", totals.mob_demob_cost),
                    ("Food & Accommodation", totals.food_accom_cost),
                    ("Risk & Usage", totals.risk_usage_total),
                ]
            )
        rows.append(("Subtotal", totals.subtotal))
        if content.show_tax:
            rows.append((f"GST ({state.context.tax.rate:g}%)", totals.tax))
        return self._partial(
            "totals.html",
            element_id=element.id,
            style=style_to_css(element.style),
            title=substitute(content.title, state.data),
            rows=rows,
            grand_label="Total",
            grand_total=totals.total,
        )

    def _render_terms(self, element: TermsElement, state: _RenderState) -> Markup:
        content = element.content
        points = [_BULLET.sub("", line) for line in _text_lines(substitute(content.text, state.data))]
        return self._partial(
            "terms.html",
            element_id=element.id,
            style=style_to_css(element.style),
            title=substitute(content.title, state.data) if content.show_title else "",
            points=[point for point in points if point],
        )

    def _render_footer(self, element: FooterElement, state: _RenderState) -> Markup:
        lines = _text_lines(substitute(element.content.text, state.data))
        alignment = self._alignment(element.content.alignment, "center")
        style = "; ".join(filter(None, [f"text-align: {alignment}", style_to_css(element.style)]))
        return self._partial(
            "text.html",
            element_id=element.id,
            kind="footer",
            style=style,
            body=Markup("<br>").join(escape(line) for line in lines),
        )

    def _render_custom_text(self, element: CustomTextElement, state: _RenderState) -> Markup:
        # Author-supplied HTML; only substituted values are escaped.
        return self._partial(
            "text.html",
            element_id=element.id,
            kind="custom-text",
            style=style_to_css(element.style),
            body=substitute_markup(element.content.text, state.data),
        )

    def _render_image(self, element: ImageElement, state: _RenderState) -> Markup:
        src = substitute(element.content.src, state.data) or state.template.branding.logo_url
        if not src:
            return Markup("")
        return self._partial(
            "image.html",
            element_id=element.id,
            style=style_to_css(element.style),
            src=src,
            alt=substitute(element.content.alt, state.data),
            title=substitute(element.content.title, state.data),
        )

    def _render_divider(self, element: DividerElement, state: _RenderState) -> Markup:
        content = element.content
        return self._partial(
            "divider.html",
            element_id=element.id,
            style=style_to_css(element.style),
            thickness=css_value(content.thickness) or "1px",
            line_style=css_value(content.line_style) or "solid",
            color=css_value(content.color) or state.palette.border,
        )

    def _render_spacer(self, element: SpacerElement, state: _RenderState) -> Markup:
        return self._partial(
            "spacer.html",
            element_id=element.id,
            style=style_to_css(element.style),
            height=css_value(element.content.height) or "20px",
        )

    def _render_signature(self, element: SignatureElement, state: _RenderState) -> Markup:
        content = element.content
        return self._partial(
            "signature.html",
            element_id=element.id,
            style=style_to_css(element.style),
            left_label=substitute(content.left_label, state.data),
            right_label=substitute(content.right_label, state.data),
            date=state.context.quotation.date if content.show_date else "",
        )


# Singleton
rendering_engine = RenderingEngine()
