"""Parsing of stored element dictionaries into typed element variants."""

import logging
from typing import Any

from pydantic import ValidationError

from quotedoc.core.encoding import CORRUPT_LITERALS, decode_structured_field
from quotedoc.schemas.template import (
    ChargesTableElement,
    ClientInfoElement,
    CompanyInfoElement,
    CustomTextElement,
    DividerElement,
    ElementBase,
    ElementPosition,
    ElementType,
    FooterElement,
    HeaderElement,
    ImageElement,
    ItemsTableElement,
    JobDetailsElement,
    QuotationInfoElement,
    SignatureElement,
    SpacerElement,
    TemplateElement,
    TermsElement,
    TotalsElement,
    UnknownElement,
)

logger = logging.getLogger(__name__)

ELEMENT_MODELS: dict[ElementType, type[ElementBase]] = {
    ElementType.HEADER: HeaderElement,
    ElementType.COMPANY_INFO: CompanyInfoElement,
    ElementType.CLIENT_INFO: ClientInfoElement,
    ElementType.QUOTATION_INFO: QuotationInfoElement,
    ElementType.JOB_DETAILS: JobDetailsElement,
    ElementType.ITEMS_TABLE: ItemsTableElement,
    ElementType.CHARGES_TABLE: ChargesTableElement,
    ElementType.TOTALS: TotalsElement,
    ElementType.TERMS: TermsElement,
    ElementType.FOOTER: FooterElement,
    ElementType.CUSTOM_TEXT: CustomTextElement,
    ElementType.IMAGE: ImageElement,
    ElementType.DIVIDER: DividerElement,
    ElementType.SPACER: SpacerElement,
    ElementType.SIGNATURE: SignatureElement,
}

# Key a bare-string content maps to, per element type.
_STRING_CONTENT_KEY: dict[ElementType, str] = {
    ElementType.HEADER: "title",
    ElementType.COMPANY_INFO: "title",
    ElementType.CLIENT_INFO: "title",
    ElementType.QUOTATION_INFO: "title",
    ElementType.JOB_DETAILS: "title",
    ElementType.ITEMS_TABLE: "title",
    ElementType.CHARGES_TABLE: "title",
    ElementType.TOTALS: "title",
    ElementType.TERMS: "text",
    ElementType.FOOTER: "text",
    ElementType.CUSTOM_TEXT: "text",
    ElementType.IMAGE: "src",
    ElementType.SIGNATURE: "leftLabel",
}


def element_type_of(value: Any) -> ElementType:
    try:
        return ElementType(str(value))
    except ValueError:
        return ElementType.UNKNOWN


def coerce_content(raw: Any, element_type: ElementType) -> tuple[dict[str, Any], str | None]:
    """Bring a stored content payload to dict form.

    Returns the content and a problem description when the stored value
    had to be discarded.
    """
    if raw is None:
        return {}, None
    if isinstance(raw, dict):
        return raw, None
    if isinstance(raw, str):
        text = raw.strip()
        if text in CORRUPT_LITERALS:
            return {}, f"corrupted content literal {text!r}"
        if text.startswith(("{", '"{')):
            decoded = decode_structured_field(text, dict, "content")
            return decoded.value, decoded.problem
        key = _STRING_CONTENT_KEY.get(element_type)
        if key is None:
            return {}, "string content not supported for this element type"
        return {key: raw}, None
    return {}, f"unexpected content of type {type(raw).__name__}"


def parse_position(raw: Any) -> ElementPosition | None:
    """Validate a stored position on its own; None when it is unusable."""
    if raw is None:
        return ElementPosition()
    if not isinstance(raw, dict):
        return None
    try:
        return ElementPosition.model_validate(raw)
    except ValidationError:
        return None


def parse_element(raw: Any, index: int) -> tuple[TemplateElement | None, list[str]]:
    """Parse one stored element.

    Never raises: a broken content payload is replaced by the type's
    default content, and the problems are returned alongside.
    """
    problems: list[str] = []
    if not isinstance(raw, dict):
        return None, [f"element #{index + 1} is not an object"]

    element_id = str(raw.get("id") or f"element-{index + 1}")
    declared_type = raw.get("type")
    element_type = element_type_of(declared_type)

    style = raw.get("style")
    if not isinstance(style, dict):
        if style is not None:
            problems.append(f"{element_id}: style is not an object")
        style = {}
    position = parse_position(raw.get("position"))
    if position is None:
        problems.append(f"{element_id}: invalid position, using defaults")
        position = ElementPosition()

    base: dict[str, Any] = {
        "id": element_id,
        "visible": raw.get("visible", True) not in (False, "false", 0),
        "style": style,
        "position": position,
    }

    if element_type is ElementType.UNKNOWN:
        return UnknownElement(
            **base, declared_type=str(declared_type or ""), content=raw.get("content")
        ), problems

    model = ELEMENT_MODELS[element_type]
    content, problem = coerce_content(raw.get("content"), element_type)
    if problem:
        problems.append(f"{element_id}: {problem}")

    try:
        return model.model_validate({**base, "content": content}), problems
    except ValidationError as exc:
        problems.append(f"{element_id}: invalid content ({exc.error_count()} errors)")

    try:
        return model.model_validate({**base, "content": {}}), problems
    except ValidationError:
        problems.append(f"{element_id}: unusable element, skipped")
        return None, problems


def parse_elements(raw_elements: list[Any]) -> tuple[list[TemplateElement], list[str]]:
    elements: list[TemplateElement] = []
    problems: list[str] = []
    for index, raw in enumerate(raw_elements):
        element, element_problems = parse_element(raw, index)
        problems.extend(element_problems)
        if element is not None:
            elements.append(element)
    if problems:
        logger.warning("Element parsing reported %d problem(s): %s", len(problems), problems)
    return elements, problems


def element_to_json(element: ElementBase) -> dict[str, Any]:
    """Serialize an element back to its stored camelCase shape."""
    data = element.model_dump(mode="json", by_alias=True)
    if isinstance(element, UnknownElement):
        data["type"] = data.pop("declaredType", "") or ElementType.UNKNOWN.value
    return data
