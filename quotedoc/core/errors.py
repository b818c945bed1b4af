"""Error taxonomy for template resolution, rendering and rasterizing."""


class QuoteDocError(Exception):
    """Base class for quotation document errors."""


class TemplateNotFoundError(QuoteDocError):
    """An explicitly requested template does not exist."""

    def __init__(self, template_id: str, message: str | None = None) -> None:
        self.template_id = template_id
        super().__init__(message or f"Template '{template_id}' does not exist")


class TemplateMismatchError(TemplateNotFoundError):
    """The store returned a template whose id differs from the requested one."""

    def __init__(self, requested_id: str, loaded_id: str | None) -> None:
        self.loaded_id = loaded_id
        super().__init__(
            requested_id,
            f"Template id mismatch: requested {requested_id}, got {loaded_id}",
        )


class QuotationNotFoundError(QuoteDocError):
    """The business record behind a document does not exist."""

    def __init__(self, quotation_id: str) -> None:
        self.quotation_id = quotation_id
        super().__init__(f"Quotation '{quotation_id}' not found")


class MalformedStoredDataError(QuoteDocError):
    """A stored structured column could not be decoded."""

    def __init__(self, column: str, reason: str) -> None:
        self.column = column
        self.reason = reason
        super().__init__(f"Malformed {column} column: {reason}")


class RasterizerUnavailableError(QuoteDocError):
    """The headless browser could not be launched or reached."""
