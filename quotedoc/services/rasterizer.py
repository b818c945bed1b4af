"""Document rasterizer: finished HTML -> paginated PDF (Playwright).

One Chromium process is launched lazily and shared by every conversion.
Concurrent conversions are bounded by a semaphore and each one by a
timeout. Conversion failures never reach the caller: the original HTML
is returned wrapped in a print-triggering shell instead.
"""

import asyncio
import logging
import re
from dataclasses import dataclass

from quotedoc.config import get_settings
from quotedoc.core.errors import RasterizerUnavailableError
from quotedoc.core.styles import ORIENTATIONS, PAGE_FORMATS, page_format, page_margins, page_orientation
from quotedoc.schemas.template import PageSettings

settings = get_settings()
logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
HTML_MEDIA_TYPE = "text/html; charset=utf-8"

_PRINT_SCRIPT = (
    "<script>window.addEventListener('load', function () {"
    " setTimeout(function () { window.print(); }, 300); });</script>"
)
_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)


@dataclass
class RasterResult:
    content: bytes
    is_fallback: bool
    media_type: str


def wrap_html_for_print(html: str) -> str:
    """Add a print trigger to ``html``, leaving the document itself untouched."""
    closing = list(_BODY_CLOSE.finditer(html))
    if closing:
        at = closing[-1].start()
        return html[:at] + _PRINT_SCRIPT + html[at:]
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>Quotation</title></head>"
        f"<body>{html}{_PRINT_SCRIPT}</body></html>"
    )


class DocumentRasterizer:
    """Shared Playwright Chromium handle with bounded, timed conversions."""

    def __init__(
        self,
        enabled: bool = settings.rasterizer_enabled,
        timeout_seconds: float = settings.rasterizer_timeout_seconds,
        max_concurrency: int = settings.rasterizer_max_concurrency,
    ) -> None:
        self.enabled = enabled
        self.timeout_seconds = timeout_seconds
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._lock = asyncio.Lock()
        self._playwright = None
        self._browser = None

    async def _acquire_browser(self):
        """Return the shared browser, launching it on first use."""
        if not self.enabled:
            raise RasterizerUnavailableError("Rasterizer is disabled")

        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            from playwright.async_api import async_playwright

            try:
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=True,
                    args=settings.rasterizer_launch_args,
                )
            except Exception as e:
                raise RasterizerUnavailableError(f"Could not launch Chromium: {e}") from e

            logger.info("Rasterizer browser launched")
            return self._browser

    async def _convert(self, html: str, page_settings: PageSettings) -> bytes:
        browser = await self._acquire_browser()
        page = await browser.new_page()
        try:
            await page.set_content(
                html,
                wait_until="networkidle",
                timeout=self.timeout_seconds * 1000,
            )
            return await page.pdf(
                format=page_format(page_settings),
                landscape=page_orientation(page_settings) == "landscape",
                margin=page_margins(page_settings),
                print_background=True,
                prefer_css_page_size=True,
            )
        finally:
            await page.close()

    async def rasterize(self, html: str, page_settings: PageSettings | None = None) -> RasterResult:
        """Convert ``html`` to PDF, or fall back to printable HTML. Never raises."""
        page_settings = page_settings or PageSettings()
        try:
            async with self._semaphore:
                pdf = await asyncio.wait_for(
                    self._convert(html, page_settings),
                    timeout=self.timeout_seconds,
                )
            return RasterResult(content=pdf, is_fallback=False, media_type=PDF_MEDIA_TYPE)
        except RasterizerUnavailableError as e:
            logger.warning(f"Rasterizer unavailable, returning printable HTML: {e}")
        except asyncio.TimeoutError:
            logger.error("PDF conversion timed out after %.1fs", self.timeout_seconds)
        except Exception:
            logger.exception("PDF conversion failed, returning printable HTML")

        return RasterResult(
            content=wrap_html_for_print(html).encode("utf-8"),
            is_fallback=True,
            media_type=HTML_MEDIA_TYPE,
        )

    def capabilities(self) -> dict:
        return {
            "enabled": self.enabled,
            "engine": "chromium",
            "pageFormats": list(PAGE_FORMATS),
            "orientations": list(ORIENTATIONS),
            "timeoutSeconds": self.timeout_seconds,
        }

    async def close(self) -> None:
        """Release the browser and the Playwright driver."""
        async with self._lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                except Exception as e:
                    logger.warning(f"Error closing rasterizer browser: {e}")
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None


# Singleton
document_rasterizer = DocumentRasterizer()
