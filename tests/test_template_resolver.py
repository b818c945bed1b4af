"""Tests for template resolution priority and fallback."""

from unittest.mock import AsyncMock

import pytest

from conftest import InMemoryTemplateStore, make_row
from quotedoc.core.errors import TemplateMismatchError, TemplateNotFoundError
from quotedoc.schemas.template import TemplateSource
from quotedoc.services.template_resolver import FALLBACK_TEMPLATE_ID, TemplateResolver
from quotedoc.services.template_store import decode_template_row


class TestResolve:
    @pytest.mark.asyncio
    async def test_empty_store_uses_fallback(self):
        resolved = await TemplateResolver(InMemoryTemplateStore()).resolve()
        assert resolved.source is TemplateSource.FALLBACK
        assert resolved.template.id == FALLBACK_TEMPLATE_ID
        assert len(resolved.template.elements) >= 1
        assert not resolved.meta.degraded

    @pytest.mark.asyncio
    async def test_unreachable_store_uses_fallback(self):
        store = InMemoryTemplateStore([make_row("tpl_1", is_default=True)], unreachable=True)
        resolved = await TemplateResolver(store).resolve()
        assert resolved.source is TemplateSource.FALLBACK

    @pytest.mark.asyncio
    async def test_explicit_id(self):
        store = InMemoryTemplateStore([make_row("tpl_1"), make_row("tpl_2", is_default=True)])
        resolved = await TemplateResolver(store).resolve("tpl_1")
        assert resolved.template.id == "tpl_1"
        assert resolved.source is TemplateSource.EXPLICIT
        assert resolved.requested_id == "tpl_1"

    @pytest.mark.asyncio
    async def test_explicit_missing_raises_not_found(self):
        store = InMemoryTemplateStore([make_row("tpl_2", is_default=True)])
        with pytest.raises(TemplateNotFoundError) as exc_info:
            await TemplateResolver(store).resolve("tpl_missing")
        assert exc_info.value.template_id == "tpl_missing"

    @pytest.mark.asyncio
    async def test_explicit_mismatch_raises(self):
        store = InMemoryTemplateStore()
        store.get_template_by_id = AsyncMock(return_value=decode_template_row(make_row("tpl_other")))
        with pytest.raises(TemplateMismatchError):
            await TemplateResolver(store).resolve("tpl_1")

    @pytest.mark.asyncio
    async def test_configured_default_before_store_default(self):
        store = InMemoryTemplateStore(
            [make_row("tpl_configured"), make_row("tpl_flagged", is_default=True)],
            configured_id="tpl_configured",
        )
        resolved = await TemplateResolver(store).resolve()
        assert resolved.template.id == "tpl_configured"
        assert resolved.source is TemplateSource.CONFIGURED

    @pytest.mark.asyncio
    async def test_inactive_configured_default_is_skipped(self):
        store = InMemoryTemplateStore(
            [make_row("tpl_configured", is_active=False), make_row("tpl_flagged", is_default=True)],
            configured_id="tpl_configured",
        )
        resolved = await TemplateResolver(store).resolve()
        assert resolved.template.id == "tpl_flagged"
        assert resolved.source is TemplateSource.STORE_DEFAULT

    @pytest.mark.asyncio
    async def test_missing_configured_default_falls_through(self):
        store = InMemoryTemplateStore([make_row("tpl_flagged", is_default=True)], configured_id="gone")
        resolved = await TemplateResolver(store).resolve()
        assert resolved.template.id == "tpl_flagged"

    @pytest.mark.asyncio
    async def test_degraded_default_is_still_used(self):
        store = InMemoryTemplateStore([make_row("tpl_bad", elements="[object Object]", is_default=True)])
        resolved = await TemplateResolver(store).resolve()
        assert resolved.template.id == "tpl_bad"
        assert resolved.meta.degraded
