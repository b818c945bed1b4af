"""Tests for the template repair service."""

import json
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import InMemoryTemplateStore, make_row
from quotedoc.services.template_repair import TemplateRepairService, fix_column
from quotedoc.services.template_store import SqlTemplateStore, decode_template_row

GOOD_ELEMENTS = [{"id": "h1", "type": "header", "content": {"title": "Quote"}}]


def _corrupted_store() -> InMemoryTemplateStore:
    return InMemoryTemplateStore(
        [
            make_row("tpl_good", elements=GOOD_ELEMENTS),
            make_row("tpl_object", elements="[object Object]"),
            make_row("tpl_double", elements=json.dumps(json.dumps(GOOD_ELEMENTS)), settings=None),
            make_row(
                "tpl_content",
                elements=[
                    {"id": "h1", "type": "header", "content": "[object Object]"},
                    {"id": "h2", "type": "header", "content": json.dumps({"title": "Inner"})},
                    {"id": "t1", "type": "custom_text", "content": "Plain words"},
                ],
            ),
        ]
    )


class TestFixColumn:
    def test_canonical_unchanged(self):
        raw = json.dumps(GOOD_ELEMENTS)
        assert fix_column(raw, "elements") is raw

    def test_object_object(self):
        assert fix_column("[object Object]", "elements") == "[]"
        assert fix_column("[object Object]", "branding") == "{}"

    def test_null_string_left_alone(self):
        assert fix_column("null", "layout") == "null"


class TestRepairAll:
    @pytest.mark.asyncio
    async def test_repairs_malformed_rows_only(self):
        store = _corrupted_store()
        report = await TemplateRepairService(store).repair_all()

        by_id = {entry.id: entry for entry in report}
        assert by_id["tpl_good"].changed is False
        assert by_id["tpl_object"].changed is True
        assert by_id["tpl_object"].mutated["elements"] is True
        assert by_id["tpl_double"].mutated == {
            "elements": True,
            "layout": False,
            "settings": True,
            "branding": False,
        }
        assert {template_id for template_id, _ in store.updates} == {
            "tpl_object",
            "tpl_double",
            "tpl_content",
        }

    @pytest.mark.asyncio
    async def test_object_object_column_becomes_empty_list(self):
        store = _corrupted_store()
        await TemplateRepairService(store).repair_all()
        assert json.loads(store.rows["tpl_object"].elements) == []
        assert json.loads(store.rows["tpl_double"].elements) == GOOD_ELEMENTS
        assert store.rows["tpl_double"].settings == "{}"

    @pytest.mark.asyncio
    async def test_element_contents_repaired(self):
        store = _corrupted_store()
        await TemplateRepairService(store).repair_all()
        elements = json.loads(store.rows["tpl_content"].elements)
        assert elements[0]["content"] == {}
        assert elements[1]["content"] == {"title": "Inner"}
        assert elements[2]["content"] == "Plain words"

    @pytest.mark.asyncio
    async def test_idempotent(self):
        store = _corrupted_store()
        service = TemplateRepairService(store)
        await service.repair_all()
        store.updates.clear()

        second = await service.repair_all()
        assert not any(entry.changed for entry in second)
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_repaired_rows_decode_cleanly(self):
        store = _corrupted_store()
        await TemplateRepairService(store).repair_all()
        for row in store.rows.values():
            assert not decode_template_row(row).meta.degraded

    @pytest.mark.asyncio
    async def test_failed_row_does_not_stop_pass(self):
        store = _corrupted_store()

        original = store.update_template_fields

        async def flaky(template_id, patch):
            if template_id == "tpl_object":
                raise RuntimeError("write failed")
            await original(template_id, patch)

        store.update_template_fields = flaky
        report = await TemplateRepairService(store).repair_all()
        by_id = {entry.id: entry for entry in report}
        assert by_id["tpl_object"].error == "write failed"
        assert by_id["tpl_double"].changed is True

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back_before_next_row(self):
        session = AbortingSession(fail_on_call=1)
        store = FixedRowsSqlStore(
            session,
            [make_row(f"tpl_{name}", elements="[object Object]") for name in ("a", "b", "c")],
        )

        report = await TemplateRepairService(store).repair_all()

        by_id = {entry.id: entry for entry in report}
        assert "update failed" in by_id["tpl_a"].error
        assert by_id["tpl_b"].changed is True
        assert by_id["tpl_c"].changed is True
        assert session.rollbacks == 1
        assert session.commits == 2


class AbortingSession:
    """Session that, like PostgreSQL, refuses statements after a failure until rolled back."""

    def __init__(self, fail_on_call: int) -> None:
        self.fail_on_call = fail_on_call
        self.calls = 0
        self.aborted = False
        self.rollbacks = 0
        self.commits = 0

    async def execute(self, statement):
        self.calls += 1
        if self.aborted:
            raise SQLAlchemyError("current transaction is aborted")
        if self.calls == self.fail_on_call:
            self.aborted = True
            raise SQLAlchemyError("update failed")
        return MagicMock()

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.aborted = False
        self.rollbacks += 1


class FixedRowsSqlStore(SqlTemplateStore):
    def __init__(self, session, rows) -> None:
        super().__init__(session)
        self._rows = rows

    async def list_raw_templates(self):
        return list(self._rows)


class TestDiagnostics:
    @pytest.mark.asyncio
    async def test_diagnose_all(self):
        service = TemplateRepairService(_corrupted_store())
        diagnostics = {d.id: d for d in await service.diagnose_all()}

        corrupted = diagnostics["tpl_object"]
        assert corrupted.element_count == 0
        assert corrupted.diagnostics["elements"].type == "string"
        assert corrupted.diagnostics["elements"].starts_with == "[object Object]"

        good = diagnostics["tpl_good"]
        assert good.element_count == 1
        assert good.elements_preview[0]["type"] == "header"
        assert diagnostics["tpl_double"].diagnostics["settings"].type == "null"

    @pytest.mark.asyncio
    async def test_diagnose_missing(self):
        assert await TemplateRepairService(InMemoryTemplateStore()).diagnose("nope") is None

    @pytest.mark.asyncio
    async def test_diagnose_raw(self):
        result = await TemplateRepairService(_corrupted_store()).diagnose("tpl_object")
        assert result.raw["elements"] == "[object Object]"
        assert result.diagnostics["elements"].length == 15
