"""
Unit tests for the catalog readers and the aggregation service
"""
import threading
import time
from unittest.mock import MagicMock, patch

import pytest

from services.catalog import (
    CatalogService,
    TableCatalogReader,
    category_prefixes,
    get_catalog_service,
    row_to_entry,
)
from services.errors import ConfigurationMissing, FetchFailed
from tests.conftest import BASE_URL, BUCKET, SAMPLE_PATHS, FakeReader, make_entry


class TestCategoryPrefixes:
    def test_forms_has_both_casings(self):
        assert category_prefixes("hba1c", "forms") == ["hba1c/forms/", "hba1c/Forms/"]

    @pytest.mark.parametrize("category", ["training", "protocols", "resources"])
    def test_single_candidate(self, category):
        assert category_prefixes("timemymeds", category) == [f"timemymeds/{category}/"]

    def test_unknown_category(self):
        assert category_prefixes("timemymeds", "videos") == []


class TestRowToEntry:
    def test_maps_row(self):
        row = {
            "file_name": "Adherence.Tool.pdf",
            "file_path": "/mtmthefuturetoday/Forms/Adherence.Tool.pdf",
            "file_url": "",
            "file_size": 1234,
            "mime_type": "application/pdf",
        }
        e = row_to_entry(row, BASE_URL, BUCKET)
        assert e.path == "mtmthefuturetoday/Forms/Adherence.Tool.pdf"
        assert e.title == "Adherence.Tool"
        assert e.size == 1234
        assert e.url == f"{BASE_URL}/storage/v1/object/public/{BUCKET}/mtmthefuturetoday/Forms/Adherence.Tool.pdf"

    def test_prefers_stored_url(self):
        row = {"file_name": "a.pdf", "file_path": "x/a.pdf", "file_url": "https://cdn.example/a.pdf"}
        assert row_to_entry(row, BASE_URL, BUCKET).url == "https://cdn.example/a.pdf"


class TestTableCatalogReader:
    def _chain(self, client):
        return client.table.return_value.select.return_value.eq.return_value.ilike.return_value.order.return_value

    def test_query_shape(self):
        client = MagicMock()
        self._chain(client).execute.return_value = MagicMock(data=[
            {"file_name": "Intro.mp4", "file_path": "hba1c/training/Intro.mp4", "mime_type": "video/mp4"},
        ])
        reader = TableCatalogReader(client, "storage_files_catalog", BUCKET, BASE_URL)

        entries = reader.list_entries("hba1c/training/")

        client.table.assert_called_once_with("storage_files_catalog")
        client.table.return_value.select.return_value.eq.assert_called_once_with("bucket_name", BUCKET)
        client.table.return_value.select.return_value.eq.return_value.ilike.assert_called_once_with(
            "file_path", "hba1c/training/%"
        )
        assert [e.title for e in entries] == ["Intro"]
        assert entries[0].mime_type == "video/mp4"

    def test_failure_raises_fetch_failed(self):
        client = MagicMock()
        self._chain(client).execute.side_effect = RuntimeError("503 Service Unavailable")
        reader = TableCatalogReader(client, "storage_files_catalog", BUCKET, BASE_URL)

        with pytest.raises(FetchFailed) as exc:
            reader.list_entries("hba1c/training/")
        assert exc.value.source == "catalog"


class TestCatalogService:
    def test_program_category_dedupes_case_variants(self, reader):
        svc = CatalogService(reader)

        result = svc.resources_for_program_category("mtmthefuturetoday", "forms")

        assert result.ok
        assert len(result.data) == 4
        assert sorted(reader.calls) == ["mtmthefuturetoday/Forms/", "mtmthefuturetoday/forms/"]

    def test_unknown_category_is_error_without_fetch(self, reader):
        result = CatalogService(reader).resources_for_program_category("hba1c", "videos")
        assert result.data == [] and result.error
        assert reader.calls == []

    def test_grouped_has_all_categories_sorted(self, reader):
        result = CatalogService(reader).program_resources_grouped("mtmthefuturetoday")

        assert result.ok
        assert set(result.data) == {"training", "protocols", "forms", "resources"}
        assert [e.title for e in result.data["forms"]] == ["Consent", "Letter", "Loose Form", "Other"]
        assert result.data["resources"] == []

    def test_fallback_used_when_primary_fails(self):
        primary = FakeReader(SAMPLE_PATHS, fail=True)
        fallback = FakeReader(SAMPLE_PATHS)

        result = CatalogService(primary, fallback).global_category("handouts")

        assert result.ok
        assert [e.title for e in result.data] == ["Diabetes Basics"]
        assert fallback.calls == ["patienthandouts/"]

    def test_both_sources_fail(self):
        svc = CatalogService(FakeReader([], fail=True), FakeReader([], fail=True))

        result = svc.program_resources_grouped("hba1c")

        assert not result.ok
        assert "boom" in result.error
        assert all(v == [] for v in result.data.values())

    def test_no_fallback_surfaces_error(self):
        result = CatalogService(FakeReader([], fail=True)).all_resources()
        assert result.data == []
        assert result.error.startswith("boom")

    def test_order_independent_of_arrival(self):
        entries = [make_entry(p) for p in SAMPLE_PATHS]

        class SlowReader:
            def list_entries(self, prefix):
                # 讓先送出的請求最後才回來
                time.sleep(0.02 if prefix.startswith("patient") else 0)
                return [e for e in reversed(entries) if e.path.lower().startswith(prefix.lower())]

        a = CatalogService(SlowReader()).all_resources(include_program="mtmthefuturetoday")
        b = CatalogService(FakeReader(SAMPLE_PATHS), max_workers=1).all_resources(
            include_program="mtmthefuturetoday")
        assert [e.path for e in a.data] == [e.path for e in b.data]

    def test_all_resources_runs_concurrently(self):
        seen = set()
        lock = threading.Lock()

        class ThreadRecorder(FakeReader):
            def list_entries(self, prefix):
                with lock:
                    seen.add(threading.get_ident())
                time.sleep(0.01)
                return super().list_entries(prefix)

        result = CatalogService(ThreadRecorder(SAMPLE_PATHS), max_workers=4).all_resources()

        assert [e.title for e in result.data] == ["CPT Codes", "Diabetes Basics", "Hypertension Guideline"]
        assert len(seen) > 1

    def test_all_resources_dedupes(self):
        reader = FakeReader(SAMPLE_PATHS + ["patienthandouts/Diabetes Basics.pdf"])
        result = CatalogService(reader).all_resources(include_program="testandtreat")

        paths = [e.path for e in result.data]
        assert len(paths) == len(set(paths))
        assert "testandtreat/forms/Flu/Flu Intake.pdf" in paths


class TestGetCatalogService:
    def test_missing_configuration_aborts_before_network(self):
        with patch("services.supabase_client.create_client") as create:
            with pytest.raises(ConfigurationMissing):
                get_catalog_service({"SUPABASE_URL": "", "SUPABASE_ANON_KEY": ""})
            create.assert_not_called()

    def test_builds_readers(self):
        with patch("services.supabase_client.create_client") as create:
            svc = get_catalog_service({
                "SUPABASE_URL": BASE_URL + "/",
                "SUPABASE_ANON_KEY": "anon",
                "SUPABASE_BUCKET": BUCKET,
                "CATALOG_TABLE": "storage_files_catalog",
            })
        create.assert_called_once_with(BASE_URL, "anon")
        assert svc.primary.table == "storage_files_catalog"
        assert svc.fallback.bucket == BUCKET
        assert svc.primary.base_url == BASE_URL
