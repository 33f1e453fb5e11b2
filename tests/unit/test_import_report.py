import json

import pytest

from catalog.errors import ImportConfigError
from catalog.importer.loader import load_feed
from catalog.importer.report import (
    ApplyReport,
    DryRunReport,
    ImportReport,
    format_apply_report,
    format_dry_run_report,
)
from catalog.importer.validation import validate_images, validate_products


@pytest.mark.unit
class TestLoadFeed:
    def test_reads_json_array(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text(json.dumps([{"slug": "a"}]), encoding="utf-8")
        assert load_feed(str(path), required=True) == [{"slug": "a"}]

    def test_missing_product_feed_is_fatal(self, tmp_path):
        with pytest.raises(ImportConfigError):
            load_feed(str(tmp_path / "missing.json"), required=True)

    def test_broken_product_feed_is_fatal(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ImportConfigError) as excinfo:
            load_feed(str(path), required=True)
        assert excinfo.value.path == str(path)

    def test_non_array_product_feed_is_fatal(self, tmp_path):
        path = tmp_path / "products.json"
        path.write_text("{}", encoding="utf-8")
        with pytest.raises(ImportConfigError):
            load_feed(str(path), required=True)

    def test_missing_image_feed_continues(self, tmp_path):
        assert load_feed(str(tmp_path / "images.json"), required=False) == []
        assert load_feed(None, required=False) == []


@pytest.mark.unit
class TestReports:
    def _dry_run(self, error_limit=10):
        products = validate_products([
            {"id": "1", "title": "A", "slug": "a", "status": "live"},
            {"id": "2", "title": "B", "slug": "a"},
            {"id": "3", "title": "", "slug": "c"},
            {"id": "4", "title": "", "slug": "d"},
        ])
        images = validate_images([{"url": "https://img/1.jpg", "productId": "1"}, {"url": "x"}])
        return DryRunReport.build(products, images, error_limit=error_limit)

    def test_dry_run_counts(self):
        report = self._dry_run()
        assert report.products.total == 4
        assert report.products.valid == 1
        assert report.products.skipped == 3
        assert report.products.duplicate_slugs == 1
        assert report.products.invalid == 2
        assert report.products.enum_normalizations == 1
        assert report.images.total == 2
        assert report.images.valid == 1
        assert report.images.skipped == 1

    def test_error_limit(self):
        report = self._dry_run(error_limit=1)
        assert report.products.invalid == 2
        assert len(report.products.errors) == 1

    def test_to_dict(self):
        report = ImportReport(dry_run=self._dry_run())
        data = report.to_dict()
        assert data["mode"] == "dry-run"
        assert data["applied"] is None
        assert data["validation"]["products"]["slug_duplicates"] == ["a"]

        report.applied = ApplyReport(elapsed_ms=42)
        data = report.to_dict()
        assert data["mode"] == "apply"
        assert data["applied"]["elapsed_ms"] == 42
        assert data["applied"]["products"] == {"created": 0, "updated": 0, "failed": 0}

    def test_text_format(self):
        text = format_dry_run_report(self._dry_run())
        assert "DRY-RUN VALIDATION REPORT" in text
        assert "Duplicate slugs:  1" in text
        assert 'status: "live" -> "Active"' in text

        applied = ApplyReport()
        applied.products.created = 3
        assert "Created: 3" in format_apply_report(applied)
