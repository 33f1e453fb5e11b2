"""임포트 리포트. 저장소를 읽지 않고 리포트만으로 실행 결과를 감사할 수 있어야 합니다."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from catalog.importer.validation import (
    EnumNormalization,
    ImageValidation,
    ProductValidation,
    RecordError,
)

PREVIEW_LIMIT = 5


@dataclass
class ProductSummary:
    total: int = 0
    valid: int = 0
    skipped: int = 0
    duplicate_slugs: int = 0
    invalid: int = 0
    enum_normalizations: int = 0
    nulled_references: int = 0
    slug_duplicates: list[str] = field(default_factory=list)
    normalizations: list[EnumNormalization] = field(default_factory=list)
    errors: list[RecordError] = field(default_factory=list)


@dataclass
class ImageSummary:
    total: int = 0
    valid: int = 0
    skipped: int = 0
    errors: list[RecordError] = field(default_factory=list)


@dataclass
class DryRunReport:
    products: ProductSummary
    images: ImageSummary

    @classmethod
    def build(
        cls,
        products: ProductValidation,
        images: ImageValidation,
        error_limit: int = 10,
    ) -> "DryRunReport":
        return cls(
            products=ProductSummary(
                total=len(products.valid) + len(products.skipped),
                valid=len(products.valid),
                skipped=len(products.skipped),
                duplicate_slugs=len(products.slug_duplicates),
                invalid=len(products.errors),
                enum_normalizations=len(products.enum_normalizations),
                nulled_references=products.nulled_references,
                slug_duplicates=list(products.slug_duplicates),
                normalizations=list(products.enum_normalizations),
                errors=products.errors[:error_limit],
            ),
            images=ImageSummary(
                total=len(images.valid) + len(images.skipped),
                valid=len(images.valid),
                skipped=len(images.skipped),
                errors=images.errors[:error_limit],
            ),
        )


@dataclass
class ProductApplyCounts:
    created: int = 0
    updated: int = 0
    failed: int = 0


@dataclass
class ImageApplyCounts:
    deleted: int = 0
    created: int = 0
    failed: int = 0


@dataclass
class ApplyReport:
    products: ProductApplyCounts = field(default_factory=ProductApplyCounts)
    images: ImageApplyCounts = field(default_factory=ImageApplyCounts)
    mapped_products: int = 0
    elapsed_ms: int = 0


@dataclass
class ImportReport:
    dry_run: DryRunReport
    applied: Optional[ApplyReport] = None

    @property
    def mode(self) -> str:
        return "apply" if self.applied is not None else "dry-run"

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "validation": asdict(self.dry_run),
            "applied": asdict(self.applied) if self.applied is not None else None,
        }


def _preview(lines: list[str], items: list[str], title: str) -> None:
    if not items:
        return
    lines.append(f"\n  {title} (first {min(PREVIEW_LIMIT, len(items))}):")
    for i, item in enumerate(items[:PREVIEW_LIMIT], start=1):
        lines.append(f"    {i}. {item}")
    if len(items) > PREVIEW_LIMIT:
        lines.append(f"    ... and {len(items) - PREVIEW_LIMIT} more")


def format_dry_run_report(report: DryRunReport) -> str:
    p, im = report.products, report.images
    lines = ["=" * 80, "DRY-RUN VALIDATION REPORT", "=" * 80, "", "PRODUCTS:"]
    lines.append(f"  Total:            {p.total}")
    lines.append(f"  Valid:            {p.valid}")
    lines.append(f"  Skipped:          {p.skipped}")
    lines.append(f"  Duplicate slugs:  {p.duplicate_slugs}")
    lines.append(f"  Invalid records:  {p.invalid}")
    lines.append(f"  Normalizations:   {p.enum_normalizations} (status/lifecycleStatus)")
    lines.append(f"  Nulled refs:      {p.nulled_references} (shopId/categoryId)")
    _preview(lines, p.slug_duplicates, "Duplicate slugs")
    _preview(lines, [f'{n.field}: "{n.old}" -> "{n.new}"' for n in p.normalizations], "Enum normalizations")
    if p.errors:
        lines.append(f"\n  Errors (showing {len(p.errors)} of {p.invalid}):")
        lines.extend(f"    [{e.index}] {e.field}: {e.message}" for e in p.errors)

    lines += ["", "IMAGES:"]
    lines.append(f"  Total:    {im.total}")
    lines.append(f"  Valid:    {im.valid}")
    lines.append(f"  Skipped:  {im.skipped}")
    if im.errors:
        lines.append(f"\n  Errors (showing {len(im.errors)} of {im.skipped}):")
        lines.extend(f"    [{e.index}] {e.field}: {e.message}" for e in im.errors)
    lines.append("=" * 80)
    return "\n".join(lines)


def format_apply_report(report: ApplyReport) -> str:
    lines = ["=" * 80, "APPLY REPORT", "=" * 80, "", "PRODUCTS:"]
    lines.append(f"  Created: {report.products.created}")
    lines.append(f"  Updated: {report.products.updated}")
    lines.append(f"  Failed:  {report.products.failed}")
    lines.append(f"  Mapped:  {report.mapped_products}")
    lines += ["", "IMAGES:"]
    lines.append(f"  Deleted: {report.images.deleted}")
    lines.append(f"  Created: {report.images.created}")
    lines.append(f"  Failed:  {report.images.failed}")
    lines.append(f"\nElapsed: {report.elapsed_ms / 1000:.2f}s")
    lines.append("=" * 80)
    return "\n".join(lines)
