import argparse
import asyncio
import json
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

# settings 인스턴스 생성 전에 .env 를 프로세스 환경에 올림
load_dotenv()

from catalog.errors import CatalogError, ImportConfigError
from catalog.settings import settings

# 로그 설정
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s'
)
logger = logging.getLogger("catalog.cli")


def run_import_command(args) -> int:
    """피드 검증(dry-run) 및 적용(--apply)"""
    from catalog.db import session_factory
    from catalog.importer.loader import load_feed
    from catalog.importer.pipeline import ImportPipeline
    from catalog.importer.report import format_apply_report, format_dry_run_report

    products = load_feed(args.products, required=True)
    images = load_feed(args.images, required=False)
    logger.info(f"[CLI] Loaded {len(products)} products, {len(images)} images")

    pipeline = ImportPipeline(
        session_factory,
        concurrency=args.concurrency,
        error_limit=settings.import_report_error_limit,
    )
    report = asyncio.run(pipeline.run(products, images, apply=args.apply))

    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2, default=str))
    else:
        print(format_dry_run_report(report.dry_run))
        if report.applied is not None:
            print(format_apply_report(report.applied))
        else:
            print("\nDry run only. Re-run with --apply to write to the database.")
    return 0


def run_drift_check_command(args) -> int:
    from catalog.db import session_factory
    from catalog.services.product_service import ProductService

    with session_factory() as session:
        summary = ProductService(session).run_drift_check_for_published()
    print(
        f"checked={summary.checked} price_changed={summary.price_changed} "
        f"out_of_stock={summary.out_of_stock}"
    )
    return 0


def run_init_db_command(args) -> int:
    from catalog.db import init_db

    init_db()
    logger.info("[CLI] Tables created")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Product Catalog Engine CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    import_parser = subparsers.add_parser("import-products", help="Validate and import product/image feeds")
    import_parser.add_argument("--products", default=settings.import_default_products_path, help="Product feed (JSON array)")
    import_parser.add_argument("--images", default=settings.import_default_images_path, help="Image feed (JSON array)")
    mode = import_parser.add_mutually_exclusive_group()
    mode.add_argument("--apply", action="store_true", help="Write to the database")
    mode.add_argument("--dry-run", dest="apply", action="store_false", help="Validate and report only (default)")
    import_parser.add_argument("--concurrency", type=int, default=settings.import_concurrency)
    import_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    subparsers.add_parser("drift-check", help="Simulate source price/stock checks for PUSHED products")
    subparsers.add_parser("init-db", help="Create tables")
    return parser


COMMANDS = {
    "import-products": run_import_command,
    "drift-check": run_drift_check_command,
    "init-db": run_init_db_command,
}


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    if getattr(args, "concurrency", 1) < 1:
        parser.error("--concurrency must be >= 1")

    try:
        sys.exit(handler(args))
    except ImportConfigError as e:
        logger.error(f"[CLI] {e.message}")
        sys.exit(1)
    except CatalogError as e:
        logger.exception(f"[CLI] Critical error: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
