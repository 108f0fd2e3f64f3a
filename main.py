import asyncio
import argparse
import json
import logging
import sys

from catalog.catalog_loader import (
    DEFAULT_CUSTOMERS_PATH,
    DEFAULT_FINGERPRINTS_PATH,
    build_targets,
    load_customers,
    load_fingerprints,
)
from core.catalog_validator import print_validation_report
from core.engine import Engine
from core.errors import ConfigurationError
from core.extractor_registry import ExtractorRegistry
from core.report import format_summary, save_results, serialize_summary
from core.settings import SESSION_MODES, ScanSettings, parse_bool


def main():
    parser = argparse.ArgumentParser(description="Detect competitor technologies on customer pages")
    parser.add_argument("--fingerprints", type=str, default=DEFAULT_FINGERPRINTS_PATH, help="YAML file or directory of competitor fingerprints")
    parser.add_argument("--customers", type=str, default=DEFAULT_CUSTOMERS_PATH, help="YAML file or directory of customers and their pages")
    parser.add_argument("--customer", type=str, help="Only scan customers whose name contains this text (case-insensitive)")
    parser.add_argument("--headless", type=str, choices=["true", "false"], help="Run the browser headless (default: true, env BROWSER_HEADLESS)")
    parser.add_argument("--timeout", type=int, help="Navigation timeout in ms (default: 30000, env BROWSER_TIMEOUT)")
    parser.add_argument("--batch-size", type=int, help="Pages scanned concurrently (default: 10, env BATCH_SIZE)")
    parser.add_argument("--user-agent", type=str, help="Browser user agent (env BROWSER_USER_AGENT)")
    parser.add_argument("--session-mode", type=str, choices=SESSION_MODES, help="isolated: one browser per page (default); pooled: reuse browser contexts")
    parser.add_argument("--settle-delay", type=int, help="Wait in ms after network idle before probing (default: 3000, env SETTLE_DELAY_MS)")
    parser.add_argument("--results-dir", type=str, help="Directory for saved results (default: results, env RESULTS_DIR)")
    parser.add_argument("--no-save", action="store_true", help="Print results as JSON instead of saving them to a file")
    parser.add_argument("--min-confidence", type=int, default=0, help="Minimum confidence shown in the console summary")
    parser.add_argument("--value-max-length", type=int, default=200, help="Maximum length for evidence values (default: 200, use 0 for unlimited)")
    parser.add_argument("--exclude", type=str, nargs="+", help="Skip extractors (e.g., --exclude classes_list data_attributes)")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity level (default: INFO)")
    parser.add_argument("--list-competitors", action="store_true", help="List all competitors in the fingerprint catalog and exit")
    parser.add_argument("--validate-catalog", action="store_true", help="Report shared signals and catalog problems, then exit")
    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, args.log_level),
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)

    try:
        settings = ScanSettings.from_env().with_overrides(
            headless=parse_bool(args.headless, "--headless") if args.headless else None,
            navigation_timeout_ms=args.timeout,
            concurrency_limit=args.batch_size,
            user_agent=args.user_agent,
            customer_filter=args.customer,
            session_mode=args.session_mode,
            settle_delay_ms=args.settle_delay,
            results_dir=args.results_dir,
        )

        logger.info("Loading configuration...")
        catalog = load_fingerprints(args.fingerprints)

        if args.list_competitors:
            print("Competitors in catalog:")
            for name, fingerprint in sorted(catalog.items()):
                signals = [ExtractorRegistry.get_category(f).value for f in fingerprint.populated_fields()]
                print(f"  - {name} ({', '.join(signals) or 'no signals'})")
            return

        if args.validate_catalog:
            clean = print_validation_report(catalog)
            sys.exit(0 if clean else 1)

        exclude_set = set(args.exclude) if args.exclude else set()
        invalid_excludes = exclude_set - set(ExtractorRegistry.get_all_fields())
        if invalid_excludes:
            raise ConfigurationError(
                f"Invalid extractor names: {', '.join(sorted(invalid_excludes))} "
                f"(available: {', '.join(ExtractorRegistry.get_all_fields())})"
            )

        targets = build_targets(load_customers(args.customers), settings.customer_filter)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info(f"Scanning {len(targets)} pages for {len(catalog)} competitors...")

    async def run():
        engine = Engine(settings, exclude_extractors=exclude_set)
        return await engine.run(targets, catalog)

    summary = asyncio.run(run())

    # Use unlimited length if value_max_length is 0
    max_len = None if args.value_max_length == 0 else args.value_max_length
    if args.no_save:
        # stdout carries only the JSON document
        print(json.dumps(serialize_summary(summary, max_len), indent=2))
        return

    save_results(summary, settings.results_dir, max_len)
    print(format_summary(summary, min_confidence=args.min_confidence))


if __name__ == "__main__":
    main()
