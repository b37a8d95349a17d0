"""CLI entrypoint for the Horizon planning-application scraper."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from horizon_scraper.common.config_loader import load_authorities
from horizon_scraper.common.constants import DEFAULT_DATABASE, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from horizon_scraper.common.errors import ConfigurationError, ScraperError
from horizon_scraper.common.http import HttpOptions, RetryConfig
from horizon_scraper.common.logging import build_logger, close_logger, log_event
from horizon_scraper.common.time_utils import generate_run_id, parse_run_date
from horizon_scraper.harvest.runner import run_scrape
from horizon_scraper.pipeline.export import write_records_csv
from horizon_scraper.pipeline.reports import write_run_summary
from horizon_scraper.pipeline.sink import SqliteSink

COMMANDS = ("scrape", "export", "authorities")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--authority", default="all")
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--database", default=None)
    parser.add_argument("--output", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--max-attempts", type=int, default=1)
    parser.add_argument("--min-request-interval", type=float, default=None)
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def _database_path(args: argparse.Namespace) -> Path:
    if args.database:
        return Path(args.database)
    return Path(args.data_dir) / DEFAULT_DATABASE


def _http_options(args: argparse.Namespace) -> HttpOptions:
    return HttpOptions(
        retry=RetryConfig(max_attempts=max(1, args.max_attempts)),
        min_request_interval=args.min_request_interval,
    )


def run_export(args: argparse.Namespace, logger: logging.Logger) -> int:
    out_path = Path(args.output) if args.output else Path(args.data_dir) / "out" / "records.csv"
    with SqliteSink(_database_path(args)) as sink:
        count = write_records_csv(sink, out_path)
    log_event(logger, f"exported {count} records to {out_path}", event="EXPORT_END", status="ok", rows_out=count)
    return EXIT_SUCCESS


def run_list_authorities(args: argparse.Namespace) -> int:
    registry = load_authorities(
        Path(args.config_dir),
        overlay_config_dir=Path(args.overlay_config_dir) if args.overlay_config_dir else None,
    )
    for key, config in registry.items():
        print(f"{key}\t{config.start_url}")
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    if args.command == "authorities":
        return run_list_authorities(args)

    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    data_dir = Path(args.data_dir)
    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)

    try:
        if args.command == "export":
            return run_export(args, logger)

        try:
            registry = load_authorities(
                Path(args.config_dir),
                overlay_config_dir=Path(args.overlay_config_dir) if args.overlay_config_dir else None,
            )
            authorities = registry.resolve(args.authority)
        except ConfigurationError as exc:
            log_event(
                logger,
                str(exc),
                level=logging.ERROR,
                run_id=run_id,
                event="CONFIG_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            return EXIT_HARD_FAIL

        with SqliteSink(_database_path(args)) as sink:
            try:
                results = run_scrape(
                    registry,
                    authorities,
                    sink,
                    logger=logger,
                    run_id=run_id,
                    run_date=run_date,
                    options=_http_options(args),
                    strict=args.strict,
                )
            except ScraperError:
                return EXIT_HARD_FAIL

        write_run_summary(data_dir, run_id=run_id, run_date=run_date, results=results)
        if any(result["status"] != "ok" for result in results.values()):
            return EXIT_PARTIAL
        return EXIT_SUCCESS
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except ScraperError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
