from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Tuple

from .config.config_parser import REPORTS, AppConfig, parse_config_file
from .config.logging_config import init_logging
from .errors import MalformedLineError, RuleSyntaxError
from .lexer import Lexer
from .parser import Parser, parse_rules_file, read_rule_file
from .reports import (
    destination_counts,
    make_extractor,
    render_rule,
    subdomain_rules,
    write_without_subdomain,
)
from .rules import RuleItem

DEFAULT_CONFIG = "filter-manager.yaml"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_MALFORMED = 2


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="filter-manager",
        description="Parse a filter rule file and report on or rewrite it",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help="Path to YAML config (optional when the default path is missing)",
    )
    parser.add_argument(
        "-v",
        "--var",
        action="append",
        default=[],
        metavar="KEY=YAML",
        help="Override a config variable; may be repeated",
    )
    parser.add_argument("--input", help="Rule file to parse")
    parser.add_argument("--output", help="Output file for the rewrite report")
    parser.add_argument("--report", choices=REPORTS, help="Report to produce")
    parser.add_argument(
        "--min-count",
        type=int,
        help="Smallest destination count shown by the destinations report",
    )
    parser.add_argument(
        "--collect-errors",
        action="store_true",
        help="Keep valid lines and report every rejected line instead of stopping",
    )
    return parser


def _apply_cli_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Brief: Return cfg with any explicitly given CLI flags applied.

    Inputs:
      - cfg: Validated configuration from the YAML file.
      - args: Parsed CLI namespace.

    Outputs:
      - AppConfig: New validated configuration.
    """

    update = cfg.model_dump()
    for key in ("input", "output", "report", "min_count"):
        value = getattr(args, key)
        if value is not None:
            update[key] = value
    if args.collect_errors:
        update["strict"] = False
    return AppConfig(**update)


def _load_rules(
    cfg: AppConfig, logger: logging.Logger
) -> Tuple[List[RuleItem], int]:
    """Brief: Parse cfg.input according to cfg.strict.

    Inputs:
      - cfg: Effective configuration.
      - logger: Logger for parse diagnostics.

    Outputs:
      - (items, exit_code): exit_code is EXIT_OK when every line parsed.

    Raises:
      - OSError: The input file could not be read.
      - RuleSyntaxError: Strict mode and a line was rejected.
    """

    if cfg.strict:
        return parse_rules_file(cfg.input), EXIT_OK

    report = Parser(Lexer(read_rule_file(cfg.input))).parse_collect()
    for err in report.errors:
        logger.warning("%s: %s", cfg.input, err)
    if not report.ok:
        logger.warning(
            "Rejected %d lines, kept %d rule items",
            len(report.errors),
            len(report.items),
        )
        return report.items, EXIT_ERROR
    return report.items, EXIT_OK


def run_report(cfg: AppConfig, rules: List[RuleItem]) -> None:
    """Brief: Produce the configured report for parsed rules.

    Inputs:
      - cfg: Effective configuration (report, min_count, output, psl).
      - rules: Parsed rule items.

    Outputs:
      - None; prints report rows or writes cfg.output.
    """

    logger = logging.getLogger("filter_manager.main")

    if cfg.report == "destinations":
        for dest, count in destination_counts(rules, min_count=cfg.min_count):
            print(f"{dest} -> {count}")
    elif cfg.report == "subdomains":
        extractor = make_extractor(offline=cfg.psl.offline)
        for host, dest in subdomain_rules(rules, extractor):
            print(f"{host} {dest}")
    elif cfg.report == "rewrite":
        extractor = make_extractor(offline=cfg.psl.offline)
        with open(cfg.output, "w", encoding="utf-8") as out:
            written = write_without_subdomain(rules, out, extractor)
        logger.info("Wrote %d rules to %s", written, cfg.output)
    elif cfg.report == "dump":
        for item in rules:
            print(render_rule(item))
    else:
        raise ValueError(f"unknown report {cfg.report!r}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for filter-manager.
    Parses arguments, loads configuration, parses the rule file and produces
    the configured report.

    Args:
        argv: Command-line arguments.

    Returns:
        An exit code: 0 on success, 1 on configuration, I/O, URI or keyword
        errors, 2 when a line has the wrong number of fields.

    Example use:
        CLI:
            filter-manager --input rules.txt --report destinations
            python -m filter_manager --config filter-manager.yaml -v MIN=3
    """
    args = _build_arg_parser().parse_args(argv)

    try:
        cfg = parse_config_file(
            args.config,
            cli_vars=args.var,
            required=args.config != DEFAULT_CONFIG,
        )
        cfg = _apply_cli_overrides(cfg, args)
    except (OSError, ValueError) as exc:
        print(str(exc))
        return EXIT_ERROR

    init_logging(cfg.logging.model_dump())
    logger = logging.getLogger("filter_manager.main")
    logger.debug("Effective config: %s", cfg.model_dump())

    try:
        rules, exit_code = _load_rules(cfg, logger)
    except OSError as exc:
        logger.error("Could not read %s: %s", cfg.input, exc)
        return EXIT_ERROR
    except MalformedLineError as exc:
        logger.error("%s: parse did not complete: %s", cfg.input, exc)
        return EXIT_MALFORMED
    except RuleSyntaxError as exc:
        logger.error("%s: %s", cfg.input, exc)
        return EXIT_ERROR

    logger.info("Parsed %d rule items from %s", len(rules), cfg.input)

    try:
        run_report(cfg, rules)
    except OSError as exc:
        logger.error("Could not write %s: %s", cfg.output, exc)
        return EXIT_ERROR

    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())  # pragma: no cover
