"""
Given a ZMK keymap in devicetree format, extract its layers and combos and print
a YAML representation of them to standard output.
"""

import logging
import sys
from argparse import ArgumentParser, FileType, Namespace
from importlib.metadata import version

import yaml

from zmk_keymap import logger
from zmk_keymap.config import Config
from zmk_keymap.parse import KeymapParser, ParseError


def parse(args: Namespace, config: Config) -> int:
    """Parse the keymap and dump its YAML representation, returning the exit code."""
    parser = KeymapParser(config.parse_config)
    try:
        keymap = parser.parse(args.zmk_keymap.read())
    except ParseError as err:
        logger.error("could not parse %s: %s", args.zmk_keymap.name, err)
        return 1

    yaml.safe_dump(keymap.dump(), args.output, width=160, sort_keys=False, default_flow_style=None, allow_unicode=True)

    if args.strict and parser.diagnostics:
        logger.error("%d problem(s) found in strict mode", len(parser.diagnostics))
        return 2
    return 0


def dump_config(args: Namespace, config: Config) -> int:
    """Dump the currently active config, either default or parsed from args."""
    yaml.safe_dump(config.model_dump(), args.output, sort_keys=False, allow_unicode=True)
    return 0


def main() -> None:
    """Parse the configuration and run the selected command."""
    parser = ArgumentParser(description=__doc__)
    parser.add_argument("-v", "--version", action="version", version=version("zmk-keymap"))
    parser.add_argument("-d", "--debug", action="store_true")
    parser.add_argument(
        "-c",
        "--config",
        help="A YAML file containing parse settings, default can be dumped using `dump-config` command",
        type=FileType("rt", encoding="utf-8"),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_p = subparsers.add_parser("parse", help="parse a ZMK keymap to YAML representation to stdout")
    parse_p.add_argument("zmk_keymap", help="Path to ZMK *.keymap to parse", type=FileType("rt", encoding="utf-8"))
    parse_p.add_argument(
        "--strict",
        help="Exit with a non-zero status if any layer or combo had to be skipped or had problems",
        action="store_true",
    )
    parse_p.add_argument(
        "-o",
        "--output",
        help="Output to path instead of stdout",
        type=FileType("wt", encoding="utf-8"),
        default=sys.stdout,
    )

    dump_p = subparsers.add_parser(
        "dump-config", help="dump default parse config to stdout that can be passed to -c/--config option"
    )
    dump_p.add_argument(
        "-o",
        "--output",
        help="Output to path instead of stdout",
        type=FileType("wt", encoding="utf-8"),
        default=sys.stdout,
    )

    args = parser.parse_args()

    logging.basicConfig(format="%(levelname)s: %(name)s: %(message)s")
    if args.debug:
        logger.setLevel(logging.DEBUG)

    config = Config(**(yaml.safe_load(args.config) or {})) if args.config else Config()

    try:
        match args.command:
            case "parse":
                code = parse(args, config)
            case "dump-config":
                code = dump_config(args, config)
    finally:
        if args.output is not sys.stdout:
            args.output.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
