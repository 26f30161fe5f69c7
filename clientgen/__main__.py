"""Entry point: python -m clientgen INPUT [-o OUTPUT]

Reads an OpenAPI/Swagger document and writes TypeScript models, zod
validators and admin form scaffolding.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .codegen import generate
from .config import build_config, load_config
from .context_builder import build_context
from .errors import GeneratorError
from .loader import SchemaStore, load_spec

logger = logging.getLogger("clientgen")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clientgen", description=__doc__.splitlines()[0])
    parser.add_argument("input", nargs="?", help="API document path or http(s) URL")
    parser.add_argument("-o", "--output", help="output directory (default: generated)")
    parser.add_argument("-c", "--config", help="YAML or JSON configuration file")
    parser.add_argument("--date-type", choices=("string", "Date"), help="how date formats are typed")
    parser.add_argument("--enum-style", choices=("union", "enum"), help="string enum declaration style")
    parser.add_argument("--no-admin", action="store_true", help="skip admin UI scaffolding")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        "input": args.input,
        "output": args.output,
        "date_type": args.date_type,
        "enum_style": args.enum_style,
    }
    try:
        config = load_config(args.config, **overrides) if args.config else build_config(**overrides)
        if args.no_admin:
            config.admin.enabled = False
        if not config.input:
            logger.error("No input document given (argument or config 'input')")
            return 1
        store = SchemaStore(load_spec(config.input))
        context = build_context(store, config)
        generate(context, config.output)
    except GeneratorError as exc:
        logger.error("%s", exc)
        return 1

    return 0


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
