"""Command-line entry point for verifying packs and serving the sprite selector."""

import argparse
import logging
import sys
from pathlib import Path

from spritecatalog import config
from spritecatalog.core import VerificationReport
from spritecatalog.core.errors import FetchError, PackFormatError
from spritecatalog.core.image_backend import resolve_backend
from spritecatalog.core.pack_fetcher import PackFetcher
from spritecatalog.core.pack_verifier import PackVerifier, verify_many
from spritecatalog.main import configure_logging, serve

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="assetpalette",
        description="Verify sprite pack definitions and pick sprites from pack sheets.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    verify = commands.add_parser("verify", help="Check sprite coordinates against pack sheets")
    verify.add_argument("definitions", type=Path, nargs="+", help="Pack definition JSON files")
    verify.add_argument(
        "--cache-dir",
        type=Path,
        help="Where pack archives are extracted (default: .cache next to the definitions' parent)",
    )
    verify.add_argument(
        "--preview-dir",
        type=Path,
        help="Directory for <pack-id>-preview.png (default: beside each definition)",
    )
    verify.add_argument(
        "--no-images",
        action="store_true",
        help="Skip coordinate checks and previews (structural checks only)",
    )

    serve_cmd = commands.add_parser("serve", help="Run the sprite selector relay")
    serve_cmd.add_argument("pack_id", nargs="?", help="Download this pack before serving")
    serve_cmd.add_argument("--catalog", type=Path, default=config.CATALOG_PATH, help="Catalog JSON path")
    serve_cmd.add_argument("--cache-dir", type=Path, default=config.CACHE_DIR, help="Pack cache directory")
    serve_cmd.add_argument("--host", default=config.HOST)
    serve_cmd.add_argument("--port", type=int, default=config.PORT)
    return parser


def _default_cache_dir(definition: Path) -> Path:
    # definitions live in sprites/<source>/<pack>.json; the cache sits at the repo root
    return definition.resolve().parent.parent.parent / ".cache"


def print_report(report: VerificationReport, out=None) -> None:
    out = out or sys.stdout
    if report.errors:
        print("  ERRORS:", file=out)
        for err in report.errors:
            print(f"    - {err}", file=out)
    if report.warnings:
        print("  WARNINGS:", file=out)
        for warn in report.warnings:
            print(f"    - {warn}", file=out)
    status = "VALID" if report.valid else "INVALID"
    print(f"  Status: {status} ({report.sprite_count} sprites)", file=out)


def run_verify(args: argparse.Namespace) -> int:
    backend = None if args.no_images else resolve_backend()
    total_errors = 0

    definitions = []
    for definition in args.definitions:
        if definition.name.endswith("_index.json"):
            continue
        if not definition.exists():
            print(f"File not found: {definition}", file=sys.stderr)
            total_errors += 1
            continue
        definitions.append(definition)

    def make_verifier(definition: Path) -> PackVerifier:
        return PackVerifier(
            fetcher=PackFetcher(args.cache_dir or _default_cache_dir(definition)),
            image_backend=backend,
            preview_dir=args.preview_dir or definition.parent,
        )

    for definition, report in verify_many(definitions, make_verifier).items():
        print(f"\nVerifying: {definition}")
        print_report(report)
        total_errors += len(report.errors)

    if total_errors:
        print(f"\n{total_errors} error(s) found.")
        return 1
    print("\nAll packs valid.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "verify":
        return run_verify(args)

    try:
        return serve(
            catalog_path=args.catalog,
            cache_dir=args.cache_dir,
            host=args.host,
            port=args.port,
            pack_id=args.pack_id,
        )
    except (PackFormatError, FetchError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
