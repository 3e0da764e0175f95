#!/usr/bin/env python3
"""MDX documentation verification tool."""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from itertools import repeat
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from diagnostics import Diagnostic, DocumentResult, ErrorType
from frontmatter_fields import (
    frontmatter,
    should_validate_freshness_date,
    should_validate_release_date,
    validate_freshness_date,
    validate_release_date,
)
from image_imports import verify_image_imports
from mdx_parser import MdxParseError, parse_mdx
from validators import run_validators
from verify_config import ConfigError, VerifyConfig, load_config

logger = logging.getLogger(__name__)


def discover_files(paths: Iterable[Union[str, Path]], config: VerifyConfig) -> List[Path]:
    """Find all documents under the given files and directories.

    Args:
        paths: Files (kept as given) and directories (searched recursively)
        config: Supplies the document extensions and excluded directory names

    Returns:
        Sorted, de-duplicated list of document paths
    """
    found = set()

    for entry in paths:
        path = Path(entry)

        if path.is_file():
            found.add(path)
            continue

        if not path.is_dir():
            logger.warning("Skipping %s: no such file or directory", path)
            continue

        for candidate in path.rglob('*'):
            if candidate.suffix not in config.extensions or not candidate.is_file():
                continue

            # Exclude configured directories anywhere below the search root
            rel_parts = candidate.relative_to(path).parts[:-1]
            if any(part in config.exclude_dirs for part in rel_parts):
                continue

            found.add(candidate)

    logger.debug("Discovered %d document(s)", len(found))
    return sorted(found)


def verify_mdx(file_path: Union[str, Path], config: Optional[VerifyConfig] = None) -> DocumentResult:
    """Parse one document, run the structural validators and the frontmatter checks.

    Args:
        file_path: Document to verify
        config: Effective configuration (default: built-in defaults)

    Returns:
        DocumentResult holding every diagnostic for the document

    A document that fails to parse gets a single MDX_ERROR in place of the
    structural diagnostics; frontmatter checks still run.
    """
    config = config or VerifyConfig()
    path = Path(file_path)
    text = path.read_text(encoding='utf-8', errors='replace')
    errors: List[Diagnostic] = []

    try:
        tree = parse_mdx(text)
    except MdxParseError as e:
        errors.append(Diagnostic(
            reason=e.reason,
            kind=ErrorType.MDX_ERROR,
            line=e.line,
            column=e.column,
        ))
    else:
        errors.extend(run_validators(tree))

    _, fm_error = frontmatter(text)
    if fm_error is not None:
        errors.append(Diagnostic(
            reason=fm_error.reason,
            kind=ErrorType.FRONTMATTER_ERROR,
            snippet=fm_error.snippet,
        ))

    if should_validate_freshness_date(path, config.exclude_from_freshness_paths):
        message = validate_freshness_date(text, max_age_days=config.freshness_max_age_days)
        if message is not None:
            errors.append(Diagnostic(reason=message, kind=ErrorType.FRONTMATTER_FIELD_ERROR))

    if should_validate_release_date(path, config.release_date_pattern):
        message = validate_release_date(text)
        if message is not None:
            errors.append(Diagnostic(reason=message, kind=ErrorType.FRONTMATTER_FIELD_ERROR))

    return DocumentResult(
        file_path=str(path),
        errors=[diagnostic.with_file(str(path)) for diagnostic in errors],
    )


def verify_files(
    file_paths: Sequence[Union[str, Path]],
    config: Optional[VerifyConfig] = None,
    jobs: int = 1,
) -> List[DocumentResult]:
    """Verify many documents; results come back in input order.

    Documents are independent, so with jobs > 1 they are verified on a
    thread pool.
    """
    config = config or VerifyConfig()

    if jobs <= 1:
        return [verify_mdx(path, config) for path in file_paths]

    with ThreadPoolExecutor(max_workers=jobs) as executor:
        return list(executor.map(verify_mdx, file_paths, repeat(config)))


def verify_images(file_paths: Sequence[Union[str, Path]]) -> List[Diagnostic]:
    """Determine if any image imports are unused or reference images that don't exist."""
    image_errors = verify_image_imports(file_paths)

    if image_errors:
        print(f"\nFound {len(image_errors)} image import errors", file=sys.stderr)
        for i, error in enumerate(image_errors, start=1):
            print(f"\nError {i}: {error.format_error()}", file=sys.stderr)
        print("\n" + "-" * 60, file=sys.stderr)
    else:
        print("\nNo image import issues found")

    return image_errors


def report(results: Sequence[DocumentResult]) -> int:
    """Print every diagnostic and a summary.

    Returns:
        Total number of diagnostics across all documents
    """
    failed = [result for result in results if not result.ok]
    total = sum(len(result.errors) for result in failed)

    for result in failed:
        print(f"\n{result.file_path}: {len(result.errors)} error(s)", file=sys.stderr)
        for error in result.errors:
            print(error.format_error(), file=sys.stderr)

    print("\n" + "=" * 60)
    if total:
        print(f"MDX verification failed: {total} error(s) in {len(failed)} of {len(results)} documents")
    else:
        print(f"MDX verification passed: {len(results)} documents")

    return total


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the verification tool."""
    parser = argparse.ArgumentParser(
        description="Verify MDX documentation: component structure, frontmatter and image imports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s src/content/docs
  %(prog)s --skip-images --jobs 8 src/content
  %(prog)s --config .verify-mdx.yml src/content/docs/apm/setup.mdx
        """
    )
    parser.add_argument(
        'paths',
        nargs='*',
        default=['.'],
        help='Documents or directories to verify (default: current directory)'
    )
    parser.add_argument(
        '--config',
        help='YAML configuration file (default: .verify-mdx.yml if present)'
    )
    parser.add_argument(
        '--skip-images',
        action='store_true',
        help='Do not check image imports'
    )
    parser.add_argument(
        '--jobs',
        type=int,
        default=1,
        help='Number of documents to verify in parallel'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show debug logging'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    file_paths = discover_files(args.paths, config)
    print(f"Verifying {len(file_paths)} documents...")

    results = verify_files(file_paths, config, jobs=args.jobs)
    total = report(results)

    if config.check_images and not args.skip_images:
        total += len(verify_images(file_paths))

    return 1 if total else 0


if __name__ == "__main__":
    sys.exit(main())
