"""Command-line interface for document loading, extraction and CSV export.

Provides subcommands to print a document's text, classify it, extract
its invoice or receipt fields, and process whole folders into a CSV.
"""

import argparse
import asyncio
import csv
import json
import mimetypes
import sys
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

from docingest.exceptions import DocumentIngestionError
from docingest.loaders.document_loader import DocumentLoader, LoadDocumentRequest
from docingest.loaders.mime import (
    DOC,
    DOCX,
    ODP,
    ODS,
    ODT,
    PPTX,
    XLS,
    XLSX,
    get_supported_extensions,
)
from docingest.pipeline import DocumentPipeline, PipelineResult, build_loader, build_pipeline
from docingest.utils.config import AppConfig, load_config
from docingest.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

T = TypeVar("T")

_IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "heic", "tif", "tiff", "webp")
_EXTRA_TYPES = {
    ".md": "text/markdown",
    ".heic": "image/heic",
    ".rtf": "application/rtf",
    ".docx": DOCX,
    ".doc": DOC,
    ".xlsx": XLSX,
    ".xls": XLS,
    ".pptx": PPTX,
    ".odt": ODT,
    ".ods": ODS,
    ".odp": ODP,
}
_META_COLUMNS = [
    "filename",
    "status",
    "category",
    "confidence",
    "language",
    "data_quality_poor",
    "processing_time_s",
    "error",
]


def guess_mime_type(path: Path) -> str:
    """Guess a MIME type from a file extension.

    Args:
        path: Document path.

    Returns:
        The MIME type, ``application/octet-stream`` when unknown.
    """
    suffix = path.suffix.lower()
    if suffix in _EXTRA_TYPES:
        return _EXTRA_TYPES[suffix]
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def _read_request(path: Path) -> LoadDocumentRequest:
    return LoadDocumentRequest(
        content=path.read_bytes(),
        mime_type=guess_mime_type(path),
        filename=path.name,
    )


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    extensions = {f".{ext}" for ext in (*get_supported_extensions(), *_IMAGE_EXTENSIONS)}
    return sorted(
        path
        for path in input_dir.iterdir()
        if path.is_file() and path.suffix.lower() in extensions
    )


def _result_to_dict(result: PipelineResult) -> dict[str, Any]:
    return {
        "category": result.classification.type.value,
        "confidence": result.classification.confidence,
        "language": result.classification.language,
        "record": result.record.model_dump(by_alias=True) if result.record else None,
    }


def _flatten_record(result: PipelineResult) -> dict[str, object]:
    """Flatten scalar record fields into CSV columns."""
    row: dict[str, object] = {
        "category": result.classification.type.value,
        "confidence": round(result.classification.confidence, 3),
        "language": result.classification.language,
    }
    if result.record is None:
        return row

    for key, value in result.record.model_dump().items():
        if isinstance(value, list):
            row[f"{key}_count"] = len(value)
        else:
            row[key] = value
    return row


async def load_file(loader: DocumentLoader, file_path: Path) -> dict[str, object]:
    """Load one file and return its text and page count."""
    result = await loader.load(_read_request(file_path))
    return {
        "filename": file_path.name,
        "mime_type": result.mime_type,
        "page_count": result.page_count,
        "ocr_used": result.metadata.get("ocr_used", False),
        "text": result.text,
    }


async def extract_single(
    pipeline: DocumentPipeline,
    file_path: Path,
    company_name: str | None = None,
) -> dict[str, Any]:
    """Process a single document and return its classification and record.

    Args:
        pipeline: Document pipeline.
        file_path: Path to the document file.
        company_name: Name of the receiving company.

    Returns:
        Dictionary with filename, category, confidence and the record.
    """
    result = await pipeline.process(_read_request(file_path), company_name=company_name)
    return {"filename": file_path.name, **_result_to_dict(result)}


async def process_folder(
    pipeline: DocumentPipeline,
    input_dir: Path,
    output_csv: Path,
    company_name: str | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all documents in a folder and export results to CSV.

    Args:
        pipeline: Document pipeline.
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        company_name: Name of the receiving company.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            result = await pipeline.process(
                _read_request(file_path), company_name=company_name
            )
            row: dict[str, object] = {
                "filename": file_path.name,
                "status": "success",
                "data_quality_poor": (
                    result.record.data_quality_poor if result.record else None
                ),
                "error": None,
            }
            row.update(_flatten_record(result))
            row["processing_time_s"] = round(time.time() - start_time, 2)
            results.append(row)
            successful += 1
        except Exception as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            results.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            failed += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def _emit(payload: dict[str, Any], output: Path | None) -> None:
    output_str = json.dumps(payload, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str)
        print(f"Output written to {output}")
    else:
        print(output_str)


def _require_file(path: Path) -> None:
    if not path.exists():
        print(f"Error: {path} does not exist", file=sys.stderr)
        sys.exit(1)


async def _load_and_close(config: AppConfig, file_path: Path) -> dict[str, object]:
    loader = build_loader(config)
    try:
        return await load_file(loader, file_path)
    finally:
        await loader.aclose()


async def _run_pipeline(
    config: AppConfig,
    command: Callable[[DocumentPipeline], Awaitable[T]],
) -> T:
    """Build a pipeline, run one command on it and close its clients."""
    pipeline = build_pipeline(config)
    try:
        return await command(pipeline)
    finally:
        await pipeline.aclose()


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Document ingestion and extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to a YAML config file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    load_parser = subparsers.add_parser("load", help="Print the text of a document")
    load_parser.add_argument("file", type=Path, help="Document file to load")
    load_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    classify_parser = subparsers.add_parser("classify", help="Classify a document")
    classify_parser.add_argument("file", type=Path, help="Document file to classify")

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument("--company", help="Name of the receiving company")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument("--company", help="Name of the receiving company")
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch" and not args.input_dir.is_dir():
        print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
        sys.exit(1)
    if args.command in ("load", "classify", "extract"):
        _require_file(args.file)

    try:
        if args.command == "load":
            _emit(asyncio.run(_load_and_close(config, args.file)), args.output)
        elif args.command == "classify":
            result = asyncio.run(
                _run_pipeline(config, lambda p: p.classify(_read_request(args.file)))
            )
            _emit({"filename": args.file.name, **result.model_dump(mode="json")}, None)
        elif args.command == "extract":
            payload = asyncio.run(
                _run_pipeline(
                    config, lambda p: extract_single(p, args.file, args.company)
                )
            )
            _emit(payload, args.output)
        elif args.command == "batch":
            asyncio.run(
                _run_pipeline(
                    config,
                    lambda p: process_folder(
                        p, args.input_dir, args.output, args.company, args.verbose
                    ),
                )
            )
    except DocumentIngestionError as exc:
        logger.error("%s failed: %s", args.command, exc)
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
