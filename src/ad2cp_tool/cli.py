"""Command line front end: decode, summarise and re-emit AD2CP captures."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Sequence

from .bodies import series_kind
from .errors import Ad2cpError
from .export import result_to_dict
from .nmea import encode_sentences, validate_codes
from .stream import DecodeResult, decode, iter_headers

logger = logging.getLogger(__name__)

DEFAULT_SENTENCES = "PNORI,PNORS,PNORC"


def _check_output(path: Path, force: bool = False) -> None:
    if path.exists() and not force:
        raise FileExistsError(
            f"Output file {path} already exists; use --force to overwrite"
        )


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _read_input(path: Path) -> bytes:
    data = path.read_bytes()
    logger.info("read %d bytes from %s", len(data), path)
    return data


def _print_error(error: Ad2cpError) -> None:
    where = f" at offset {error.offset}" if error.offset is not None else ""
    print(f"decode error{where}: {error}", file=sys.stderr)


def _report_error(result: DecodeResult) -> int:
    if result.error is None:
        return 0
    _print_error(result.error)
    return 1


def _series_lines(counts: Counter[int]) -> list[str]:
    return [
        f"  0x{series:02X} {series_kind(series)}: {count}"
        for series, count in sorted(counts.items())
    ]


def _summary_lines(result: DecodeResult, total: int) -> list[str]:
    lines = [
        f"Records: {len(result.records)} "
        f"(bytes consumed {result.bytes_consumed} of {total})"
    ]
    lines += _series_lines(result.counts_by_series())
    codes = result.counts_by_code()
    if codes:
        lines.append(
            "Diagnostics: "
            + ", ".join(f"{code}={count}" for code, count in sorted(codes.items()))
        )
    else:
        lines.append("Diagnostics: none")
    if result.truncated:
        lines.append("Truncated tail: yes")
    if result.error is not None:
        lines.append(f"Error: {result.error}")
    return lines


def _header_summary_lines(
    data: bytes,
) -> tuple[list[str], Ad2cpError | None]:
    counts: Counter[int] = Counter()
    consumed = 0
    error = None
    try:
        for header in iter_headers(data):
            counts[header.data_series_id] += 1
            consumed = header.data_end
    except Ad2cpError as exc:
        error = exc
    lines = [f"Records: {sum(counts.values())} (bytes framed {consumed} of {len(data)})"]
    lines += _series_lines(counts)
    if error is not None:
        lines.append(f"Error: {error}")
    return lines, error


def _cmd_decode(args: argparse.Namespace) -> int:
    data = _read_input(args.input)
    if args.out is not None:
        _check_output(args.out, force=args.force)
    result = decode(data)
    payload = json.dumps(
        result_to_dict(result, include_arrays=args.arrays), indent=2, allow_nan=False
    )
    if args.out is None:
        print(payload)
    else:
        args.out.write_text(payload)
        logger.info("wrote %d records to %s", len(result.records), args.out)
    return _report_error(result)


def _cmd_summary(args: argparse.Namespace) -> int:
    data = _read_input(args.input)
    if args.headers_only:
        lines, error = _header_summary_lines(data)
        for line in lines:
            print(line)
        if error is not None:
            _print_error(error)
            return 1
        return 0
    result = decode(data)
    for line in _summary_lines(result, len(data)):
        print(line)
    return _report_error(result)


def _cmd_nmea(args: argparse.Namespace) -> int:
    data = _read_input(args.input)
    if args.out is not None:
        _check_output(args.out, force=args.force)
    result = decode(data)
    lines = encode_sentences(result.records, args.sentences)
    text = "".join(f"{line}\r\n" for line in lines)
    if args.out is None:
        sys.stdout.write(text)
    else:
        args.out.write_text(text, newline="")
        logger.info("wrote %d sentences to %s", len(lines), args.out)
    return _report_error(result)


def _sentence_codes(value: str) -> list[str]:
    try:
        return validate_codes(value.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ad2cp_tool")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log diagnostics to stderr (-vv for debug output)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    dec = subparsers.add_parser("decode", help="Decode a capture to JSON")
    dec.add_argument("input", type=Path, help="Raw AD2CP capture")
    dec.add_argument("--out", type=Path, help="Output JSON path (default: stdout)")
    dec.add_argument(
        "--no-arrays",
        dest="arrays",
        action="store_false",
        help="Replace per-cell arrays with their shapes",
    )
    dec.add_argument(
        "--force", action="store_true", help="Overwrite an existing output file"
    )
    dec.set_defaults(arrays=True, handler=_cmd_decode)

    summ = subparsers.add_parser(
        "summary", help="Print record counts and diagnostics"
    )
    summ.add_argument("input", type=Path, help="Raw AD2CP capture")
    summ.add_argument(
        "--headers-only",
        action="store_true",
        help="Only walk record headers; skip body decoding",
    )
    summ.set_defaults(handler=_cmd_summary)

    nmea = subparsers.add_parser("nmea", help="Emit NMEA sentences for a capture")
    nmea.add_argument("input", type=Path, help="Raw AD2CP capture")
    nmea.add_argument(
        "--sentences",
        type=_sentence_codes,
        default=DEFAULT_SENTENCES,
        help="Comma-separated sentence codes, e.g. PNORI1,PNORS1,PNORC1",
    )
    nmea.add_argument("--out", type=Path, help="Output text path (default: stdout)")
    nmea.add_argument(
        "--force", action="store_true", help="Overwrite an existing output file"
    )
    nmea.set_defaults(handler=_cmd_nmea)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    _configure_logging(args.verbose)

    return args.handler(args)


__all__ = ["build_arg_parser", "main"]
