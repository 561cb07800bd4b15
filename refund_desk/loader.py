"""
loader.py — order export loader for refund-desk

Supports: .csv .tsv .txt

Public API:
    result = load_file("path/to/orders.csv")
    df     = result["dataframe"]

Result dict keys:
    dataframe           — pandas DataFrame of text cells (blanks stay "")
    detected_format     — "csv", "tsv" or "txt"
    detected_encoding   — encoding chardet reported ("utf-8" when it had no guess)
    encoding_confidence — chardet confidence, 0..1
    delimiter           — delimiter char
    original_rows       — row count including header row
    original_columns    — column count
    warnings            — list of warning strings
"""

from __future__ import annotations

import csv
import io
from collections import Counter
from pathlib import Path

import chardet
import pandas as pd

TEXT_FORMATS = {".csv", ".tsv", ".txt"}
DELIMITERS = ",;\t|"
UTF8_NAMES = {"utf-8", "utf-8-sig", "ascii"}


def _detect_encoding(raw: bytes) -> tuple[str, float]:
    guess = chardet.detect(raw)
    encoding = (guess.get("encoding") or "utf-8").lower()
    return encoding, round(guess.get("confidence") or 0.0, 2)


def _decode(raw: bytes, encoding: str) -> tuple[str, int]:
    """
    Decode line by line: UTF-8 first, then the detected encoding, then
    latin-1 (which always succeeds). Returns the text and how many lines
    needed a non-UTF-8 codec. A leading BOM and null bytes are removed.
    """
    lines: list[str] = []
    fallback_lines = 0
    for raw_line in raw.split(b"\n"):
        try:
            line = raw_line.decode("utf-8")
        except UnicodeDecodeError:
            fallback_lines += 1
            try:
                line = raw_line.decode(encoding)
            except (LookupError, UnicodeDecodeError):
                line = raw_line.decode("latin-1")
        lines.append(line.replace("\x00", ""))
    return "\n".join(lines).lstrip("\ufeff"), fallback_lines


def _rows(text: str, delimiter: str) -> list[list[str]]:
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    return [row for row in reader if any(cell.strip() for cell in row)]


def _sniff_delimiter(text: str) -> str:
    """csv.Sniffer first; otherwise the delimiter giving the most rows of one width."""
    sample = "\n".join([line for line in text.splitlines() if line.strip()][:25])
    try:
        return csv.Sniffer().sniff(sample, delimiters=DELIMITERS).delimiter
    except csv.Error:
        pass

    def consistency(delimiter: str) -> float:
        widths = Counter(len(row) for row in _rows(sample, delimiter))
        if not widths:
            return 0.0
        width, count = widths.most_common(1)[0]
        return 0.0 if width < 2 else count + width / 100

    return max(DELIMITERS, key=consistency)


def read_text_table(text: str, delimiter: str = ",") -> pd.DataFrame:
    return pd.read_csv(
        io.StringIO(text),
        dtype=str,
        keep_default_na=False,
        sep=delimiter,
        engine="python",
        on_bad_lines="skip",
    )


def load_bytes(raw: bytes, suffix: str = ".csv") -> dict:
    """Load already-read bytes (an upload or a file body) into a DataFrame."""
    suffix = suffix.lower()
    if suffix not in TEXT_FORMATS:
        supported = ", ".join(sorted(TEXT_FORMATS))
        raise ValueError(f"Unsupported format '{suffix}'. Supported: {supported}")

    encoding, confidence = _detect_encoding(raw)
    text, fallback_lines = _decode(raw, encoding)
    if not text.strip():
        raise ValueError("File is empty.")

    delimiter = "\t" if suffix == ".tsv" else _sniff_delimiter(text)
    if suffix == ".txt" and sum(1 for row in _rows(text, delimiter)[:50] if len(row) > 1) < 2:
        raise ValueError(
            ".txt file does not appear to contain delimited/tabular data "
            f"(detected delimiter {delimiter!r} but fewer than 2 rows contain multiple fields)"
        )

    try:
        df = read_text_table(text, r"\|" if delimiter == "|" else delimiter)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error) as exc:
        raise ValueError(f"Could not parse {suffix} file: {exc}") from exc

    warnings: list[str] = []
    if fallback_lines:
        warnings.append(
            f"{fallback_lines} line(s) were not valid UTF-8; decoded as {encoding} (confidence {confidence})"
        )
    data_lines = sum(1 for line in text.splitlines()[1:] if line.strip())
    if data_lines > len(df):
        warnings.append(f"{data_lines - len(df)} malformed line(s) were skipped")

    return {
        "dataframe": df,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": encoding if encoding not in UTF8_NAMES else "utf-8",
        "encoding_confidence": confidence,
        "delimiter": delimiter,
        "original_rows": len(df) + 1,
        "original_columns": len(df.columns),
        "warnings": warnings,
    }


def load_file(path: str | Path) -> dict:
    """
    Load a delimited order export.

    Raises:
        FileNotFoundError  if the file does not exist.
        ValueError         if the format is unsupported or unreadable.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return load_bytes(path.read_bytes(), path.suffix or ".csv")
