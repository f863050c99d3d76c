# ========================
# src/etl/normalization.py
# ========================

"""
Data Normalization Module

Converts raw source artifacts into the canonical row schema. The parsing
strategy is chosen by the source-kind tag, never sniffed from content:
the JSON feed is an array of objects, the in-store feed is comma-delimited
and the database export is tab-delimited.
"""

import csv
import json
import logging
from collections import Counter
from decimal import Decimal, DecimalException, InvalidOperation
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, Dict, Iterator, List

from ..utils.exceptions import TransformError, TransformWarning

logger = logging.getLogger(__name__)

CANONICAL_FIELDS = ['id', 'product', 'category', 'price', 'quantity']
NORMALIZED_HEADER = CANONICAL_FIELDS + ['source', 'total_sales']

# Largest accepted order of magnitude for a price or quantity (1E+12)
MAX_MAGNITUDE = 12


class SourceKind(str, Enum):
    """Source tag written into every normalized row."""
    ONLINE = "online"
    INSTORE = "instore"
    INVENTORY = "inventory"


def _read_json_rows(path: Path) -> Iterator[Any]:
    """Yield the elements of a JSON array. Floats are parsed as Decimal."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f, parse_float=Decimal)
    except ValueError as e:
        raise TransformError(f"Invalid JSON in {path.name}", {'path': str(path)}, e) from e

    if not isinstance(data, list):
        raise TransformError(f"Expected a JSON array in {path.name}",
                             {'path': str(path), 'found': type(data).__name__})
    yield from data


def _read_delimited_rows(path: Path, delimiter: str) -> Iterator[List[str]]:
    """
    Yield data rows of a delimited file, skipping the header row and blank lines.

    Bytes that are not UTF-8 are kept as surrogates so one bad row cannot
    fail the whole file; _delimited_fields drops such rows.
    """
    with open(path, 'r', newline='', encoding='utf-8', errors='surrogateescape') as f:
        reader = csv.reader(f, delimiter=delimiter)
        next(reader, None)
        for row in reader:
            if row:
                yield row


def _json_fields(item: Any) -> List[Any]:
    if not isinstance(item, dict):
        raise TransformWarning("row is not a JSON object", item)
    missing = [name for name in CANONICAL_FIELDS if item.get(name) is None]
    if missing:
        raise TransformWarning(f"missing fields: {', '.join(missing)}", item)
    return [item[name] for name in CANONICAL_FIELDS]


def _delimited_fields(row: List[str]) -> List[str]:
    # Positional; extra trailing fields (e.g. an already-normalized row) are ignored
    if len(row) < len(CANONICAL_FIELDS):
        raise TransformWarning(f"expected {len(CANONICAL_FIELDS)} fields, got {len(row)}", row)
    try:
        "".join(row).encode('utf-8')
    except UnicodeEncodeError:
        raise TransformWarning("row is not valid UTF-8", row) from None
    return row[:len(CANONICAL_FIELDS)]


# Parsing strategy per source kind: (row reader, field extractor)
PARSING_STRATEGIES = {
    SourceKind.ONLINE: (_read_json_rows, _json_fields),
    SourceKind.INSTORE: (partial(_read_delimited_rows, delimiter=','), _delimited_fields),
    SourceKind.INVENTORY: (partial(_read_delimited_rows, delimiter='\t'), _delimited_fields),
}


def parse_decimal(value: Any) -> Decimal:
    """
    Parse a price-like value into a finite Decimal.

    Raises:
        TransformWarning: If the value is not a finite number or exceeds 1E+12
    """
    if isinstance(value, bool):
        raise TransformWarning(f"not a number: {value!r}", value)
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            raise TransformWarning(f"not a number: {value!r}", value) from None
    else:
        raise TransformWarning(f"not a number: {value!r}", value)

    if not number.is_finite():
        raise TransformWarning(f"not a finite number: {value!r}", value)
    if number and number.adjusted() > MAX_MAGNITUDE:
        raise TransformWarning(f"number out of range: {value!r}", value)
    return number


def parse_quantity(value: Any) -> int:
    """
    Parse a quantity into an int. "3" and "3.0" are accepted, "2.5" is not.

    Raises:
        TransformWarning: If the value is not an integral number
    """
    number = parse_decimal(value)
    if number != number.to_integral_value():
        raise TransformWarning(f"quantity is not a whole number: {value!r}", value)
    return int(number)


class Normalizer:
    """
    Normalizes one raw artifact of a given source kind.
    Invalid rows are dropped silently and only counted.
    """

    def __init__(self, source_kind: SourceKind):
        """
        Initialize the normalizer.

        Args:
            source_kind (SourceKind): Selects the parsing strategy and source tag
        """
        self.source_kind = SourceKind(source_kind)
        self._read_rows, self._extract_fields = PARSING_STRATEGIES[self.source_kind]
        self.records_processed = 0
        self.records_dropped = 0
        self.drop_reasons = Counter()

    def clean_record(self, fields: List[Any]) -> Dict[str, Any]:
        """
        Apply the validity predicate to one row and compute its total.

        Args:
            fields (list): id, product, category, price, quantity in that order

        Returns:
            dict: The canonical row

        Raises:
            TransformWarning: If the row fails the validity predicate
        """
        row_id, product, category, raw_price, raw_quantity = fields
        if not str(product).strip() or not str(category).strip():
            raise TransformWarning("product and category must be non-empty", fields)

        price = parse_decimal(raw_price)
        quantity = parse_quantity(raw_quantity)

        if price <= 0 or quantity <= 0:
            raise TransformWarning("price and quantity must be positive", fields)

        try:
            total_sales = price * quantity
        except DecimalException as e:
            raise TransformWarning(f"total not computable: {e!r}", fields) from None

        return {
            'id': row_id,
            'product': product,
            'category': category,
            'price': price,
            'quantity': quantity,
            'source': self.source_kind.value,
            'total_sales': total_sales,
        }

    def iter_records(self, raw_path: Path) -> Iterator[Dict[str, Any]]:
        """
        Yield canonical rows from a raw artifact, dropping invalid ones.

        Raises:
            TransformError: If the artifact is missing or unparseable as a whole
        """
        raw_path = Path(raw_path)
        self._require_raw(raw_path)

        for item in self._read_rows(raw_path):
            self.records_processed += 1
            try:
                yield self.clean_record(self._extract_fields(item))
            except TransformWarning as warning:
                self.records_dropped += 1
                self.drop_reasons[warning.reason] += 1
                logger.debug(f"Row dropped from {raw_path.name}: {warning.reason}: {warning.row!r}")

    def normalize(self, raw_path: Path, output_path: Path) -> Dict[str, Any]:
        """
        Normalize a raw artifact and write it, header row first.

        Args:
            raw_path (Path): Raw artifact produced by a source adapter
            output_path (Path): Normalized artifact to write

        Returns:
            dict: Normalization statistics
        """
        logger.info(f"Transforming {self.source_kind.value} data from {raw_path}...")
        self._require_raw(Path(raw_path))
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        written = 0
        try:
            with open(output_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=NORMALIZED_HEADER, lineterminator='\n')
                writer.writeheader()
                for record in self.iter_records(raw_path):
                    writer.writerow(record)
                    written += 1
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise TransformError(f"Failed to transform {Path(raw_path).name}",
                                 {'source': self.source_kind.value}, e) from e

        stats = self.get_statistics()
        stats['records_written'] = written
        stats['output_file'] = str(output_path)
        logger.info(f"{self.source_kind.value}: {written}/{self.records_processed} rows kept, "
                    f"written to {output_path}")
        return stats

    def _require_raw(self, raw_path: Path) -> None:
        if not raw_path.is_file():
            raise TransformError(f"Raw artifact not found: {raw_path}",
                                 {'source': self.source_kind.value, 'path': str(raw_path)})

    def get_statistics(self) -> Dict[str, Any]:
        """Get normalization statistics."""
        return {
            'source': self.source_kind.value,
            'records_processed': self.records_processed,
            'records_dropped': self.records_dropped,
            'drop_reasons': dict(self.drop_reasons),
        }
