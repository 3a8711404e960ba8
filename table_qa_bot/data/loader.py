"""
Table loading for CSV files.

Handles file validation, decoding, and conversion of CSV rows into a
column-oriented table.
"""

import csv
import io
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from table_qa_bot.config import settings
from table_qa_bot.utils.exceptions import DataLoadError, FileValidationError, TableParseError
from table_qa_bot.utils.logger import logger

Table = Dict[str, List[str]]


def parse_table(raw_text: str) -> Table:
    """
    Convert CSV text into a mapping of column name to cell values.

    The first row is the header. A header name that appears twice keeps only
    the later column. Rows shorter than the header leave the trailing columns
    short; fields past the header width are ignored.

    Args:
        raw_text: CSV document text

    Returns:
        Column-oriented table

    Raises:
        TableParseError: If no rows are found or the quoting is malformed
    """
    reader = csv.reader(io.StringIO(raw_text), strict=True)
    try:
        records = [row for row in reader if row]
    except csv.Error as e:
        raise TableParseError("Malformed CSV data", details=f"line {reader.line_num}: {e}")

    if not records:
        raise TableParseError("No data found")

    header, rows = records[0], records[1:]
    table: Table = {}
    for i, column in enumerate(header):
        table[column] = [row[i] for row in rows if i < len(row)]
    return table


def table_shape(table: Table) -> Tuple[int, int]:
    """Return (rows, columns); rows is the length of the longest column."""
    rows = max((len(cells) for cells in table.values()), default=0)
    return rows, len(table)


class TableLoader:
    """
    Handles loading of CSV files into tables.

    Provides methods for validating the source path, decoding the file, and
    parsing it into a column-oriented table.
    """

    SUPPORTED_EXTENSIONS = {".csv"}
    ENCODING_FALLBACKS = ["utf-8-sig", "cp1252", "latin-1"]

    def __init__(self, max_file_size_mb: Optional[int] = None) -> None:
        """
        Initialize TableLoader.

        Args:
            max_file_size_mb: Size limit for source files (default from config)
        """
        if max_file_size_mb is not None:
            self._max_file_size_bytes = max_file_size_mb * 1024 * 1024
        else:
            self._max_file_size_bytes = settings.data.max_file_size_bytes

    def validate_file_path(self, file_path: str) -> Path:
        """
        Validate file path and check file exists.

        Raises:
            FileValidationError: If file is invalid or doesn't exist
        """
        path = Path(file_path).resolve()

        if not path.exists():
            raise FileValidationError(f"File not found: {path}")

        if not path.is_file():
            raise FileValidationError(f"Path is not a file: {path}")

        if path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
            raise FileValidationError(
                f"Unsupported file type: {path.suffix or '(none)'}. "
                f"Supported types: {', '.join(sorted(self.SUPPORTED_EXTENSIONS))}"
            )

        file_size = path.stat().st_size
        if file_size > self._max_file_size_bytes:
            raise FileValidationError(
                f"File size ({file_size / (1024*1024):.1f}MB) exceeds "
                f"limit of {self._max_file_size_bytes / (1024*1024):.1f}MB"
            )

        return path

    def read_text(self, path: Path) -> str:
        """Read file contents, trying each fallback encoding in turn."""
        try:
            data = path.read_bytes()
        except OSError as e:
            raise DataLoadError(f"Failed to read file: {path.name}", details=str(e))

        for encoding in self.ENCODING_FALLBACKS:
            try:
                return data.decode(encoding)
            except UnicodeDecodeError:
                continue

        raise DataLoadError("Could not decode CSV file with any supported encoding")

    def load(self, file_path: Optional[str] = None) -> Table:
        """
        Complete pipeline: validate, read, and parse a CSV file.

        Args:
            file_path: Path to the CSV file (default from config)

        Returns:
            Column-oriented table
        """
        path = self.validate_file_path(file_path or settings.data.source_path)
        logger.info(f"Loading table: {path.name}")

        table = parse_table(self.read_text(path))

        rows, columns = table_shape(table)
        logger.info(f"Loaded {rows} rows and {columns} columns")
        if len({len(cells) for cells in table.values()}) > 1:
            logger.warning(f"{path.name} has ragged rows; some columns are shorter than others")
        return table
