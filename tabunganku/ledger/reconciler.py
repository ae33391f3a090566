"""
Roster Import Reconciler

Turns an untrusted spreadsheet-like grid into student candidates.

The grid comes from outside (an Excel sheet, a CSV export, a paste):
rows of cells whose types we cannot trust. Every raw value is first
coerced into one of three cell kinds:

    TextCell    - any text, booleans, dates
    NumberCell  - ints and floats
    EmptyCell   - None, "" and NaN

Anything else means the source was not a table at all, and the whole
import fails with ImportFormatError before a single candidate exists.

Then, row by row:
1. Header detection (best effort): if the first cell of the first row
   is text containing "nama" or "name", that row is skipped.
2. A row is accepted only if it has at least two cells, a non-empty
   first cell, and a name and class that fit the roster limits
   (200 and 100 characters). Column 1 is the name, column 2 the class
   (empty class becomes "Umum").
3. Rejected rows are counted, not reported one by one.
4. No accepted rows at all raises EmptyImportError.

IMPORTANT: Accepted rows are not all-or-nothing against each other.
Bad rows are skipped and the good ones are imported.
"""

import csv
import io
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from tabunganku.audit import AuditLogger, create_correlation_id
from tabunganku.config import AppSettings
from tabunganku.exceptions import (
    EmptyImportError,
    ImportFormatError,
    ReconciliationError,
)
from tabunganku.ledger.store import LedgerStore
from tabunganku.models.ledger import (
    DEFAULT_CLASS_NAME,
    MAX_CLASS_NAME_LENGTH,
    MAX_NAME_LENGTH,
    Student,
    StudentCandidate,
)


DEFAULT_HEADER_MARKERS = ("nama", "name")


# =============================================================================
# CELLS
# =============================================================================

class TextCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str

    @property
    def is_empty(self) -> bool:
        return not self.value.strip()

    def as_text(self) -> str:
        return self.value.strip()


class NumberCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["number"] = "number"
    value: Union[int, float]

    @property
    def is_empty(self) -> bool:
        return False

    def as_text(self) -> str:
        # Spreadsheets hand us 10.0 for a class typed as "10"
        if isinstance(self.value, float) and self.value.is_integer():
            return str(int(self.value))
        return str(self.value)


class EmptyCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["empty"] = "empty"

    @property
    def is_empty(self) -> bool:
        return True

    def as_text(self) -> str:
        return ""


Cell = Annotated[Union[TextCell, NumberCell, EmptyCell], Field(discriminator="kind")]

EMPTY = EmptyCell()


def to_cell(raw: Any) -> Cell:
    """
    Coerce one raw value into a cell.

    Raises:
        ImportFormatError: If the value cannot appear in a table
    """
    if isinstance(raw, (TextCell, NumberCell, EmptyCell)):
        return raw
    if raw is None:
        return EMPTY
    # bool is an int subclass; spreadsheets show it as TRUE/FALSE text
    if isinstance(raw, bool):
        return TextCell(value="true" if raw else "false")
    if isinstance(raw, (int, float, Decimal)):
        if isinstance(raw, Decimal):
            raw = int(raw) if raw == raw.to_integral_value() else float(raw)
        if isinstance(raw, float) and math.isnan(raw):
            return EMPTY
        return NumberCell(value=raw)
    if isinstance(raw, str):
        return TextCell(value=raw) if raw else EMPTY
    if isinstance(raw, (datetime, date)):
        return TextCell(value=raw.isoformat())
    raise ImportFormatError(
        f"Sel tidak dikenali (tipe {type(raw).__name__}). Pastikan format Excel/CSV valid."
    )


def _is_row_like(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def parse_grid(grid: Any) -> list[list[Cell]]:
    """
    Coerce a whole raw grid. All-or-nothing.

    Missing rows (None) become empty rows, which are later skipped.

    Raises:
        ImportFormatError: If the grid or any row or cell is not tabular
    """
    if not _is_row_like(grid):
        raise ImportFormatError("Data impor harus berupa tabel (baris x kolom).")

    rows: list[list[Cell]] = []
    for index, row in enumerate(grid):
        if row is None:
            rows.append([])
        elif _is_row_like(row):
            rows.append([to_cell(value) for value in row])
        else:
            raise ImportFormatError(f"Baris {index + 1} bukan daftar sel.")
    return rows


def grid_from_csv(source: Union[str, bytes]) -> list[list[str]]:
    """
    Parse CSV text (or UTF-8 bytes) into a raw grid.

    The delimiter is sniffed among comma, semicolon and tab; comma is
    assumed when the sample is ambiguous.

    Raises:
        ImportFormatError: If the bytes are not UTF-8 or the CSV is malformed
    """
    if isinstance(source, (bytes, bytearray)):
        try:
            source = bytes(source).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ImportFormatError(f"File bukan teks UTF-8: {e}")

    try:
        dialect = csv.Sniffer().sniff(source[:4096], delimiters=",;\t")
        delimiter = dialect.delimiter
    except csv.Error:
        delimiter = ","

    try:
        return [
            row for row in csv.reader(
                io.StringIO(source), delimiter=delimiter, strict=True
            )
        ]
    except csv.Error as e:
        raise ImportFormatError(f"Gagal membaca file CSV: {e}")


# =============================================================================
# RESULTS
# =============================================================================

class ReconciliationResult(BaseModel):
    """What a grid reconciles to, before anything touches the ledger."""

    candidates: list[StudentCandidate]
    skipped_rows: list[int] = Field(
        default_factory=list,
        description="Zero-based indexes of data rows that failed the shape check"
    )
    header_detected: bool = False


class ImportReport(BaseModel):
    """Outcome of an import that reached the ledger."""

    students: list[Student]
    skipped_count: int = Field(ge=0)
    header_detected: bool = False

    @property
    def accepted_count(self) -> int:
        return len(self.students)


# =============================================================================
# RECONCILER
# =============================================================================

class ImportReconciler:
    """
    Converts raw grids into student candidates and feeds them to the store.
    """

    def __init__(
        self,
        default_class_name: str = DEFAULT_CLASS_NAME,
        header_markers: Sequence[str] = DEFAULT_HEADER_MARKERS,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._default_class_name = default_class_name
        self._header_markers = tuple(m.lower() for m in header_markers if m)
        self._audit_logger = audit_logger

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "ImportReconciler":
        return cls(
            default_class_name=settings.default_class_name,
            header_markers=settings.header_markers_list,
            audit_logger=audit_logger,
        )

    def is_header(self, row: list[Cell]) -> bool:
        """Heuristic: first cell is text mentioning a name-column marker."""
        if not row or not isinstance(row[0], TextCell):
            return False
        first = row[0].value.lower()
        return any(marker in first for marker in self._header_markers)

    def _to_candidate(self, row: list[Cell]) -> Optional[StudentCandidate]:
        if len(row) < 2 or row[0].is_empty:
            return None
        class_name = row[1].as_text() or self._default_class_name
        name = row[0].as_text()
        if len(name) > MAX_NAME_LENGTH or len(class_name) > MAX_CLASS_NAME_LENGTH:
            return None
        return StudentCandidate(name=name, class_name=class_name)

    def reconcile(self, grid: Any) -> ReconciliationResult:
        """
        Reconcile a raw grid into candidates without touching any ledger.

        Raises:
            ImportFormatError: Grid is not tabular
            EmptyImportError: No row produced a candidate
        """
        rows = parse_grid(grid)

        header_detected = bool(rows) and self.is_header(rows[0])
        start = 1 if header_detected else 0

        candidates = []
        skipped = []
        for index in range(start, len(rows)):
            candidate = self._to_candidate(rows[index])
            if candidate is None:
                skipped.append(index)
            else:
                candidates.append(candidate)

        if not candidates:
            raise EmptyImportError(
                "Tidak ada data valid yang ditemukan dalam file."
            )

        return ReconciliationResult(
            candidates=candidates,
            skipped_rows=skipped,
            header_detected=header_detected,
        )

    def import_into(self, store: LedgerStore, grid: Any) -> ImportReport:
        """
        Reconcile a grid and bulk-add the result to `store`.

        The roster is untouched unless at least one candidate was found.

        Raises:
            ImportFormatError: Grid is not tabular
            EmptyImportError: No row produced a candidate
        """
        correlation_id = create_correlation_id()
        try:
            result = self.reconcile(grid)
        except ReconciliationError as e:
            if self._audit_logger:
                self._audit_logger.log_import_rejected(e.message, e.code, correlation_id)
            raise

        students = store.add_students(result.candidates)

        if self._audit_logger:
            self._audit_logger.log_students_imported(
                count=len(students),
                skipped=len(result.skipped_rows),
                correlation_id=correlation_id,
            )

        return ImportReport(
            students=students,
            skipped_count=len(result.skipped_rows),
            header_detected=result.header_detected,
        )
