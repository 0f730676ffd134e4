"""GridParser: key/value extraction from the tabular export grammar.

Each line is a flat list of cells. A line whose first cell is the record
boundary label and whose identity cell is filled starts a new employee.
Inside a record every line carries up to two label/value pairs: the left
label in column 0 and a right label in the first populated configured column,
each value read a fixed offset to the right of its label. Numbered rows are
allowance/deduction line items.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path

from hrrecon.core.config import ParserConfig
from hrrecon.core.logging_config import get_logger
from hrrecon.ingest.fragment_builder import FragmentBuilder, clean_cell, is_placeholder
from hrrecon.ingest.grid_labels import (
    LINE_ITEM_SECTION_MARKER,
    VALUE_COLUMN_SHIFT,
    field_for_label,
    normalize_label,
)
from hrrecon.ingest.source_reader import read_source_text
from hrrecon.models.fields import SourceGrammar
from hrrecon.models.fragments import RawFragment, RawLineItem
from hrrecon.models.issues import MalformedLine
from hrrecon.models.pipeline import FileParseStats, ParseResult

logger = get_logger(__name__)

# Line-item cell positions: number, code, description, amount, period, start, end
_ITEM_CODE, _ITEM_DESC, _ITEM_AMOUNT, _ITEM_AMOUNT_ALT = 1, 2, 6, 5
_ITEM_PERIOD, _ITEM_START, _ITEM_END = 9, 10, 13


def _cell(cells: list[str], idx: int) -> str:
    return cells[idx] if 0 <= idx < len(cells) else ""


class GridParser:
    """Stateless between calls; one FragmentBuilder per record."""

    grammar = SourceGrammar.GRID

    def __init__(self, config: ParserConfig | None = None) -> None:
        self._config = config or ParserConfig()
        self._boundary = normalize_label(self._config.boundary_label)

    def parse_file(self, path: str | Path, organization_code: str, encoding: str = "utf-8") -> ParseResult:
        text = read_source_text(path, encoding)
        return self.parse(text, organization_code, str(path))

    def parse(self, text: str, organization_code: str, source_file: str = "") -> ParseResult:
        stats = FileParseStats(
            source_file=source_file,
            organization_code=organization_code,
            source_grammar=self.grammar,
        )
        fragments: list[RawFragment] = []
        unrecognized: set[str] = set()
        builder: FragmentBuilder | None = None

        for line_no, row in enumerate(csv.reader(io.StringIO(text)), start=1):
            cells = [c.strip() for c in row]
            if not any(cells):
                continue

            if normalize_label(cells[0]) == self._boundary:
                if builder is not None:
                    fragments.append(builder.build())
                identity = clean_cell(_cell(cells, self._config.grid_identity_column))
                if identity and not is_placeholder(identity, self._config.placeholder_tokens):
                    builder = FragmentBuilder(
                        organization_code,
                        identity,
                        self.grammar,
                        source_file,
                        self._config.placeholder_tokens,
                    )
                    self._read_pairs(builder, cells, unrecognized, skip_left=True)
                else:
                    builder = None
                    stats.dropped_records += 1
                    logger.warning(
                        "grid_record_dropped",
                        file=source_file,
                        line=line_no,
                        reason="boundary without identity value",
                    )
                continue

            if builder is None:
                stats.discarded_lines += 1
                continue

            if normalize_label(cells[0]) == LINE_ITEM_SECTION_MARKER:
                continue
            if cells[0].isdigit():
                self._read_line_item(builder, cells, line_no, stats)
                continue
            self._read_pairs(builder, cells, unrecognized)

        if builder is not None:
            fragments.append(builder.build())

        stats.records = len(fragments)
        stats.unrecognized_labels = sorted(unrecognized)
        logger.info(
            "grid_file_parsed",
            file=source_file,
            records=stats.records,
            dropped=stats.dropped_records,
            malformed=len(stats.malformed_lines),
        )
        return ParseResult(fragments=fragments, stats=stats)

    # ---- line shapes ----

    def _read_pairs(
        self,
        builder: FragmentBuilder,
        cells: list[str],
        unrecognized: set[str],
        *,
        skip_left: bool = False,
    ) -> None:
        """At most two pairs per line: column 0 and the first populated right label column."""
        if not skip_left and cells[0]:
            self._read_pair(builder, cells, 0, unrecognized)
        for col in self._config.grid_right_label_columns:
            if _cell(cells, col):
                self._read_pair(builder, cells, col, unrecognized)
                break

    def _read_pair(
        self,
        builder: FragmentBuilder,
        cells: list[str],
        label_col: int,
        unrecognized: set[str],
    ) -> None:
        label = cells[label_col]
        field = field_for_label(label)
        if field is None:
            if any(ch.isalpha() for ch in label):
                unrecognized.add(label.rstrip(":").strip())
            return
        value_col = label_col + self._config.grid_value_offset
        shift = VALUE_COLUMN_SHIFT.get(normalize_label(label), 0)
        value = _cell(cells, value_col + shift) if shift else ""
        if not value:
            value = _cell(cells, value_col)
        builder.set(field, value)

    def _read_line_item(
        self,
        builder: FragmentBuilder,
        cells: list[str],
        line_no: int,
        stats: FileParseStats,
    ) -> None:
        amount = _cell(cells, _ITEM_AMOUNT) or _cell(cells, _ITEM_AMOUNT_ALT)
        code = _cell(cells, _ITEM_CODE)
        if not code or not amount:
            stats.malformed_lines.append(
                MalformedLine(
                    source_file=builder.source_file,
                    line_no=line_no,
                    reason="line item without code or amount",
                    text=",".join(cells),
                )
            )
            return
        builder.add_line_item(
            RawLineItem(
                line_no=cells[0],
                code=code,
                description=_cell(cells, _ITEM_DESC),
                amount=amount,
                period=_cell(cells, _ITEM_PERIOD),
                start=_cell(cells, _ITEM_START),
                end=_cell(cells, _ITEM_END),
            )
        )
