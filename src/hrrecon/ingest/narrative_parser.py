"""NarrativeParser: label-driven extraction from the free-text export grammar.

Records start at a boundary line carrying the identity label and an employee
number. Each record's window is the next ``narrative_window`` lines, cut short
by the following boundary. Inside the window every line is tested against the
active scope's rules; section markers switch between the main block, the
spouse block and the fixed allowance/deduction rows. A spouse block ends at
the next section header or after ``narrative_spouse_lines`` non-blank lines.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from hrrecon.core.config import ParserConfig
from hrrecon.core.logging_config import get_logger
from hrrecon.ingest.fragment_builder import FragmentBuilder
from hrrecon.ingest.narrative_rules import (
    SECTION_MARKERS,
    NarrativeRule,
    NarrativeRuleset,
    RuleScope,
    SectionMarker,
    default_ruleset,
)
from hrrecon.ingest.source_reader import read_source_text
from hrrecon.models.fields import BANK_CODE_BRANCH, SourceGrammar
from hrrecon.models.fragments import RawFragment, RawLineItem
from hrrecon.models.issues import MalformedLine
from hrrecon.models.pipeline import FileParseStats, ParseResult

logger = get_logger(__name__)

_EMPLOYEE_NO = re.compile(r"^[A-Z]+\d+$")
_LINE_ITEM_START = re.compile(r"^\s*\d+\s+\S")
_LINE_ITEM = re.compile(
    r"^\s*(?P<no>\d+)\s+(?P<head>.+?)\s+(?P<amount>-?[\d,]+\.\d{2}-?)"
    r"(?:\s+(?P<period>[A-Za-z]+))?"
    r"(?:\s+(?P<start>\d{1,2}/\d{4}))?"
    r"(?:\s+(?P<end>\d{1,2}/\d{4}))?\s*$"
)


class _Boundary:
    __slots__ = ("line_idx", "employee_no", "rest")

    def __init__(self, line_idx: int, employee_no: Optional[str], rest: str = "") -> None:
        self.line_idx = line_idx
        self.employee_no = employee_no
        self.rest = rest


class NarrativeParser:
    grammar = SourceGrammar.NARRATIVE

    def __init__(
        self,
        config: ParserConfig | None = None,
        ruleset: NarrativeRuleset | None = None,
    ) -> None:
        self._config = config or ParserConfig()
        self._ruleset = ruleset or default_ruleset()
        label = re.escape(self._config.boundary_label.rstrip("."))
        self._label_rx = re.compile(label + r"\.?")
        self._boundary_rx = re.compile(label + r"\.?\s*:?\s*(?P<no>[A-Z]+\d+)\b")

    @property
    def ruleset(self) -> NarrativeRuleset:
        return self._ruleset

    def parse_file(self, path: str | Path, organization_code: str, encoding: str = "utf-8") -> ParseResult:
        text = read_source_text(path, encoding)
        return self.parse(text, organization_code, str(path))

    def parse(self, text: str, organization_code: str, source_file: str = "") -> ParseResult:
        lines = text.splitlines()
        stats = FileParseStats(
            source_file=source_file,
            organization_code=organization_code,
            source_grammar=self.grammar,
        )
        fragments: list[RawFragment] = []
        boundaries = self._find_boundaries(lines)

        for i, boundary in enumerate(boundaries):
            next_idx = boundaries[i + 1].line_idx if i + 1 < len(boundaries) else len(lines)
            end = min(boundary.line_idx + 1 + self._config.narrative_window, next_idx)

            if boundary.employee_no is None:
                stats.dropped_records += 1
                stats.discarded_lines += sum(1 for ln in lines[boundary.line_idx + 1:end] if ln.strip())
                logger.warning(
                    "narrative_record_dropped",
                    file=source_file,
                    line=boundary.line_idx + 1,
                    reason="boundary without employee number",
                )
                continue

            builder = FragmentBuilder(
                organization_code,
                boundary.employee_no,
                self.grammar,
                source_file,
                self._config.placeholder_tokens,
            )
            self._parse_window(builder, lines, boundary, end, stats)
            fragments.append(builder.build())

        stats.records = len(fragments)
        logger.info(
            "narrative_file_parsed",
            file=source_file,
            records=stats.records,
            dropped=stats.dropped_records,
            malformed=len(stats.malformed_lines),
            ruleset_version=self._ruleset.version,
        )
        return ParseResult(fragments=fragments, stats=stats)

    # ---- boundaries ----

    def _find_boundaries(self, lines: list[str]) -> list[_Boundary]:
        found: list[_Boundary] = []
        for idx, line in enumerate(lines):
            m = self._boundary_rx.search(line)
            if m:
                found.append(_Boundary(idx, m.group("no"), line[m.end():]))
                continue
            if self._label_rx.search(line):
                found.append(_Boundary(idx, self._lookahead_employee_no(lines, idx)))
        return found

    def _lookahead_employee_no(self, lines: list[str], idx: int) -> Optional[str]:
        """Employee number printed on its own line just below the label."""
        seen = 0
        for line in lines[idx + 1:]:
            stripped = line.strip()
            if not stripped:
                continue
            if _EMPLOYEE_NO.match(stripped):
                return stripped
            seen += 1
            if seen >= self._config.narrative_lookahead:
                break
        return None

    # ---- record window ----

    def _parse_window(
        self,
        builder: FragmentBuilder,
        lines: list[str],
        boundary: _Boundary,
        end: int,
        stats: FileParseStats,
    ) -> None:
        scope = SectionMarker.MAIN
        spouse_lines = 0
        main_rules = self._ruleset.for_scope(RuleScope.MAIN)
        spouse_rules = self._ruleset.for_scope(RuleScope.SPOUSE)

        if boundary.rest.strip():
            self._apply_rules(builder, main_rules, lines, boundary.line_idx, text=boundary.rest)

        for idx in range(boundary.line_idx + 1, end):
            line = lines[idx]
            if not line.strip():
                continue
            marker = self._section_marker(line)
            if marker is not None:
                scope = marker
                spouse_lines = 0
                continue
            if scope is SectionMarker.LINE_ITEMS:
                if _LINE_ITEM_START.match(line):
                    self._read_line_item(builder, line, idx + 1, stats)
                continue
            if scope is SectionMarker.SPOUSE:
                if spouse_lines >= self._config.narrative_spouse_lines:
                    scope = SectionMarker.MAIN
                else:
                    spouse_lines += 1
            rules = spouse_rules if scope is SectionMarker.SPOUSE else main_rules
            self._apply_rules(builder, rules, lines, idx)

    @staticmethod
    def _section_marker(line: str) -> SectionMarker | None:
        for text, marker in SECTION_MARKERS.items():
            if text in line:
                return marker
        return None

    def _apply_rules(
        self,
        builder: FragmentBuilder,
        rules: list[NarrativeRule],
        lines: list[str],
        idx: int,
        text: str | None = None,
    ) -> None:
        """Rules fire independently; the first value per field wins."""
        line = lines[idx] if text is None else text
        for rule in rules:
            populated = builder.has("bank_code") if rule.field == BANK_CODE_BRANCH else builder.has(rule.field)
            if populated and not rule.repeatable:
                continue
            value = rule.match(line)
            if value is None:
                continue
            if value and self._ruleset.is_label(value):
                value = ""
            if not value and rule.value_on_next_line:
                value = self._next_line_value(rule, lines, idx)
            if not value:
                continue
            if rule.repeatable:
                builder.append(rule.field, value)
            else:
                builder.set(rule.field, value)

    @staticmethod
    def _next_line_value(rule: NarrativeRule, lines: list[str], idx: int) -> str:
        for line in lines[idx + 1:idx + 3]:
            if not line.strip():
                continue
            m = rule.next_line_regex.search(line)
            return m.group("value").strip() if m else ""
        return ""

    def _read_line_item(
        self,
        builder: FragmentBuilder,
        line: str,
        line_no: int,
        stats: FileParseStats,
    ) -> None:
        m = _LINE_ITEM.match(line)
        if m is None:
            stats.malformed_lines.append(
                MalformedLine(
                    source_file=builder.source_file,
                    line_no=line_no,
                    reason="unparseable allowance/deduction row",
                    text=line.strip(),
                )
            )
            return
        code, description = self._split_head(m.group("head"))
        builder.add_line_item(
            RawLineItem(
                line_no=m.group("no"),
                code=code,
                description=description,
                amount=m.group("amount"),
                period=m.group("period") or "",
                start=m.group("start") or "",
                end=m.group("end") or "",
            )
        )

    def _split_head(self, head: str) -> tuple[str, str]:
        """Split '<code><description>'.

        Columns separated by a wide gap split there. Otherwise the export
        prints a fixed-width code glued to the description
        ('T.ALLOWTRAVELLING ALLOWANCE').
        """
        parts = re.split(r"\s{2,}", head.strip(), maxsplit=1)
        if len(parts) == 2:
            return parts[0].strip(), parts[1].strip()
        width = self._config.narrative_item_code_width
        if len(head) <= width:
            return head.strip(), ""
        return head[:width].strip(), head[width:].strip()
