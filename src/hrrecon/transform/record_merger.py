"""RecordMerger: per-key merge of normalized fragments into canonical records.

Fragments are folded in a canonical order (configured grammar order, then
source file, then content), so the result does not depend on the order the
caller supplies them in. Per field:

* only one side non-null: take it
* both equal: the earlier grammar is the source, the other corroborates
* both unequal, different grammars: ``PRECEDENCE`` decides; fields it does not
  cover keep the earlier grammar and the conflict is flagged for review
* both unequal, same grammar: the earlier file wins

Every disagreement stays on the field's provenance, including those against
a value that was later replaced.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable, Optional

from hrrecon.core.config import MergeConfig
from hrrecon.core.logging_config import get_logger
from hrrecon.models.employee_record import (
    SECTION_MODELS,
    CanonicalEmployeeRecord,
    FieldProvenance,
)
from hrrecon.models.fields import FIELD_CATALOGUE, FieldKind, Section, SourceGrammar
from hrrecon.models.fragments import LineItem, NormalizedFragment, TypedValue
from hrrecon.models.issues import MergeConflict

logger = get_logger(__name__)

PRECEDENCE: dict[str, SourceGrammar] = {
    # organizational placement is kept current in the narrative export
    "department": SourceGrammar.NARRATIVE,
    "section": SourceGrammar.NARRATIVE,
    "designation": SourceGrammar.NARRATIVE,
    "grade": SourceGrammar.NARRATIVE,
    "category": SourceGrammar.NARRATIVE,
    "cost_center": SourceGrammar.NARRATIVE,
    "occupation": SourceGrammar.NARRATIVE,
    # banking details are authoritative in the grid export
    "bank_code": SourceGrammar.GRID,
    "bank_branch": SourceGrammar.GRID,
    "bank_account_no": SourceGrammar.GRID,
    "payment_via": SourceGrammar.GRID,
    "payment_type": SourceGrammar.GRID,
}

_CODE_KINDS = (FieldKind.CODE, FieldKind.IDENTITY)


def typed_from_plain(field: str, value: Any) -> TypedValue:
    """Rebuild the TypedValue the normalizer would have produced for a stored value."""
    if value is None:
        return TypedValue.null()
    kind = FIELD_CATALOGUE[field].kind
    if kind == FieldKind.DATE:
        return TypedValue.of_date(value)
    if kind == FieldKind.MONEY:
        return TypedValue.of_money(value)
    if kind == FieldKind.BOOL:
        return TypedValue.of_bool(value)
    if kind in _CODE_KINDS:
        return TypedValue.of_code(value)
    return TypedValue.of_text(value)


class _Slot:
    """Mutable per-field merge state."""

    __slots__ = ("value", "source", "source_file", "corroborated", "conflicts")

    def __init__(
        self,
        value: TypedValue,
        source: SourceGrammar,
        source_file: str,
        corroborated: Optional[set[SourceGrammar]] = None,
        conflicts: Optional[set[MergeConflict]] = None,
    ) -> None:
        self.value = value
        self.source = source
        self.source_file = source_file
        self.corroborated = corroborated or set()
        self.conflicts = conflicts or set()


class _State:
    def __init__(self, organization_code: str, employee_no: str) -> None:
        self.organization_code = organization_code
        self.employee_no = employee_no
        self.slots: dict[str, _Slot] = {}
        self.allowances: set[LineItem] = set()
        self.deductions: set[LineItem] = set()
        self.source_files: set[str] = set()
        self.organization_id: Optional[str] = None
        self.organization_name: Optional[str] = None


class RecordMerger:
    def __init__(self, config: MergeConfig | None = None) -> None:
        cfg = config or MergeConfig()
        order = [SourceGrammar(g) for g in cfg.grammar_order]
        order += [g for g in SourceGrammar if g not in order]
        self._rank = {g: i for i, g in enumerate(order)}

    # ---- public API ----

    def merge(self, fragments: Iterable[NormalizedFragment]) -> list[CanonicalEmployeeRecord]:
        """One record per (organization_code, employee_no), sorted by key."""
        grouped: dict[tuple[str, str], list[NormalizedFragment]] = defaultdict(list)
        for fragment in fragments:
            grouped[fragment.key].append(fragment)
        records = [self.merge_key(grouped[key]) for key in sorted(grouped)]
        logger.info(
            "records_merged",
            fragments=sum(len(v) for v in grouped.values()),
            records=len(records),
            conflicts=sum(len(r.conflicts()) for r in records),
        )
        return records

    def merge_key(self, fragments: Iterable[NormalizedFragment]) -> CanonicalEmployeeRecord:
        """Merge fragments that all share one composite key."""
        ordered = sorted(fragments, key=self._order_key)
        if not ordered:
            raise ValueError("merge_key needs at least one fragment")
        keys = {f.key for f in ordered}
        if len(keys) != 1:
            raise ValueError(f"merge_key got fragments for several keys: {sorted(keys)}")
        state = _State(*ordered[0].key)
        for fragment in ordered:
            self._fold(state, fragment)
        return self._build(state)

    def incorporate(self, record: CanonicalEmployeeRecord, fragment: NormalizedFragment) -> CanonicalEmployeeRecord:
        """Fold one more fragment into an already merged record.

        Folding a fragment that is already part of the record leaves it unchanged.
        """
        if fragment.key != record.key:
            raise ValueError(f"fragment {fragment.key} does not belong to record {record.key}")
        state = self._state_from_record(record)
        self._fold(state, fragment)
        return self._build(state)

    # ---- ordering ----

    def _order_key(self, fragment: NormalizedFragment) -> tuple:
        content = tuple(sorted((name, value.display()) for name, value in fragment.fields.items()))
        return (self._rank[fragment.source_grammar], fragment.source_file, content)

    def _earlier(self, a: tuple[SourceGrammar, str], b: tuple[SourceGrammar, str]) -> bool:
        """True when origin ``a`` (grammar, file) folds before origin ``b``."""
        return (self._rank[a[0]], a[1]) <= (self._rank[b[0]], b[1])

    def _conflict_key(self, conflict: MergeConflict) -> tuple:
        return (
            self._rank[conflict.chosen_source],
            conflict.chosen_value,
            self._rank[conflict.rejected_source],
            conflict.rejected_value,
            conflict.resolution,
        )

    # ---- folding ----

    def _fold(self, state: _State, fragment: NormalizedFragment) -> None:
        state.source_files.add(fragment.source_file)
        state.allowances.update(fragment.allowances)
        state.deductions.update(fragment.deductions)
        for field in FIELD_CATALOGUE:
            value = fragment.fields.get(field)
            if value is None or value.is_null:
                continue
            self._fold_field(state, field, value, fragment.source_grammar, fragment.source_file)

    def _fold_field(
        self,
        state: _State,
        field: str,
        value: TypedValue,
        grammar: SourceGrammar,
        source_file: str,
    ) -> None:
        slot = state.slots.get(field)
        if slot is None:
            state.slots[field] = _Slot(value, grammar, source_file)
            return

        if slot.value == value:
            if grammar == slot.source:
                if self._earlier((grammar, source_file), (slot.source, slot.source_file)):
                    slot.source_file = source_file
                return
            if self._rank[grammar] < self._rank[slot.source]:
                slot.corroborated.add(slot.source)
                slot.source, slot.source_file = grammar, source_file
            else:
                slot.corroborated.add(grammar)
            slot.corroborated.discard(slot.source)
            return

        incoming = (grammar, source_file)
        current = (slot.source, slot.source_file)
        needs_review = False
        if grammar == slot.source:
            resolution = "same_source"
            incoming_wins = not self._earlier(current, incoming)
        elif field in PRECEDENCE:
            resolution = "precedence"
            incoming_wins = PRECEDENCE[field] == grammar
        else:
            resolution = "first_processed"
            needs_review = True
            incoming_wins = self._rank[grammar] < self._rank[slot.source]

        if incoming_wins:
            conflict = MergeConflict(
                field=field,
                chosen_source=grammar,
                chosen_value=value.display(),
                rejected_source=slot.source,
                rejected_value=slot.value.display(),
                resolution=resolution,
                needs_review=needs_review,
            )
            state.slots[field] = _Slot(value, grammar, source_file, conflicts=slot.conflicts | {conflict})
        else:
            slot.conflicts.add(MergeConflict(
                field=field,
                chosen_source=slot.source,
                chosen_value=slot.value.display(),
                rejected_source=grammar,
                rejected_value=value.display(),
                resolution=resolution,
                needs_review=needs_review,
            ))
        logger.debug(
            "merge_conflict",
            organization_code=state.organization_code,
            employee_no=state.employee_no,
            field=field,
            resolution=resolution,
            needs_review=needs_review,
        )

    # ---- record <-> state ----

    def _state_from_record(self, record: CanonicalEmployeeRecord) -> _State:
        state = _State(record.organization_code, record.employee_no)
        state.organization_id = record.organization_id
        state.organization_name = record.organization_name
        state.source_files = set(record.source_files)
        state.allowances = set(record.compensation.allowances)
        state.deductions = set(record.compensation.deductions)
        for field in FIELD_CATALOGUE:
            prov = record.provenance_for(field)
            value = record.get_field(field)
            if prov is None or value is None:
                continue
            state.slots[field] = _Slot(
                typed_from_plain(field, value),
                prov.source,
                prov.source_file,
                corroborated=set(prov.corroborated_by),
                conflicts=set(prov.conflicts),
            )
        return state

    def _build(self, state: _State) -> CanonicalEmployeeRecord:
        values: dict[Section, dict[str, Any]] = {section: {} for section in Section}
        provenance: dict[Section, dict[str, FieldProvenance]] = {section: {} for section in Section}
        for field, spec in FIELD_CATALOGUE.items():
            slot = state.slots.get(field)
            if slot is None:
                continue
            values[spec.section][field] = slot.value.value
            provenance[spec.section][field] = FieldProvenance(
                source=slot.source,
                source_file=slot.source_file,
                corroborated_by=sorted(slot.corroborated, key=self._rank.__getitem__),
                conflicts=sorted(slot.conflicts, key=self._conflict_key),
            )

        sections: dict[str, Any] = {}
        for section, model in SECTION_MODELS.items():
            kwargs = dict(values[section])
            if section == Section.COMPENSATION:
                kwargs["allowances"] = sorted(state.allowances, key=LineItem.sort_key)
                kwargs["deductions"] = sorted(state.deductions, key=LineItem.sort_key)
            sections[section.value] = model(**kwargs, provenance=provenance[section])

        return CanonicalEmployeeRecord(
            organization_code=state.organization_code,
            employee_no=state.employee_no,
            organization_id=state.organization_id,
            organization_name=state.organization_name,
            source_files=sorted(f for f in state.source_files if f),
            **sections,
        )
