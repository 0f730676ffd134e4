"""FormatClassifier: derives organization code and grammar for each source file."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from hrrecon.core.config import ClassifierConfig, ParserConfig
from hrrecon.core.exceptions import InputDirectoryError, NoFilesClassifiedError
from hrrecon.core.logging_config import get_logger
from hrrecon.models.fields import SourceGrammar
from hrrecon.models.pipeline import ClassificationResult, ClassifiedFile, UnclassifiedFile

logger = get_logger(__name__)


def organization_code_for(path: Path, separator: str = "_") -> Optional[str]:
    """File prefix before the first separator, upper-cased. None without a separator."""
    name = path.name
    if separator not in name:
        return None
    prefix = name.split(separator, 1)[0].strip()
    return prefix.upper() or None


def sniff_grammar(
    path: Path,
    boundary_label: str = "Employee No.",
    max_lines: int = 40,
    encoding: str = "utf-8",
) -> Optional[SourceGrammar]:
    """Guess the grammar of a file with an unfamiliar extension from its first lines."""
    label = boundary_label.rstrip(":")
    narrative_rx = re.compile(re.escape(label) + r"\s*:?\s*[A-Z]+\d+")
    with path.open("r", encoding=encoding, errors="replace") as fh:
        for i, line in enumerate(fh):
            if i >= max_lines:
                break
            first_cell = line.split(",", 1)[0].strip().rstrip(":")
            if "," in line and first_cell == label:
                return SourceGrammar.GRID
            if narrative_rx.search(line):
                return SourceGrammar.NARRATIVE
    return None


class FormatClassifier:
    """Classifies every file of an export directory.

    Organization resolution is not attempted here: a file whose prefix has no
    mapping is still classified.
    """

    def __init__(
        self,
        config: ClassifierConfig | None = None,
        parser_config: ParserConfig | None = None,
    ) -> None:
        self._config = config or ClassifierConfig()
        self._parser_config = parser_config or ParserConfig()

    def classify_file(self, path: Path) -> ClassifiedFile | UnclassifiedFile:
        code = organization_code_for(path, self._config.org_separator)
        if code is None:
            return UnclassifiedFile(path=str(path), reason="no organization prefix")

        suffix = path.suffix.lower()
        if suffix in self._config.grid_extensions:
            grammar: Optional[SourceGrammar] = SourceGrammar.GRID
        elif suffix in self._config.narrative_extensions:
            grammar = SourceGrammar.NARRATIVE
        else:
            try:
                grammar = sniff_grammar(
                    path,
                    self._parser_config.boundary_label,
                    self._config.sniff_lines,
                    self._config.encoding,
                )
            except OSError as exc:
                return UnclassifiedFile(path=str(path), reason=f"unreadable: {exc}")

        if grammar is None:
            return UnclassifiedFile(path=str(path), reason=f"unknown grammar for {suffix or 'no extension'}")
        return ClassifiedFile(organization_code=code, source_grammar=grammar, path=str(path))

    def classify(self, directory: str | Path) -> ClassificationResult:
        """Classify a directory listing.

        Raises:
            InputDirectoryError: directory missing or unreadable.
            NoFilesClassifiedError: nothing in it could be classified.
        """
        root = Path(directory)
        if not root.is_dir():
            raise InputDirectoryError(str(root), "not a directory")
        try:
            entries = sorted(p for p in root.iterdir() if p.is_file() and not p.name.startswith("."))
        except OSError as exc:
            raise InputDirectoryError(str(root), str(exc)) from exc

        result = ClassificationResult(directory=str(root))
        for path in entries:
            outcome = self.classify_file(path)
            if isinstance(outcome, ClassifiedFile):
                result.classified.append(outcome)
            else:
                logger.warning("file_unclassified", file=outcome.path, reason=outcome.reason)
                result.unclassified.append(outcome)

        if not result.classified:
            raise NoFilesClassifiedError(str(root), len(result.unclassified))

        logger.info(
            "directory_classified",
            directory=str(root),
            classified=len(result.classified),
            unclassified=len(result.unclassified),
            organizations=result.organization_codes,
        )
        return result


def classify_directory(
    directory: str | Path,
    config: ClassifierConfig | None = None,
    parser_config: ParserConfig | None = None,
) -> ClassificationResult:
    return FormatClassifier(config, parser_config).classify(directory)
