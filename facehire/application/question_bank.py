"""
Question bank loading.

The bank is a CSV resource with the columns Question, Answer, Category and
Difficulty. Loading never raises: well-formed rows become Question records,
malformed rows are reported together in the result's errors.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, List, Tuple, Union

import pandas as pd

from ..core.exceptions import QuestionBankError
from ..core.logging import get_logger
from .models import Question

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("Question", "Answer")
OPTIONAL_COLUMNS = ("Category", "Difficulty")

QuestionSource = Union[str, Path, IO[str]]


@dataclass(frozen=True)
class QuestionBankLoadResult:
    questions: Tuple[Question, ...] = ()
    errors: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise QuestionBankError(
                "Question bank parsing errors: " + ", ".join(self.errors),
                details={"errors": list(self.errors)},
            )


def _clean(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def load_question_bank(source: QuestionSource) -> QuestionBankLoadResult:
    """
    Parse a question bank into Question records.

    Args:
        source: Path, URL or open text stream holding the CSV

    Returns:
        QuestionBankLoadResult with the parsed questions and any row errors.
        A load that fails as a whole yields no questions and one error.
    """
    bad_rows: List[str] = []

    def _collect_bad_row(fields: List[str]):
        bad_rows.append(f"Malformed row ({len(fields)} fields): {','.join(fields)[:80]}")
        return None

    try:
        frame = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
            engine="python",
            on_bad_lines=_collect_bad_row,
        )
    except (OSError, ValueError) as e:
        logger.error("question_bank_load_failed", source=str(source), error=str(e))
        return QuestionBankLoadResult(errors=(f"Error loading question bank: {e}",))

    frame.columns = [str(column).strip() for column in frame.columns]
    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        message = f"Question bank is missing columns: {', '.join(missing)}"
        logger.error("question_bank_load_failed", source=str(source), error=message)
        return QuestionBankLoadResult(errors=(message,))

    questions: List[Question] = []
    errors: List[str] = list(bad_rows)
    for record_number, row in enumerate(frame.to_dict(orient="records"), start=1):
        values = {column: _clean(row.get(column)) for column in REQUIRED_COLUMNS + OPTIONAL_COLUMNS}
        if not any(values.values()):
            continue
        if not values["Question"] or not values["Answer"]:
            errors.append(f"Record {record_number}: missing question or answer")
            continue
        questions.append(Question(
            text=values["Question"],
            reference_answer=values["Answer"],
            category=values["Category"] or None,
            difficulty=values["Difficulty"] or None,
        ))

    if errors:
        logger.warning("question_bank_row_errors", source=str(source), errors=len(errors))
    logger.info("question_bank_loaded", source=str(source), questions=len(questions))
    return QuestionBankLoadResult(questions=tuple(questions), errors=tuple(errors))
