"""
Bulk row parsing for pasted spreadsheet data.

The first line is a header of field labels; cells are separated by a
tab, a comma or two or more spaces. Every required field label and an
email column must appear in the header.
"""

import logging
import re
from typing import Sequence

from app.middleware import ValidationError
from app.models import BatchCandidate, FieldDefinition

logger = logging.getLogger(__name__)

CELL_SEPARATOR = re.compile(r"\t|,|\s{2,}")
EMAIL_HEADERS = {"email", "recipientemail", "recipient email"}


def split_row(line: str) -> list[str]:
    return [cell.strip() for cell in CELL_SEPARATOR.split(line)]


def parse_bulk_rows(
    text: str, fields: Sequence[FieldDefinition]
) -> tuple[list[BatchCandidate], list[str]]:
    """
    Parse pasted rows into batch candidates.

    Args:
        text: Pasted table, header first
        fields: Field definitions of the target template

    Returns:
        tuple: (candidates, extra header columns that were ignored)

    Raises:
        ValidationError: If the header is incomplete or there are no data rows
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise ValidationError("No data found in pasted content")

    header = split_row(lines[0])
    email_index = next(
        (i for i, label in enumerate(header) if label.lower() in EMAIL_HEADERS), None
    )

    problems = []
    if email_index is None:
        problems.append({"index": 0, "field": "recipientEmail", "problem": "missing_column"})

    column_by_field = {}
    for field in fields:
        if field.label in header:
            column_by_field[field.id] = header.index(field.label)
        elif field.required:
            problems.append({"index": 0, "field": field.id, "problem": "missing_column"})

    if problems:
        missing = ", ".join(p["field"] for p in problems)
        raise ValidationError(
            f"Header validation failed. Missing columns: {missing}", problems=problems
        )

    known = set(column_by_field.values()) | {email_index}
    extra_columns = [
        label for i, label in enumerate(header) if label and i not in known
    ]

    candidates = []
    for line in lines[1:]:
        cells = split_row(line)
        values = {
            field_id: cells[column]
            for field_id, column in column_by_field.items()
            if column < len(cells) and cells[column]
        }
        email = cells[email_index] if email_index < len(cells) else ""
        candidates.append(BatchCandidate(recipient_email=email, field_values=values))

    if not candidates:
        raise ValidationError("No data rows found after the header")

    logger.info(
        f"Parsed {len(candidates)} bulk rows"
        f"{f', ignored columns: {extra_columns}' if extra_columns else ''}"
    )
    return candidates, extra_columns
