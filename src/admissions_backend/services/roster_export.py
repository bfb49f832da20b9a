"""CSV export of the admin roster."""

from typing import Iterable, List

from admissions_backend.schemas.roster import RosterRow

CSV_HEADERS = ["ID", "Name", "Email", "School", "Grade", "Subject", "Availability", "Allocation", "Status"]
AVAILABILITY_SEPARATOR = "; "
EXPORT_FILENAME = "candidates_export.csv"


def row_values(row: RosterRow) -> List[str]:
    return [
        row.user_id,
        row.name,
        row.email,
        row.school,
        row.grade,
        row.subject,
        AVAILABILITY_SEPARATOR.join(row.availability),
        row.allocation,
        row.status.value,
    ]


def export_csv(rows: Iterable[RosterRow]) -> str:
    """Render roster rows as comma-joined lines under the header line.

    Values are written as-is; a value containing a comma or quote shifts columns.
    """
    # TODO: quote values with csv.writer (QUOTE_MINIMAL) once downstream importers accept quoted fields
    lines = [",".join(CSV_HEADERS)]
    lines.extend(",".join(row_values(row)) for row in rows)
    return "\n".join(lines)
