"""Parsing of ``name|sourceRef|language|referenceNote`` target records."""

from __future__ import annotations

from collections.abc import Iterable

from analysis_dispatch.dispatch.models import TargetDescriptor

RECORD_DELIMITER = "|"
RECORD_FIELDS = ("name", "sourceRef", "language", "referenceNote")
RECORD_FORMAT = RECORD_DELIMITER.join(RECORD_FIELDS)


class MalformedTargetError(ValueError):
    """Target record cannot be turned into a TargetDescriptor."""

    def __init__(self, record: str, reason: str) -> None:
        super().__init__(f"Malformed target {record!r}: {reason}")
        self.record = record
        self.reason = reason


def parse_target_record(record: str) -> TargetDescriptor:
    """Parse one record into a descriptor, trimming every field."""

    fields = [part.strip() for part in record.split(RECORD_DELIMITER)]
    if len(fields) != len(RECORD_FIELDS):
        raise MalformedTargetError(
            record,
            f"expected {len(RECORD_FIELDS)} fields in the form {RECORD_FORMAT!r}, "
            f"got {len(fields)}.",
        )

    name, source_ref, language, reference_note = fields
    if not name:
        raise MalformedTargetError(record, "name is empty.")
    if name in {".", ".."} or "/" in name or "\\" in name:
        raise MalformedTargetError(record, f"name {name!r} is not a plain directory name.")

    return TargetDescriptor(
        name=name,
        source_ref=source_ref,
        language=language,
        reference_note=reference_note,
    )


def parse_target_records(records: Iterable[str]) -> list[TargetDescriptor]:
    """Parse a whole batch, failing on the first bad record before anything runs.

    Blank records are skipped. Names must be unique because they key the
    per-target working directory.
    """

    targets: list[TargetDescriptor] = []
    seen: set[str] = set()
    for record in records:
        if not record.strip():
            continue
        target = parse_target_record(record)
        if target.name in seen:
            raise MalformedTargetError(record, f"duplicate target name {target.name!r}.")
        seen.add(target.name)
        targets.append(target)
    return targets
