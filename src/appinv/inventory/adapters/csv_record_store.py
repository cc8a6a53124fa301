"""Flat-file record store.

The record file is the durable hand-off between collection and reporting:

    AppName,Version,InstallCount,DeviceName,DeviceId,OS,UserPrincipal,RetrievalError

By default every row is the 8 field values joined with "," and no escaping,
so downstream consumers of the existing format keep working. A value that
itself contains a comma therefore produces a row that cannot be read back;
read_all() reports it as RecordFormatError with the offending line number.

quoted=True writes RFC 4180 CSV through the csv module instead. The header
line is the same in both modes.
"""

import csv
import logging
from pathlib import Path

from ...api.exceptions import RecordFormatError
from ..domain.entities import RECORD_HEADER, InventoryRecord
from ..domain.ports import IRecordStore

logger = logging.getLogger(__name__)

FIELD_COUNT = len(RECORD_HEADER)


class CsvRecordStore(IRecordStore):
    """Append-only UTF-8 record file with a single writer.

    Each append opens, writes and closes the file, so every row is on disk
    as soon as append() returns and memory use does not grow with the run.

    Attributes:
        path: Location of the record file
        quoted: Write/read quoted CSV instead of the plain joined format
    """

    def __init__(self, path: str | Path, quoted: bool = False):
        self.path = Path(path)
        self.quoted = quoted

    # ----------------------------------------
    # Writing
    # ----------------------------------------

    def reset(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8", newline="\n") as f:
            f.write(",".join(RECORD_HEADER) + "\n")
        logger.debug(f"Record file created at {self.path}")

    def append(self, record: InventoryRecord) -> None:
        with open(self.path, "a", encoding="utf-8", newline="\n") as f:
            if self.quoted:
                writer = csv.writer(f, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
                writer.writerow(record.to_fields())
            else:
                f.write(",".join(record.to_fields()) + "\n")

    # ----------------------------------------
    # Reading
    # ----------------------------------------

    def read_all(self) -> list[InventoryRecord]:
        """Read every record back in write order.

        Raises:
            FileNotFoundError: If the record file was never created
            RecordFormatError: If the header or any row is malformed
        """
        if self.quoted:
            # csv needs newline="" to see embedded line breaks inside quotes
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                reader = csv.reader(f)
                records = self._parse_rows((reader.line_num, row) for row in reader)
        else:
            with open(self.path, "r", encoding="utf-8", newline="\n") as f:
                records = self._parse_rows(
                    (line_number, line.rstrip("\n").split(","))
                    for line_number, line in enumerate(f, start=1)
                )

        logger.info(f"Read {len(records):,} records from {self.path}")
        return records

    def _parse_rows(self, rows) -> list[InventoryRecord]:
        records: list[InventoryRecord] = []
        header_seen = False

        for line_number, fields in rows:
            if not header_seen:
                if tuple(fields) != RECORD_HEADER:
                    raise RecordFormatError(
                        f"Unexpected header in {self.path}: {','.join(fields)}",
                        line_number=line_number,
                    )
                header_seen = True
                continue

            if fields == [] or fields == [""]:
                continue

            records.append(self._parse_fields(fields, line_number))

        if not header_seen:
            raise RecordFormatError(f"Record file {self.path} is empty", line_number=1)

        return records

    def _parse_fields(self, fields: list[str], line_number: int) -> InventoryRecord:
        if len(fields) != FIELD_COUNT:
            raise RecordFormatError(
                f"Expected {FIELD_COUNT} fields, found {len(fields)}",
                line_number=line_number,
            )

        try:
            install_count = int(fields[2])
        except ValueError as e:
            raise RecordFormatError(
                f"InstallCount is not an integer: {fields[2]!r}",
                line_number=line_number,
                cause=e,
            )

        return InventoryRecord(
            app_name=fields[0],
            version=fields[1],
            install_count=install_count,
            device_name=fields[3],
            device_id=fields[4],
            os=fields[5],
            user_principal=fields[6],
            retrieval_error=fields[7],
        )
