"""Tests for the CsvRecordStore flat-file adapter."""

import pytest

from src.appinv.api.exceptions import RecordFormatError
from src.appinv.inventory.adapters.csv_record_store import CsvRecordStore
from src.appinv.inventory.domain.entities import (
    DeviceInstallation,
    DiscoveredApp,
    InventoryRecord,
)

HEADER_LINE = "AppName,Version,InstallCount,DeviceName,DeviceId,OS,UserPrincipal,RetrievalError\n"

ZOOM = DiscoveredApp(id="a1", name="Zoom", version="5.1", install_count=2)
LEGACY = DiscoveredApp(id="a2", name="Legacy", version="1.0", install_count=0)


@pytest.fixture
def records():
    return [
        InventoryRecord.for_device(
            ZOOM, DeviceInstallation("LAPTOP-01", "d1", "Windows", "ana@contoso.com")
        ),
        InventoryRecord.for_device(ZOOM, DeviceInstallation("LAPTOP-02", "d2", "macOS", "")),
        InventoryRecord.no_installs(LEGACY),
        InventoryRecord.failed(DiscoveredApp(id="a3", name="VPN", version="", install_count=7)),
    ]


class TestCsvRecordStoreWriting:
    """Tests for reset and append."""

    def test_reset_writes_header_only(self, tmp_path):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv")

        store.reset()

        assert store.path.read_bytes() == HEADER_LINE.encode("utf-8")

    def test_reset_truncates_previous_run(self, tmp_path, records):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv")
        store.reset()
        for record in records:
            store.append(record)

        store.reset()

        assert store.path.read_text(encoding="utf-8") == HEADER_LINE

    def test_reset_creates_parent_directory(self, tmp_path):
        store = CsvRecordStore(tmp_path / "out" / "nested" / "DiscoveredApps.csv")
        store.reset()
        assert store.path.exists()

    def test_plain_rows_are_unescaped(self, tmp_path, records):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv")
        store.reset()
        for record in records:
            store.append(record)

        lines = store.path.read_text(encoding="utf-8").splitlines()

        assert lines[1] == "Zoom,5.1,2,LAPTOP-01,d1,Windows,ana@contoso.com,"
        assert lines[3] == "Legacy,1.0,0,,,,,No installs"
        assert lines[4] == "VPN,,7,,,,,Failed after retries"

    def test_appends_are_flushed_immediately(self, tmp_path, records):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv")
        store.reset()
        store.append(records[0])

        assert store.path.read_text(encoding="utf-8").count("\n") == 2


class TestCsvRecordStoreReading:
    """Tests for read_all."""

    def test_round_trip_plain(self, tmp_path, records):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv")
        store.reset()
        for record in records:
            store.append(record)

        assert store.read_all() == records

    def test_header_only_reads_empty(self, tmp_path):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv")
        store.reset()
        assert store.read_all() == []

    def test_missing_file_raises(self, tmp_path):
        store = CsvRecordStore(tmp_path / "absent.csv")
        with pytest.raises(FileNotFoundError):
            store.read_all()

    def test_comma_in_value_is_malformed_in_plain_mode(self, tmp_path):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv")
        store.reset()
        store.append(InventoryRecord.no_installs(
            DiscoveredApp(id="a9", name="Acme, Inc. Agent", version="2", install_count=0)
        ))

        with pytest.raises(RecordFormatError) as exc:
            store.read_all()

        assert exc.value.line_number == 2

    def test_wrong_header_raises(self, tmp_path):
        path = tmp_path / "DiscoveredApps.csv"
        path.write_text("Name,Version\nZoom,5.1\n", encoding="utf-8")

        with pytest.raises(RecordFormatError) as exc:
            CsvRecordStore(path).read_all()

        assert exc.value.line_number == 1

    def test_non_integer_install_count_raises(self, tmp_path):
        path = tmp_path / "DiscoveredApps.csv"
        path.write_text(HEADER_LINE + "Zoom,5.1,two,LAPTOP-01,d1,Windows,,\n", encoding="utf-8")

        with pytest.raises(RecordFormatError) as exc:
            CsvRecordStore(path).read_all()

        assert exc.value.line_number == 2

    def test_empty_file_raises(self, tmp_path):
        path = tmp_path / "DiscoveredApps.csv"
        path.write_text("", encoding="utf-8")

        with pytest.raises(RecordFormatError):
            CsvRecordStore(path).read_all()


class TestQuotedMode:
    """Tests for the quoted CSV mode."""

    def test_same_header(self, tmp_path):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv", quoted=True)
        store.reset()
        assert store.path.read_text(encoding="utf-8") == HEADER_LINE

    def test_round_trip_with_commas_and_quotes(self, tmp_path):
        tricky = InventoryRecord.for_device(
            DiscoveredApp(id="a9", name='Acme, Inc. "Agent"', version="2,1", install_count=1),
            DeviceInstallation("PC-1", "d9", "Windows", "bob@contoso.com"),
        )
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv", quoted=True)
        store.reset()
        store.append(tricky)

        assert store.read_all() == [tricky]

    def test_plain_values_stay_unquoted(self, tmp_path, records):
        store = CsvRecordStore(tmp_path / "DiscoveredApps.csv", quoted=True)
        store.reset()
        store.append(records[0])

        lines = store.path.read_text(encoding="utf-8").splitlines()
        assert lines[1] == "Zoom,5.1,2,LAPTOP-01,d1,Windows,ana@contoso.com,"
