import gc
from datetime import date
from pathlib import Path

import pytest
from openpyxl import load_workbook

from services.exceptions import InvalidOrderDateError, OrderStorageError
from services.order_records.model import OrderRecordRequest
from services.order_records.parse import load_sprint_windows
from services.order_records.runner import (
    _PATH_LOCKS,
    OrderRecordService,
    _lock_for,
    coverage_date,
    resolve_order_date,
)
from services.order_records.sprints import parse_sprint_number
from tests.test_helpers import build_workbook, data_rows, read_rows


def _request(directory, order_id="NEW-55-ABC", env="prod", date_value="2026-01-10"):
    return OrderRecordRequest(order_id=order_id, directory_path=str(directory), env=env, date=date_value)


def _windows(path):
    wb = load_workbook(path)
    try:
        return load_sprint_windows(wb)
    finally:
        wb.close()


def test_resolve_order_date(fixed_today):
    assert resolve_order_date(None, fixed_today) == fixed_today
    assert resolve_order_date("  ", fixed_today) == fixed_today
    assert resolve_order_date("2026-03-01", fixed_today) == date(2026, 3, 1)
    with pytest.raises(InvalidOrderDateError, match="yyyy-MM-dd"):
        resolve_order_date("2026-13-40", fixed_today)


def test_coverage_date_is_later_of_latest_entry_and_today():
    today = date(2026, 1, 10)
    assert coverage_date({}, today) == today
    assert coverage_date({date(2025, 1, 1): []}, today) == today
    assert coverage_date({date(2027, 5, 1): [], date(2025, 1, 1): []}, today) == date(2027, 5, 1)


def test_first_order_in_empty_directory(order_service, tmp_path):
    target = tmp_path / "x"
    response = order_service.store_order_record(_request(target))

    file_path = target / "order-records.xlsx"
    assert response.to_dict() == {
        "message": "Order ID saved successfully",
        "filePath": str(file_path.resolve()),
        "orderId": "NEW-55-ABC",
        "storedAt": "2026-01-10",
    }

    wb = load_workbook(file_path)
    try:
        assert wb.sheetnames == ["Orders", "AllOrders", "ValueConditions"]
        assert wb["ValueConditions"].cell(row=3, column=4).value == "Sprint-385"
    finally:
        wb.close()

    assert data_rows(read_rows(file_path, "AllOrders")) == [
        ["Order ID", "Plan Name", "Environment", "Sprint", "Date"],
        ["NEW-55-ABC", "NEW-55", "prod", "Sprint-385", "2026-01-10"],
    ]


def test_missing_date_uses_today(order_service, tmp_path, fixed_today):
    response = order_service.store_order_record(_request(tmp_path, date_value=None))
    assert response.stored_at == fixed_today.isoformat()


def test_environment_is_trimmed(order_service, tmp_path):
    order_service.store_order_record(_request(tmp_path, env="  uat  "))
    rows = data_rows(read_rows(tmp_path / "order-records.xlsx", "AllOrders"))
    assert rows[1][2] == "uat"


def test_invalid_date_writes_nothing(order_service, tmp_path):
    target = tmp_path / "never"
    with pytest.raises(InvalidOrderDateError):
        order_service.store_order_record(_request(target, date_value="2026-13-40"))
    assert not target.exists()


def test_orders_accumulate_across_requests(order_service, tmp_path):
    submissions = [
        ("NEW-1", "2026-01-12"),
        ("MOD-2", "2026-01-05"),
        ("CAN-3", "2026-01-12"),
        ("PRJ-4", "2026-02-01"),
    ]
    for order_id, d in submissions:
        order_service.store_order_record(_request(tmp_path, order_id=order_id, date_value=d))

    path = tmp_path / "order-records.xlsx"
    flat = data_rows(read_rows(path, "AllOrders"))[1:]
    assert [(r[0], r[4]) for r in flat] == [
        ("MOD-2", "2026-01-05"),
        ("NEW-1", "2026-01-12"),
        ("CAN-3", "2026-01-12"),
        ("PRJ-4", "2026-02-01"),
    ]

    grouped = data_rows(read_rows(path, "Orders"))
    headers = [r for r in grouped if r[3] == "Order ID"]
    assert len(headers) == 3
    assert [r[3] for r in grouped if r[3] != "Order ID"] == ["MOD-2", "NEW-1", "CAN-3", "PRJ-4"]


def test_duplicate_submissions_are_kept(order_service, tmp_path):
    for _ in range(2):
        order_service.store_order_record(_request(tmp_path))
    flat = data_rows(read_rows(tmp_path / "order-records.xlsx", "AllOrders"))[1:]
    assert len(flat) == 2
    assert flat[0] == flat[1]


def test_schedule_only_grows_forward(order_service, tmp_path):
    path = tmp_path / "order-records.xlsx"
    order_service.store_order_record(_request(tmp_path, date_value="2026-01-10"))
    before = _windows(path)

    order_service.store_order_record(_request(tmp_path, date_value="2026-09-01"))
    after = _windows(path)

    required = order_service.schedule.window_number_for_date(date(2026, 9, 1)) + 15
    assert parse_sprint_number(after[-1].name) >= required
    by_name = {w.name: w for w in after}
    for window in before:
        assert by_name[window.name] == window


def test_legacy_flat_workbook_is_upgraded(order_service, tmp_path):
    path = tmp_path / "order-records.xlsx"
    wb = build_workbook({"AllOrders": [["Order ID", "Date"], ["PRJ-1", "2025-12-01"], ["", ""], ["note"]]})
    wb.save(path)

    order_service.store_order_record(_request(tmp_path))

    flat = data_rows(read_rows(path, "AllOrders"))[1:]
    assert len(flat) == 2
    legacy = flat[0]
    assert (legacy[0], legacy[1], legacy[3], legacy[4]) == ("PRJ-1", "PPM", "Sprint-382", "2025-12-01")
    assert legacy[2] in (None, "")
    assert flat[1] == ["NEW-55-ABC", "NEW-55", "prod", "Sprint-385", "2026-01-10"]

    wb = load_workbook(path)
    try:
        assert wb.sheetnames == ["AllOrders", "Orders", "ValueConditions"]
    finally:
        wb.close()


def test_unreadable_workbook_is_a_storage_error(order_service, tmp_path):
    (tmp_path / "order-records.xlsx").write_bytes(b"not a zip file")
    with pytest.raises(OrderStorageError, match="Unable to read existing Excel file"):
        order_service.store_order_record(_request(tmp_path))


def test_write_failure_keeps_previous_file(order_service, tmp_path, mocker):
    path = tmp_path / "order-records.xlsx"
    order_service.store_order_record(_request(tmp_path, order_id="NEW-1"))
    before = path.read_bytes()

    mocker.patch("services.excel.os.replace", side_effect=OSError("disk full"))
    with pytest.raises(OrderStorageError, match="Failed to store order details"):
        order_service.store_order_record(_request(tmp_path, order_id="NEW-2"))

    assert path.read_bytes() == before
    assert sorted(p.name for p in Path(tmp_path).iterdir()) == ["order-records.xlsx"]


def test_from_config_reads_file_name_and_sprints(tmp_path):
    service = OrderRecordService.from_config(
        {
            "file_name": "orders.xlsx",
            "sprints": {"first_number": 0, "default_last_number": 5, "anchor_number": 1, "anchor_start": "2026-01-07"},
        },
        today=lambda: date(2026, 1, 10),
    )
    response = service.store_order_record(_request(tmp_path))
    assert Path(response.file_path).name == "orders.xlsx"
    assert data_rows(read_rows(response.file_path, "AllOrders"))[1][3] == "Sprint-1"


@pytest.mark.parametrize("order_id, env", [("Sprint-7", "prod"), ("2026-01-09", "prod"), ("=A1", "=prod")])
def test_unusual_order_ids_are_kept_on_later_requests(order_service, tmp_path, order_id, env):
    order_service.store_order_record(_request(tmp_path, order_id=order_id, env=env, date_value="2026-01-09"))
    order_service.store_order_record(_request(tmp_path, order_id="NEW-1"))

    path = tmp_path / "order-records.xlsx"
    flat = data_rows(read_rows(path, "AllOrders"))[1:]
    assert [(r[0], r[2]) for r in flat] == [(order_id, env), ("NEW-1", "prod")]

    wb = load_workbook(path)
    try:
        assert wb["AllOrders"]["A2"].data_type == "s"
    finally:
        wb.close()


def test_path_locks_are_released_when_unused(tmp_path):
    path = tmp_path / "order-records.xlsx"
    lock = _lock_for(path)
    assert _lock_for(path) is lock
    assert str(path) in _PATH_LOCKS

    del lock
    gc.collect()
    assert str(path) not in _PATH_LOCKS


def test_workbook_is_closed_when_rendering_fails(order_service, tmp_path, mocker):
    close = mocker.patch("openpyxl.workbook.workbook.Workbook.close")
    mocker.patch("services.order_records.runner.render_views", side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        order_service.store_order_record(_request(tmp_path))

    close.assert_called_once()
    assert not (tmp_path / "order-records.xlsx").exists()
