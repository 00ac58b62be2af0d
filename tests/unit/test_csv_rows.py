from datetime import UTC, datetime

from storecast.utils.csv_rows import parse_csv, parse_due_date, parse_task_rows


def test_parse_task_rows_with_header_drops_rows_without_title():
    content = (
        "title;description;dueDate\n"
        "Count inventory;Back room only;2024-03-01\n"
        "\n"
        ";Missing title;2024-03-02\n"
        "Update signage;;\n"
    ).encode()

    tasks = parse_task_rows(content)

    assert [t.title for t in tasks] == ["Count inventory", "Update signage"]
    assert tasks[0].description == "Back room only"
    assert tasks[0].due_date == datetime(2024, 3, 1, tzinfo=UTC)
    assert tasks[1].description == ""
    assert tasks[1].due_date is None


def test_parse_task_rows_headerless_is_positional():
    tasks = parse_task_rows(b"Clean windows; Front only; 05.04.2024\nRestock; ;")

    assert [t.title for t in tasks] == ["Clean windows", "Restock"]
    assert tasks[0].description == "Front only"
    assert tasks[0].due_date == datetime(2024, 4, 5, tzinfo=UTC)


def test_parse_task_rows_header_case_and_spacing():
    tasks = parse_task_rows('"Title";"Description";"Due Date"\n"Order stock";"Weekly";"2024-06-30"\n'.encode())

    assert tasks[0].title == "Order stock"
    assert tasks[0].due_date_iso() == "2024-06-30T00:00:00Z"


def test_parse_task_rows_empty_buffer():
    assert parse_task_rows(b"") == []
    assert parse_task_rows(b"\n\n") == []


def test_parse_due_date_variants():
    assert parse_due_date("2024-01-15") == datetime(2024, 1, 15, tzinfo=UTC)
    assert parse_due_date("01/15/2024") == datetime(2024, 1, 15, tzinfo=UTC)
    assert parse_due_date("2024-01-15T10:30:00+01:00") == datetime(2024, 1, 15, 9, 30, tzinfo=UTC)
    assert parse_due_date("next week") is None
    assert parse_due_date("") is None


def test_parse_csv_detects_separator_and_pads_rows():
    parsed = parse_csv("Store ID;Manager;Region\n100;Alice\n".encode("utf-8-sig"))

    assert parsed.separator == ";"
    assert parsed.headers == ["Store ID", "Manager", "Region"]
    assert parsed.rows == [{"Store ID": "100", "Manager": "Alice", "Region": ""}]


def test_parse_csv_comma_separated():
    parsed = parse_csv(b"id,name\n1,One\n2,Two\n")

    assert parsed.separator == ","
    assert len(parsed.rows) == 2
