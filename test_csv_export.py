from csv_export import export_csv, to_csv


def test_to_csv_quotes_every_cell():
    assert to_csv([{"Month": "Jan 2024", "Enrollments": 5}]) == '"Month","Enrollments"\n"Jan 2024","5"'


def test_to_csv_empty():
    assert to_csv([]) == ""


def test_to_csv_none_is_empty_cell():
    assert to_csv([{"Course": "CS101", "Top Student": None}]) == '"Course","Top Student"\n"CS101",""'


def test_to_csv_doubles_quotes():
    text = to_csv([{"Title": 'The "Best" Course', "Code": "A,B"}])
    assert text.split("\n")[1] == '"The ""Best"" Course","A,B"'


def test_to_csv_header_from_first_row():
    """Test later rows are read by header lookup"""
    rows = [
        {"a": 1, "b": 2},
        {"b": 4, "a": 3},
        {"a": 5},
    ]
    assert to_csv(rows) == '"a","b"\n"1","2"\n"3","4"\n"5",""'


def test_to_csv_numbers():
    assert to_csv([{"Score": 96.0}, {"Score": 88.5}]) == '"Score"\n"96"\n"88.5"'


def test_export_csv_writes_file(tmp_path):
    path = export_csv("report.csv", [{"Month": "Jan 2024", "Enrollments": 5}], tmp_path)
    assert path == tmp_path / "report.csv"
    assert path.read_text(encoding="utf-8") == '"Month","Enrollments"\n"Jan 2024","5"'


def test_export_csv_creates_directory(tmp_path):
    path = export_csv("report.csv", [{"a": 1}], tmp_path / "exports" / "2024")
    assert path.exists()


def test_export_csv_no_rows_writes_nothing(tmp_path):
    assert export_csv("report.csv", [], tmp_path) is None
    assert list(tmp_path.iterdir()) == []
