import io
import json
import os
from datetime import datetime, timedelta, timezone

import pytest
import yaml

from omc.helpers import (
    CHARSET,
    OmcError,
    cat,
    exists,
    extract_label,
    extract_labels,
    format_diff_time,
    format_resource,
    get_age,
    get_json_template,
    get_row,
    is_directory,
    match_labels,
    random_string,
    read_yaml,
    render_table,
)


def test_random_string():
    s = random_string(8)
    assert len(s) == 8 and set(s) <= set(CHARSET)


def test_render_table_shape():
    out = render_table(["name", "age"], [["alpha", "1"], ["b", "22"]])
    lines = out.splitlines()
    assert lines[0].split() == ["NAME", "AGE"]
    assert lines[1].index("1") == lines[0].index("AGE")
    assert all(line == line.rstrip() for line in lines)


def test_format_diff_time():
    assert format_diff_time(timedelta(days=100000)) == "Unknown"
    assert format_diff_time(timedelta(days=3)) == "3d"
    assert format_diff_time(timedelta(seconds=30)) == "30s"


def test_get_row():
    values = ["ns", "name", "a", "b"]
    assert get_row(True, False, "", "", 3, values) == values[:3]
    assert get_row(False, True, "l=v", "wide", 3, values) == values[1:] + ["l=v"]


def test_labels():
    assert extract_labels({}) == "<none>"
    assert extract_labels({"a": "1", "b": "2"}) == "a=1,b=2"
    assert extract_label({"a": "1"}, "a") == "1"
    assert extract_label({"a": "1"}, "z") == ""


def test_match_labels():
    assert match_labels("a=1,app=web", "")
    assert match_labels("a=1,app=web", "web")
    assert match_labels("a=1,app=web", "a==1")
    assert not match_labels("a=1,app=web", "a!=1")
    assert not match_labels("a=1", "b=2")


def test_read_yaml_drops_three_byte_lines(tmp_path):
    p = tmp_path / "n.yaml"
    p.write_bytes(b"abc\nkind: Node\n")
    assert read_yaml(p) == "kind: Node\n"


def test_get_age(tmp_path):
    p = tmp_path / "r.yaml"
    p.write_text("x")
    mtime = datetime.fromtimestamp(os.stat(p).st_mtime, timezone.utc)
    created = mtime - timedelta(days=5)
    assert get_age(p, created) == format_diff_time(timedelta(days=5))
    assert get_age(p, None) == "Unknown"


def test_paths(tmp_path):
    assert is_directory(tmp_path)
    assert exists(tmp_path)
    assert not exists(tmp_path / "missing")


def test_cat(tmp_path):
    p = tmp_path / "f.log"
    p.write_text("one\ntwo")
    buf = io.StringIO()
    cat(p, buf)
    assert buf.getvalue() == "one\ntwo\n"
    with pytest.raises(OmcError):
        cat(tmp_path / "none", buf)


def test_get_json_template():
    assert get_json_template("jsonpath={.a}") == "{.a}"
    assert get_json_template("yaml") == ""
    with pytest.raises(OmcError):
        get_json_template("jsonpath=")


def test_format_resource():
    res = {"metadata": {"name": "n"}}
    assert json.loads(format_resource(res, "json")) == res
    assert yaml.safe_load(format_resource(res, "yaml")) == res
    assert format_resource(res, "jsonpath={.metadata.name}", "{.metadata.name}") == "n"