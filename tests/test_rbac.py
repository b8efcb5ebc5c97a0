import io
import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from omc.helpers import GetOptions, OmcError
from omc.rbac import get_cluster_role_bindings, get_cluster_roles

RBAC = "cluster-scoped-resources/rbac.authorization.k8s.io"


def _write(root: Path, folder: str, name: str, obj: dict) -> Path:
    directory = root / RBAC / folder
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.yaml"
    path.write_text(yaml.safe_dump(obj), encoding="utf-8")
    return path


def _binding(name, labels=None, created="2021-01-01T00:00:00Z"):
    return {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRoleBinding",
        "metadata": {
            "name": name,
            "labels": labels or {},
            "creationTimestamp": created,
        },
        "roleRef": {"kind": "ClusterRole", "name": "cluster-admin"},
        "subjects": [
            {"kind": "User", "name": "alice"},
            {"kind": "Group", "name": "system:masters"},
            {"kind": "ServiceAccount", "namespace": "kube-system", "name": "sa"},
        ],
    }


def _role(name, created=None, labels=None):
    meta = {"name": name, "labels": labels or {}}
    if created is not None:
        meta["creationTimestamp"] = created
    return {"apiVersion": "rbac.authorization.k8s.io/v1", "kind": "ClusterRole", "metadata": meta}


def _run(func, root, **kwargs):
    out = io.StringIO()
    result = func(str(root), GetOptions(**kwargs), out)
    return result, out.getvalue()


def test_binding_table_has_name_role_and_age(tmp_path):
    path = _write(tmp_path, "clusterrolebindings", "admins", _binding("admins"))
    stamp = datetime(2021, 1, 4, tzinfo=timezone.utc).timestamp()
    os.utime(path, (stamp, stamp))
    result, out = _run(get_cluster_role_bindings, tmp_path)
    lines = out.splitlines()
    assert result is False
    assert lines[0].split() == ["NAME", "ROLE"]
    assert lines[1].split() == ["admins", "ClusterRole/cluster-admin", "3d"]


def test_binding_wide_lists_subjects(tmp_path):
    _write(tmp_path, "clusterrolebindings", "admins", _binding("admins"))
    _, out = _run(get_cluster_role_bindings, tmp_path, output="wide")
    lines = out.splitlines()
    assert lines[0].split() == ["NAME", "ROLE", "AGE", "USERS", "GROUPS", "SERVICEACCOUNTS"]
    cells = lines[1].split()
    assert cells[3] == "alice"
    assert cells[4] == "system:masters"
    assert cells[5] == "kube-system" + "sa"


def test_binding_name_output_and_selector(tmp_path):
    _write(tmp_path, "clusterrolebindings", "a", _binding("a", {"team": "a"}))
    _write(tmp_path, "clusterrolebindings", "b", _binding("b", {"team": "b"}))
    _, out = _run(get_cluster_role_bindings, tmp_path, output="name", selector="team=a")
    assert out == "clusterrolebinding/a\n"


def test_binding_json_single_resource(tmp_path):
    _write(tmp_path, "clusterrolebindings", "a", _binding("a"))
    _write(tmp_path, "clusterrolebindings", "b", _binding("b"))
    _, out = _run(get_cluster_role_bindings, tmp_path, output="json", resource_name="b")
    data = json.loads(out)
    assert data["metadata"]["name"] == "b"
    assert data["roleRef"]["name"] == "cluster-admin"


def test_binding_yaml_list(tmp_path):
    _write(tmp_path, "clusterrolebindings", "a", _binding("a"))
    _write(tmp_path, "clusterrolebindings", "b", _binding("b"))
    _, out = _run(get_cluster_role_bindings, tmp_path, output="yaml")
    data = yaml.safe_load(out)
    assert data["apiVersion"] == "v1"
    assert [i["metadata"]["name"] for i in data["items"]] == ["a", "b"]


def test_binding_jsonpath(tmp_path):
    _write(tmp_path, "clusterrolebindings", "a", _binding("a"))
    _write(tmp_path, "clusterrolebindings", "b", _binding("b"))
    template = "{.items[*].metadata.name}"
    _, out = _run(
        get_cluster_role_bindings,
        tmp_path,
        output="jsonpath=" + template,
        jsonpath_template=template,
    )
    assert out == "a b"


def test_missing_named_resource_raises(tmp_path):
    _write(tmp_path, "clusterrolebindings", "a", _binding("a"))
    with pytest.raises(OmcError):
        _run(get_cluster_role_bindings, tmp_path, output="yaml", resource_name="zzz")


def test_three_byte_lines_are_dropped(tmp_path):
    directory = tmp_path / RBAC / "clusterroles"
    directory.mkdir(parents=True)
    (directory / "odd.yaml").write_text(
        "xyz\n" + yaml.safe_dump(_role("odd")), encoding="utf-8"
    )
    _, out = _run(get_cluster_roles, tmp_path, output="name")
    assert out == "clusterrole/odd\n"


def test_unparseable_file_raises(tmp_path):
    directory = tmp_path / RBAC / "clusterroles"
    directory.mkdir(parents=True)
    (directory / "bad.yaml").write_text("a: [\n", encoding="utf-8")
    with pytest.raises(OmcError, match="unmarshal"):
        _run(get_cluster_roles, tmp_path)


def test_cluster_role_created_at_in_utc(tmp_path):
    _write(tmp_path, "clusterroles", "edit", _role("edit", "2021-03-04T05:06:07.500+02:00"))
    _, out = _run(get_cluster_roles, tmp_path)
    lines = out.splitlines()
    assert lines[0].split() == ["NAME", "CREATED", "AT"]
    assert lines[1].split() == ["edit", "2021-03-04T03:06:07.5Z"]


def test_cluster_role_without_timestamp_uses_zero_time(tmp_path):
    _write(tmp_path, "clusterroles", "view", _role("view"))
    _, out = _run(get_cluster_roles, tmp_path)
    assert out.splitlines()[1].split() == ["view", "0001-01-01T00:00:00Z"]


def test_cluster_role_show_labels(tmp_path):
    _write(tmp_path, "clusterroles", "view", _role("view", labels={"k": "v"}))
    _, out = _run(get_cluster_roles, tmp_path, show_labels=True)
    lines = out.splitlines()
    assert lines[0].split()[-1] == "LABELS"
    assert lines[1].split()[-1] == "k=v"


def test_missing_folder_gives_header_only(tmp_path):
    _, out = _run(get_cluster_roles, tmp_path)
    assert out.splitlines() == ["NAME   CREATED AT"]