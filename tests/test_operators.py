import io
import json
from pathlib import Path

import pytest
import yaml

from omc.helpers import GetOptions, OmcError
from omc.operators import (
    get_cluster_service_versions,
    get_install_plans,
    get_subscriptions,
)


def _write(root: Path, namespace: str, kind: str, name: str, obj: dict) -> None:
    directory = root / "namespaces" / namespace / "operators.coreos.com" / kind
    directory.mkdir(parents=True, exist_ok=True)
    (directory / f"{name}.yaml").write_text(yaml.safe_dump(obj))


def _subscription(name, namespace, package, labels=None):
    meta = {"name": name, "namespace": namespace}
    if labels:
        meta["labels"] = labels
    return {
        "apiVersion": "operators.coreos.com/v1alpha1",
        "kind": "Subscription",
        "metadata": meta,
        "spec": {"name": package, "source": "redhat-operators", "channel": "stable"},
    }


@pytest.fixture
def must_gather(tmp_path):
    _write(tmp_path, "ns1", "subscriptions", "sub-a",
           _subscription("sub-a", "ns1", "pkg-a", {"app": "alpha"}))
    _write(tmp_path, "ns1", "subscriptions", "sub-b",
           _subscription("sub-b", "ns1", "pkg-b", {"app": "beta"}))
    _write(tmp_path, "ns2", "subscriptions", "sub-c",
           _subscription("sub-c", "ns2", "pkg-c"))
    _write(tmp_path, "ns1", "installplans", "install-x", {
        "metadata": {"name": "install-x", "namespace": "ns1"},
        "spec": {
            "clusterServiceVersionNames": ["csv-one", "csv-two"],
            "approval": "Automatic",
            "approved": True,
        },
    })
    _write(tmp_path, "ns1", "clusterserviceversions", "csv-one", {
        "metadata": {"name": "csv-one", "namespace": "ns1"},
        "spec": {"displayName": "Operator One", "version": "1.2.3", "replaces": "csv-zero"},
        "status": {"phase": "Succeeded"},
    })
    return tmp_path


def _lines(out: str) -> list[list[str]]:
    return [line.split() for line in out.splitlines()]


def test_subscription_table(must_gather):
    out = io.StringIO()
    empty = get_subscriptions(str(must_gather), GetOptions(namespace="ns1"), out)
    assert empty is False
    lines = _lines(out.getvalue())
    assert lines[0] == ["NAME", "PACKAGE", "SOURCE", "CHANNEL"]
    assert lines[1] == ["sub-a", "pkg-a", "redhat-operators", "stable"]
    assert lines[2][0] == "sub-b"
    assert len(lines) == 3


def test_subscription_all_namespaces(must_gather):
    out = io.StringIO()
    get_subscriptions(str(must_gather), GetOptions(all_namespaces=True), out)
    lines = _lines(out.getvalue())
    assert lines[0][0] == "NAMESPACE"
    assert [line[:2] for line in lines[1:]] == [
        ["ns1", "sub-a"], ["ns1", "sub-b"], ["ns2", "sub-c"]
    ]


def test_selector_filters(must_gather):
    out = io.StringIO()
    get_subscriptions(str(must_gather), GetOptions(namespace="ns1", selector="app=beta"), out)
    names = [line[0] for line in _lines(out.getvalue())[1:]]
    assert names == ["sub-b"]


def test_show_labels_column(must_gather):
    out = io.StringIO()
    get_subscriptions(
        str(must_gather), GetOptions(namespace="ns1", show_labels=True), out
    )
    lines = _lines(out.getvalue())
    assert lines[0][-1] == "LABELS"
    assert lines[1][-1] == "app=alpha"


def test_no_resources_message(must_gather):
    out = io.StringIO()
    empty = get_subscriptions(str(must_gather), GetOptions(namespace="missing"), out)
    assert empty is True
    assert out.getvalue() == "No resources found in missing namespace.\n"


def test_no_resources_silent_for_all_resources(must_gather):
    out = io.StringIO()
    empty = get_install_plans(
        str(must_gather), GetOptions(namespace="ns2", all_resources=True), out
    )
    assert empty is True
    assert out.getvalue() == ""


def test_name_output(must_gather):
    out = io.StringIO()
    get_subscriptions(str(must_gather), GetOptions(namespace="ns1", output="name"), out)
    lines = out.getvalue().splitlines()
    assert lines[:2] == [
        "subscription.operators.coreos.com/sub-a",
        "subscription.operators.coreos.com/sub-b",
    ]


def test_json_single_resource_round_trip(must_gather):
    out = io.StringIO()
    get_subscriptions(
        str(must_gather),
        GetOptions(namespace="ns1", resource_name="sub-b", output="json"),
        out,
    )
    assert json.loads(out.getvalue()) == _subscription(
        "sub-b", "ns1", "pkg-b", {"app": "beta"}
    )


def test_yaml_list(must_gather):
    out = io.StringIO()
    get_subscriptions(str(must_gather), GetOptions(namespace="ns1", output="yaml"), out)
    document = yaml.safe_load(out.getvalue())
    assert [i["metadata"]["name"] for i in document["items"]] == ["sub-a", "sub-b"]
    assert document["metadata"] == {}


def test_jsonpath_output(must_gather):
    out = io.StringIO()
    get_subscriptions(
        str(must_gather),
        GetOptions(
            namespace="ns1",
            resource_name="sub-a",
            output="jsonpath={.spec.name}",
            jsonpath_template="{.spec.name}",
        ),
        out,
    )
    assert out.getvalue() == "pkg-a"


def test_jsonpath_parse_error(must_gather):
    with pytest.raises(OmcError):
        get_subscriptions(
            str(must_gather),
            GetOptions(
                namespace="ns1",
                output="jsonpath={range .items[*]}",
                jsonpath_template="{range .items[*]}",
            ),
            io.StringIO(),
        )


def test_install_plan_row(must_gather):
    out = io.StringIO()
    get_install_plans(str(must_gather), GetOptions(namespace="ns1"), out)
    lines = out.getvalue().splitlines()
    assert lines[0].split() == ["NAME", "CSV", "APPROVAL", "APPROVED"]
    assert "[csv-one, csv-two]" in lines[1]
    assert lines[1].split()[-2:] == ["Automatic", "true"]


def test_cluster_service_version_row(must_gather):
    out = io.StringIO()
    get_cluster_service_versions(str(must_gather), GetOptions(namespace="ns1"), out)
    lines = out.getvalue().splitlines()
    assert lines[0].split() == ["NAME", "DISPLAY", "VERSION", "REPLACES", "PHASE"]
    assert "Operator One" in lines[1]
    assert lines[1].split()[-3:] == ["1.2.3", "csv-zero", "Succeeded"]


def test_invalid_yaml_raises(must_gather):
    directory = must_gather / "namespaces" / "ns1" / "operators.coreos.com" / "subscriptions"
    (directory / "broken.yaml").write_text("key: [unclosed\n")
    with pytest.raises(OmcError, match="Error when trying to unmarshal file"):
        get_subscriptions(str(must_gather), GetOptions(namespace="ns1"), io.StringIO())