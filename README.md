# omc

`omc` is a Python library for reading an OpenShift must-gather directory the
way you would query a live cluster: list resources, print pod logs, compare
and extract machine configs, and keep track of several must-gathers and the
namespace (project) selected in each.

## Installation

```
pip install .
```

Install the test extra with `pip install .[test]`.

## Errors

Functions report user-facing failures by raising `omc.helpers.OmcError`; its
message is meant to be shown as is. Template problems in the JSONPath engine
raise `omc.jsonpath.JSONPathError`.

## Must-gathers and projects (`omc.contexts`, `omc.config`)

The configuration file is JSON holding a list of contexts (`Context`: `id`,
`path`, `current`, `project`) plus `use_local_crds` and `diff_command`.
`load_config`, `save_config` and `create_config_file` read and write it;
`Config.current_context()` returns the context marked current.

```python
from omc.contexts import find_must_gather_in, use_context, project_default

find_must_gather_in("/data/case-123")           # the directory holding "namespaces", ending in "/"
config = use_context("/data/case-123", "omc.json", "prod")
messages = project_default("omc.json", "/data/case-123/must-gather", "openshift-etcd")
```

`use_context` marks the must-gather (matched by path or id) as current, adding
it with project `default` and a random eight-character id when it is new, and
writes the file. `project_default` switches the current context's project,
raising `OmcError` if the namespace is not in the must-gather, and returns the
messages to show; with an empty project it only reports the current one.

## Listing resources

Listing functions take the must-gather root, a `GetOptions` and an optional
text stream (standard output by default). `GetOptions` carries `namespace`,
`resource_name`, `all_namespaces`, `output` (`""`, `wide`, `name`, `yaml`,
`json` or `jsonpath=...`), `show_labels`, `jsonpath_template`, `selector`
(`key=value`, `key==value`, `key!=value`, comma separated) and
`all_resources`.

```python
from omc.helpers import GetOptions, get_json_template
from omc.operators import get_subscriptions

output = "jsonpath={.items[*].metadata.name}"
opts = GetOptions(namespace="openshift-logging", output=output,
                  jsonpath_template=get_json_template(output))
get_subscriptions("/data/must-gather", opts)
```

- `omc.operators`: `get_cluster_service_versions`, `get_install_plans`,
  `get_subscriptions`. They return `True` when nothing was found (and print
  `No resources found in <namespace> namespace.` unless `all_resources` is set).
- `omc.rbac`: `get_cluster_role_bindings`, `get_cluster_roles`.
- `omc.storage`: `get_storage_classes`; the default class is shown as
  `<name> (default)`.

## Arbitrary objects (`omc.uget`)

`uget(objects_path, names, columns_path, kind, output, selector, show_labels, stream)`
lists the Kubernetes objects in a YAML file or in the files of a directory,
expanding `List` objects. `kind` filters by comma-separated kinds
(case-insensitive). Without a columns file the table shows kind and name; a
columns file (read by `load_columns`) holds `columns`, each with `name`,
`jsonPath` and optionally `type: date`, which shows the object's age instead.
It raises `OmcError("No resources found.")` when nothing matches.

## Pod logs (`omc.logs`, `omc.crilog`)

```python
from omc.logs import resolve_must_gather_root, parse_logs_args, logs_pods

root = resolve_must_gather_root("/data/must-gather")
pod, container = parse_logs_args(["pod/etcd-master-0", "etcd"])
logs_pods(root, "openshift-etcd", pod, container, previous=False,
          log_levels=["error", "warning"])
```

`all_containers=True` prints every container's log. With `log_levels`
(`info`, `warning`, `error`) only CRI log lines whose stream field starts with
the matching letter are kept; `parse_cri_log`, `filter_log_lines` and
`filter_cat_logs` do this filtering on their own.

## Machine configs (`omc.machineconfig`)

- `diff_machine_configs(root, first, second, diff_cmd)` runs the diff program
  (vimdiff when none is given) on the two machine config files.
- `extract_machine_config(root, name)` writes the files stored in the ignition
  config under `<root>/extracted-machine-configs/<name>/storage/files` and
  returns their paths. `decode_data_url` and `extract_ignition_storage` are
  the building blocks.

## Upgrading (`omc.upgrade`)

`check_releases(repo_name, current_tag)` fetches the published releases and
describes those newer than the current tag; `available_updates` does the
comparison on a list of releases. `upgrade_binary(repo_name, desired_version, ...)`
lists updates when no version is given, otherwise validates the version
(`latest` or `vX.Y.Z`, not older than the current one) and downloads the
Linux or macOS asset over the executable with a progress bar.

## JSONPath (`omc.jsonpath`)

`render_jsonpath(data, template)` renders kubectl-style templates with
fields, indexes, slices, wildcards, recursive descent, filters, `range` /
`end` and quoted text. Output stops at the first missing key.

## What the package does not do

There is no `omc` command-line program: nothing parses arguments, creates
`~/.omc`, or picks the current must-gather and namespace for you. Callers
pass the must-gather root, namespace and configuration file path explicitly.
Only the resource kinds listed above can be listed; there is no general
`get` or `describe` over other kinds, and no alert or etcd inspection.