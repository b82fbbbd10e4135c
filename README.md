# pkgdevtools

A library of helpers for maintaining a repository of integration packages.
It covers four areas:

- **Stack compatibility**: decide whether a package can run on a given
  stack version or subscription, based on its `manifest.yml`.
- **CODEOWNERS validation**: make sure every package and data stream has
  the owners that the `CODEOWNERS` file and the manifests declare.
- **Coverage merging**: combine several generic coverage XML reports into
  one.
- **Package import helpers**: building blocks for turning module
  definitions (fields, ingest pipelines, Kibana saved objects, stream
  variables, images and icons) into package content.

Install with `pip install .`, or `pip install .[test]` to run the tests
with pytest.

## Stack compatibility

```python
from pkgdevtools.stackcompat import (
    is_package_supported_in_stack_version,
    is_logsdb_supported_in_package,
    is_subscription_compatible,
    is_version_less_than_logsdb_ga,
    kibana_constraint_package,
    package_subscription,
)

manifest = "packages/nginx/manifest.yml"

is_package_supported_in_stack_version("8.18.0-SNAPSHOT", manifest)  # True / False
is_logsdb_supported_in_package(manifest)
is_version_less_than_logsdb_ga("8.12.0")  # True
package_subscription(manifest)            # "basic" when nothing is declared
is_subscription_compatible("trial", manifest)
```

- A `-SNAPSHOT` suffix on the stack version is ignored.
- A manifest without a `conditions.kibana.version` constraint is supported
  on every stack version; `kibana_constraint_package` returns `None` for it.
- The manifest reader (`pkgdevtools.manifest.read_package_manifest`)
  accepts both nested keys and dotted keys such as `kibana.version: "^8.0.0"`.
- `package_subscription` uses `conditions.elastic.subscription`, then
  `license`, then falls back to `"basic"`.
- `is_subscription_compatible` accepts every package on a `trial` stack and
  only basic packages on a `basic` stack. Any other stack subscription
  raises `SubscriptionError`.
- Unreadable manifests raise `ManifestError`; unparsable versions or
  constraints raise `VersionError`.

Version constraints use the usual caret, tilde, comparison, wildcard and
hyphen-range syntax, with `||` between alternatives:

```python
from pkgdevtools.versions import parse_constraint, parse_version

constraint = parse_constraint("^8.0.0 || ^9.0.0")
constraint.check(parse_version("8.18.0"))   # True
constraint.check("7.17.0")                  # False
```

## CODEOWNERS

```python
from pkgdevtools.codeowners import check, package_owners, read_github_owners, validate_packages

check()   # validates .github/CODEOWNERS against the packages/ directory

owners = read_github_owners("path/to/CODEOWNERS")
validate_packages(owners, "path/to/packages")

package_owners("aws", "cloudtrail", "path/to/CODEOWNERS")
# owners of /packages/aws/data_stream/cloudtrail if that rule exists,
# otherwise the owners of /packages/aws
```

Rules are checked as they are read: a rule naming a path without owners
may not take owners away from an earlier rule. For every package, the
owner in `owner.github` of its manifest must be among the owners of the
package's directory, and its data streams must either all lack explicit
owners or each have exactly one. Problems raise `CodeownersError` with a
message that names the offending path and owner.

## Coverage

```python
from pkgdevtools.coverage import merge_generic_coverage_files, read_generic_coverage

merge_generic_coverage_files(
    ["build/coverage-a.xml", "build/coverage-b.xml"],
    "build/coverage-merged.xml",
)
report = read_generic_coverage("build/coverage-merged.xml")
report.to_bytes()   # the report as indented XML
```

Files are matched by path and lines by line number; a line is covered in
the merged report if it is covered in any input. Errors raise
`CoverageError`.

## Package import helpers

The remaining modules are independent building blocks:

| Module | Purpose |
|---|---|
| `pkgdevtools.mapstr` | dotted-key access to nested dictionaries (`get_value`, `put_value`, `delete_value`, `flatten`) |
| `pkgdevtools.textutil` | splitting file names from their extension, removing repeats from lists |
| `pkgdevtools.fields` | loading, filtering and stripping field definitions |
| `pkgdevtools.kibana` | preparing and converting Kibana saved objects |
| `pkgdevtools.elasticsearch` | loading, adjusting and validating ingest pipelines |
| `pkgdevtools.docs` | README templates and exported-fields tables |
| `pkgdevtools.variables` | deriving and compacting stream variables |
| `pkgdevtools.agent` | generating agent stream templates for metricsets |
| `pkgdevtools.policy_templates` | building policy template metadata |
| `pkgdevtools.images` | collecting screenshots and icons and describing them |
| `pkgdevtools.svg` | reading the pixel size of SVG images |
| `pkgdevtools.changelog` | creating an initial changelog |

For example:

```python
from pkgdevtools.kibana import update_object_id

update_object_id("foo-ecs", "bar")   # 'bar-foo'
update_object_id("bar-foo", "bar")   # 'bar-foo-pkg'

from pkgdevtools.changelog import new_changelog

print(new_changelog("0.0.1").to_yaml())
```

Dashboards in the old export format need a running Kibana to migrate
them: `KibanaMigrator.migrate_dashboard_file` sends them to the
instance at `host_port` (default `http://localhost:5601`). Set
`skip_kibana=True` on the migrator to make `create_kibana_content` leave
Kibana objects out.

## What the package does not do

- It has no command-line program; every feature is called from Python.
- It offers the pieces of a package import, but no function that walks a
  modules directory and writes complete packages (manifests, data stream
  directories, copied images, rendered docs) to disk. Stream templates for
  log inputs are not generated either; only metricset templates are.