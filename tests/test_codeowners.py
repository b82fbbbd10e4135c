import pytest

from pkgdevtools.codeowners import (
    CodeownersError,
    GithubOwners,
    check,
    package_owners,
    read_github_owners,
    validate_packages,
)

FILES = {
    "testdata/devexp/manifest.yml": "name: devexp\nowner:\n  github: elastic/ecosystem\n",
    "testdata/noowner/manifest.yml": "name: noowner\n",
    "testdata/CODEOWNERS-valid": (
        "# comment\n/testdata/devexp @elastic/ecosystem\n/testdata/noowner @elastic/ecosystem\n"
    ),
    "testdata/CODEOWNERS-multiple-owners": "/testdata/devexp @elastic/ecosystem @elastic/foobar\n",
    "testdata/CODEOWNERS-no-owner": "/testdata/devexp\n",
    "testdata/CODEOWNERS-empty": "",
    "testdata/CODEOWNERS-wrong-devexp": "/testdata/devexp @elastic/foobar\n",
    "testdata/CODEOWNERS-precedence": (
        "/testdata/devexp @elastic/foobar\n/testdata/devexp @elastic/ecosystem\n"
    ),
    "testdata/CODEOWNERS-wrong-precedence": (
        "/testdata/devexp @elastic/ecosystem\n/testdata/devexp @elastic/foobar\n"
    ),
    "testdata/CODEOWNERS-invalid-override": (
        "/testdata/devexp @elastic/ecosystem\n/testdata/devexp\n"
    ),
    "testdata/CODEOWNERS-invalid-override-wildcard": (
        "/testdata/devexp @elastic/ecosystem\n/testdata/*\n"
    ),
    "testdata/test_packages/package_1/manifest.yml": "owner:\n  github: elastic/team1\n",
    "testdata/test_packages/package_1/data_stream/stream1/manifest.yml": "title: one\n",
    "testdata/test_packages/package_1/data_stream/stream2/manifest.yml": "title: two\n",
    "testdata/test_packages/package_2/manifest.yml": "owner:\n  github: elastic/team2\n",
    "testdata/CODEOWNERS-streams-missing-owners": (
        "/testdata/test_packages/package_1 @elastic/team1\n"
        "/testdata/test_packages/package_1/data_stream/stream1 @elastic/team1\n"
        "/testdata/test_packages/package_2 @elastic/team2\n"
    ),
    "testdata/CODEOWNERS-streams-multiple-owners": (
        "/testdata/test_packages/package_1 @elastic/team1\n"
        "/testdata/test_packages/package_1/data_stream/stream1 @elastic/team1 @elastic/team2\n"
        "/testdata/test_packages/package_1/data_stream/stream2 @elastic/team1\n"
        "/testdata/test_packages/package_2 @elastic/team2\n"
    ),
    "testdata/CODEOWNERS-streams-valid": (
        "/testdata/test_packages/package_1 @elastic/team1\n"
        "/testdata/test_packages/package_1/data_stream/stream1 @elastic/team1\n"
        "/testdata/test_packages/package_1/data_stream/stream2 @elastic/team2\n"
        "/testdata/test_packages/package_2 @elastic/team2\n"
    ),
    "testdata/CODEOWNERS-owners-packages-datastreams": (
        "/packages/aws @elastic/obs-infraobs-integrations @elastic/obs-ds-hosted-services "
        "@elastic/security-service-integrations\n"
        "/packages/aws/data_stream/cloudtrail @elastic/obs-infraobs-integrations\n"
        "/packages/aws/data_stream/cloudwatch_logs @elastic/obs-ds-hosted-services\n"
    ),
}


@pytest.fixture
def owners_tree(tmp_path, monkeypatch):
    for rel, text in FILES.items():
        target = tmp_path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.mark.parametrize(
    "codeowners_path, manifest_path, valid",
    [
        ("testdata/CODEOWNERS-valid", "testdata/devexp/manifest.yml", True),
        ("testdata/CODEOWNERS-valid", "testdata/noowner/manifest.yml", False),
        ("testdata/CODEOWNERS-multiple-owners", "testdata/devexp/manifest.yml", True),
        ("testdata/CODEOWNERS-no-owner", "testdata/devexp/manifest.yml", False),
        ("testdata/CODEOWNERS-empty", "testdata/devexp/manifest.yml", False),
        ("testdata/CODEOWNERS-wrong-devexp", "testdata/devexp/manifest.yml", False),
        ("testdata/CODEOWNERS-precedence", "testdata/devexp/manifest.yml", True),
        ("testdata/CODEOWNERS-wrong-precedence", "testdata/devexp/manifest.yml", False),
    ],
)
def test_check_manifest(owners_tree, codeowners_path, manifest_path, valid):
    owners = read_github_owners(codeowners_path)
    if valid:
        assert owners.check_manifest(manifest_path) == "@elastic/ecosystem"
    else:
        with pytest.raises(CodeownersError):
            owners.check_manifest(manifest_path)


@pytest.mark.parametrize(
    "codeowners_path, valid",
    [
        ("testdata/CODEOWNERS-streams-missing-owners", False),
        ("testdata/CODEOWNERS-streams-multiple-owners", False),
        ("testdata/CODEOWNERS-streams-valid", True),
    ],
)
def test_validate_packages(owners_tree, codeowners_path, valid):
    owners = read_github_owners(codeowners_path)
    if valid:
        assert validate_packages(owners, "testdata/test_packages") == ["package_1", "package_2"]
    else:
        with pytest.raises(CodeownersError):
            validate_packages(owners, "testdata/test_packages")


@pytest.mark.parametrize(
    "codeowners_path, expected",
    [
        (
            "testdata/CODEOWNERS-valid",
            {
                "/testdata/devexp": ["@elastic/ecosystem"],
                "/testdata/noowner": ["@elastic/ecosystem"],
            },
        ),
        ("testdata/CODEOWNERS-no-owner", {}),
        (
            "testdata/CODEOWNERS-multiple-owners",
            {"/testdata/devexp": ["@elastic/ecosystem", "@elastic/foobar"]},
        ),
        ("testdata/CODEOWNERS-precedence", {"/testdata/devexp": ["@elastic/ecosystem"]}),
    ],
)
def test_read_github_owners_valid(owners_tree, codeowners_path, expected):
    owners = read_github_owners(codeowners_path)
    assert owners.owners == expected
    assert owners.path == codeowners_path


@pytest.mark.parametrize(
    "codeowners_path",
    [
        "notexsists",
        "testdata/CODEOWNERS-invalid-override",
        "testdata/CODEOWNERS-invalid-override-wildcard",
    ],
)
def test_read_github_owners_invalid(owners_tree, codeowners_path):
    with pytest.raises(CodeownersError):
        read_github_owners(codeowners_path)


@pytest.mark.parametrize(
    "package_name, data_stream, expected",
    [
        (
            "aws",
            "",
            [
                "@elastic/obs-infraobs-integrations",
                "@elastic/obs-ds-hosted-services",
                "@elastic/security-service-integrations",
            ],
        ),
        ("aws", "cloudtrail", ["@elastic/obs-infraobs-integrations"]),
        ("aws", "cloudwatch_logs", ["@elastic/obs-ds-hosted-services"]),
        (
            "aws",
            "other",
            [
                "@elastic/obs-infraobs-integrations",
                "@elastic/obs-ds-hosted-services",
                "@elastic/security-service-integrations",
            ],
        ),
    ],
)
def test_package_owners(owners_tree, package_name, data_stream, expected):
    owners = package_owners(
        package_name, data_stream, "testdata/CODEOWNERS-owners-packages-datastreams"
    )
    assert owners == expected


def test_package_owners_package_not_found(owners_tree):
    with pytest.raises(CodeownersError, match="no owner found for package other"):
        package_owners("other", "", "testdata/CODEOWNERS-owners-packages-datastreams")


def test_package_owners_missing_file(owners_tree):
    with pytest.raises(CodeownersError, match="failed to read CODEOWNERS file"):
        package_owners("aws", "", "testdata/missing")


@pytest.mark.parametrize(
    "field, message",
    [
        ("@elastic/ecosystem", "rule with owner without path"),
        ("testdata", "unexpected field found"),
    ],
)
def test_check_single_field_rejects(field, message):
    owners = GithubOwners(owners={}, path="CODEOWNERS")
    with pytest.raises(CodeownersError, match=message):
        owners.check_single_field(field)


def test_check_single_field_prefix_of_existing_rule():
    owners = GithubOwners(owners={"/packages/aws/data_stream": ["@elastic/team1"]})
    with pytest.raises(CodeownersError, match="would remove owners"):
        owners.check_single_field("/packages/aws")


def test_single_path_line_does_not_add_owner(owners_tree):
    (owners_tree / "testdata/CODEOWNERS-exclude").write_text(
        "/testdata/devexp @elastic/ecosystem\n/other/path\n", encoding="utf-8"
    )
    owners = read_github_owners("testdata/CODEOWNERS-exclude")
    assert owners.owners == {"/testdata/devexp": ["@elastic/ecosystem"]}


def test_validate_empty_packages_dir(owners_tree):
    (owners_tree / "empty").mkdir()
    owners = read_github_owners("testdata/CODEOWNERS-valid")
    with pytest.raises(CodeownersError, match="no packages found"):
        validate_packages(owners, "empty")
    assert validate_packages(GithubOwners(), "empty") == []


def test_check_uses_default_locations(owners_tree):
    (owners_tree / ".github").mkdir()
    (owners_tree / ".github/CODEOWNERS").write_text(
        "/packages/devexp @elastic/ecosystem\n", encoding="utf-8"
    )
    (owners_tree / "packages/devexp").mkdir(parents=True)
    (owners_tree / "packages/devexp/manifest.yml").write_text(
        "owner:\n  github: elastic/ecosystem\n", encoding="utf-8"
    )
    assert check() == ["devexp"]