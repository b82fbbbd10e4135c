import pytest

from pkgdevtools.policy_templates import (
    PolicyTemplateContent,
    PolicyTemplateInput,
    adjust_data_stream_names_for_input_description,
    to_policy_template_description,
    to_policy_template_description_for_two_types,
    to_policy_template_input_description,
    to_policy_template_input_title,
    to_policy_template_title,
    to_policy_template_title_for_two_types,
    update_policy_template,
)
from pkgdevtools.variables import Stream, Variable


def test_adjust_names_replaces_log():
    assert adjust_data_stream_names_for_input_description(["log", "access"]) == [
        "application",
        "access",
    ]


def test_single_type_title_and_description():
    assert to_policy_template_title("Nginx", "logs") == "Nginx logs"
    assert to_policy_template_description("Nginx", "logs") == "Collect logs from Nginx instances"


def test_two_types_title_and_description():
    title = to_policy_template_title_for_two_types("Nginx", "logs", "metrics")
    assert title.startswith("Nginx logs")
    assert title.endswith("metrics")
    description = to_policy_template_description_for_two_types("Nginx", "logs", "metrics")
    assert description.startswith("Collect logs and metrics")
    assert description.endswith("Nginx instances")


def test_input_title_lists_data_streams():
    title = to_policy_template_input_title("Nginx", "logs", ["access", "error", "log"], "logs")
    assert title == "Collect Nginx access, error and application logs"


def test_input_title_single_data_stream_with_input_suffix():
    title = to_policy_template_input_title("Nginx", "logs", ["access"], "httpjson")
    assert title == "Collect Nginx access logs (input: httpjson)"


def test_input_description_lists_data_streams():
    description = to_policy_template_input_description(
        "Nginx", "metrics", ["status", "stubstatus"], "nginx/metrics"
    )
    assert description == "Collecting status and stubstatus metrics from Nginx instances"


def test_input_title_needs_data_streams():
    with pytest.raises(ValueError):
        to_policy_template_input_title("Nginx", "logs", [], "logs")


def test_update_policy_template_collects_data_streams():
    paths = Variable(name="paths", type="text")
    content = update_policy_template(
        PolicyTemplateContent(),
        "nginx",
        "Nginx",
        "logs",
        [("access", [Stream(input="logfile")]), ("error", [Stream(input="logfile")])],
        {"logfile": [paths]},
    )
    item = content.inputs["logfile"]
    assert item.data_stream_names == ["access", "error"]
    assert item.vars == [paths]
    assert item.package_type == "logs"
    assert content.module_name == "nginx"


def test_update_keeps_existing_inputs_and_original_untouched():
    first = update_policy_template(
        PolicyTemplateContent(), "nginx", "Nginx", "logs",
        {"access": [Stream(input="logfile")]}, {},
    )
    second = update_policy_template(
        first, "nginx", "Nginx", "metrics",
        {"status": [Stream(input="nginx/metrics")]}, {},
    )
    assert set(second.inputs) == {"logfile", "nginx/metrics"}
    assert second.inputs["nginx/metrics"].package_type == "metrics"
    assert "nginx/metrics" not in first.inputs


def test_to_metadata_policy_templates_two_types():
    content = PolicyTemplateContent(
        module_name="nginx",
        module_title="Nginx",
        inputs={
            "nginx/metrics": PolicyTemplateInput(
                package_type="metrics", input_type="nginx/metrics", data_stream_names=["status"]
            ),
            "logfile": PolicyTemplateInput(
                package_type="logs", input_type="logfile", data_stream_names=["access"]
            ),
        },
    )
    [template] = content.to_metadata_policy_templates()
    assert template.name == "nginx"
    assert template.title == to_policy_template_title_for_two_types("Nginx", "logs", "metrics")
    assert [item.type for item in template.inputs] == ["logfile", "nginx/metrics"]
    assert template.inputs[0].title == to_policy_template_input_title(
        "Nginx", "logs", ["access"], "logfile"
    )


def test_to_metadata_policy_templates_single_type():
    content = PolicyTemplateContent(
        module_name="redis",
        module_title="Redis",
        inputs={
            "redis/metrics": PolicyTemplateInput(
                package_type="metrics", input_type="redis/metrics", data_stream_names=["info"]
            )
        },
    )
    [template] = content.to_metadata_policy_templates()
    assert template.title == to_policy_template_title("Redis", "metrics")
    assert template.description == to_policy_template_description("Redis", "metrics")


def test_to_metadata_policy_templates_without_inputs():
    with pytest.raises(ValueError):
        PolicyTemplateContent(module_name="x").to_metadata_policy_templates()