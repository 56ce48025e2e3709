# tests/test_stacker_stack.py
import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Match, Template

from infra_cdk.stacker_stack import StackerStack


@pytest.fixture(scope="module")
def template() -> Template:
    # Skip docker bundling of the dependency layer; the source dir is used as-is.
    app = cdk.App(context={"aws:cdk:bundling-stacks": []})
    stack = StackerStack(app, "StackerTest")
    return Template.from_stack(stack)


def test_function_points_at_provision_handler(template: Template):
    template.has_resource_properties("AWS::Lambda::Function", {
        "Handler": "provision_account.app.handler",
        "Runtime": "python3.12",
        "Environment": {
            "Variables": Match.object_like({
                "F5_EC2_REGIONS": Match.any_value(),
                "F5_TARGET_ACCOUNT_EXECUTION_ROLE": Match.any_value(),
                "F5_TARGET_ROLE_NAME": Match.any_value(),
                "F5_API_KEY_PATH": Match.any_value(),
                "F5_ORG_ID": Match.any_value(),
                "F5_USER_ID": Match.any_value(),
            })
        },
    })


def test_function_ships_with_dependency_layer(template: Template):
    template.resource_count_is("AWS::Lambda::LayerVersion", 1)
    template.has_resource_properties("AWS::Lambda::LayerVersion", {
        "CompatibleRuntimes": ["python3.12"],
    })
    template.has_resource_properties("AWS::Lambda::Function", {
        "Handler": "provision_account.app.handler",
        "Layers": [Match.any_value()],
    })


def test_rule_matches_both_account_creation_events(template: Template):
    template.has_resource_properties("AWS::Events::Rule", {
        "EventPattern": {
            "source": ["aws.controltower", "aws.organizations"],
            "detail": {"eventName": ["CreateManagedAccount", "CreateAccountResult"]},
        },
        "Targets": [Match.object_like({"RetryPolicy": {"MaximumRetryAttempts": 0}})],
    })
