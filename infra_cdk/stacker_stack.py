# infra_cdk/stacker_stack.py
from aws_cdk import (
    Stack,
    BundlingOptions,
    Duration,
    CfnParameter,
    aws_events as events,
    aws_events_targets as targets,
    aws_iam as iam,
    aws_lambda as _lambda,
    CfnOutput
)
from constructs import Construct


class StackerStack(Stack):
    """
    Deploys the account provisioning Lambda in the management (or Control
    Tower audit) account and wires it to the account-creation events.
    """

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # === Parameters for Deployment ===
        regions_param = CfnParameter(self, "Ec2SyncRegions", type="String", default="us-east-1",
            description="Comma-separated list of regions F5 AIP should sync EC2 data from.")

        execution_role_param = CfnParameter(self, "TargetAccountExecutionRole", type="String",
            default="AWSControlTowerExecution",
            description="Existing role in each new account that this function assumes.")

        target_role_param = CfnParameter(self, "TargetRoleName", type="String", default="f5-aip-integration",
            description="Name of the role created in each new account for F5 AIP.")

        api_key_param = CfnParameter(self, "ApiKeySsmParamName", type="String",
            description="Path of the SSM SecureString parameter holding the F5 AIP API key, without the leading slash (e.g. f5/aip/api-key).")

        org_id_param = CfnParameter(self, "F5OrgId", type="String",
            description="F5 AIP organization ID.")

        user_id_param = CfnParameter(self, "F5UserId", type="String",
            description="F5 AIP user ID that owns the API key.")

        api_path_param = CfnParameter(self, "F5ApiPath", type="String", default="https://api.threatstack.com",
            description="Base URL of the F5 AIP API.")

        # === Shared Dependency Layer ===
        # pip-installs lambda_layer/requirements.txt into python/ at synth time
        dependencies_layer = _lambda.LayerVersion(self, "DependenciesLayer",
            code=_lambda.Code.from_asset("lambda_layer",
                bundling=BundlingOptions(
                    image=_lambda.Runtime.PYTHON_3_12.bundling_image,
                    command=["bash", "-c", "pip install -r requirements.txt -t /asset-output/python"],
                ),
            ),
            compatible_runtimes=[_lambda.Runtime.PYTHON_3_12],
            description="requests, mohawk and pydantic for the provisioning function"
        )

        # === Provisioning Function ===
        provision_account_function = _lambda.Function(self, "ProvisionAccountFunction",
            runtime=_lambda.Runtime.PYTHON_3_12,
            code=_lambda.Code.from_asset("lambdas", exclude=["**/__pycache__"]),
            handler="provision_account.app.handler",
            timeout=Duration.minutes(1),
            environment={
                "F5_EC2_REGIONS": regions_param.value_as_string,
                "F5_TARGET_ACCOUNT_EXECUTION_ROLE": execution_role_param.value_as_string,
                "F5_TARGET_ROLE_NAME": target_role_param.value_as_string,
                "F5_API_KEY_PATH": f"/{api_key_param.value_as_string}",
                "F5_ORG_ID": org_id_param.value_as_string,
                "F5_USER_ID": user_id_param.value_as_string,
                "F5_API_PATH": api_path_param.value_as_string,
            },
            memory_size=256,
            layers=[dependencies_layer]
        )
        provision_account_function.add_to_role_policy(iam.PolicyStatement(actions=["ssm:GetParameter"], resources=[
            f"arn:aws:ssm:{self.region}:{self.account}:parameter/{api_key_param.value_as_string}"
        ]))
        provision_account_function.add_to_role_policy(iam.PolicyStatement(actions=["kms:Decrypt"], resources=["*"],
            conditions={"StringEquals": {"kms:ViaService": f"ssm.{self.region}.amazonaws.com"}}))
        provision_account_function.add_to_role_policy(iam.PolicyStatement(actions=["sts:AssumeRole"], resources=[
            f"arn:aws:iam::*:role/{execution_role_param.value_as_string}"
        ]))

        # === Triggers ===
        # Both events arrive as CloudTrail service events in the management account.
        new_account_rule = events.Rule(self, "NewAccountRule",
            description="New AWS account created through Control Tower or Organizations",
            event_pattern=events.EventPattern(
                source=["aws.controltower", "aws.organizations"],
                detail_type=["AWS Service Event via CloudTrail"],
                detail={
                    "eventName": ["CreateManagedAccount", "CreateAccountResult"],
                },
            ),
        )
        new_account_rule.add_target(targets.LambdaFunction(provision_account_function, retry_attempts=0))

        # === Outputs ===
        CfnOutput(self, "ProvisionAccountFunctionName", value=provision_account_function.function_name,
            description="Name of the account provisioning function.")
        CfnOutput(self, "NewAccountRuleArn", value=new_account_rule.rule_arn,
            description="EventBridge rule that triggers the function.")
