from os.path import dirname, join

from aws_cdk import (
    CfnOutput,
    Duration,
    Stack,
    Tags,
    aws_iam as iam,
    aws_lambda as _lambda,
    aws_logs as logs,
    aws_sns as sns,
    aws_sns_subscriptions as subscriptions,
    custom_resources as cr,
)
from constructs import Construct

ZONE_TAG_KEY = "massive:DNS-SD:Route53:zone"

NOTIFICATION_TYPES = [
    "autoscaling:EC2_INSTANCE_LAUNCH",
    "autoscaling:EC2_INSTANCE_LAUNCH_ERROR",
    "autoscaling:EC2_INSTANCE_TERMINATE",
    "autoscaling:EC2_INSTANCE_TERMINATE_ERROR",
]


class AsgARecordStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        permissions_boundary_policy_arn = self.node.try_get_context(
            "PermissionsBoundaryPolicyArn"
        )

        if not permissions_boundary_policy_arn:
            permissions_boundary_policy_name = self.node.try_get_context(
                "PermissionsBoundaryPolicyName"
            )
            if permissions_boundary_policy_name:
                permissions_boundary_policy_arn = self.format_arn(
                    service="iam",
                    region="",
                    account=self.account,
                    resource="policy",
                    resource_name=permissions_boundary_policy_name,
                )

        if permissions_boundary_policy_arn:
            policy = iam.ManagedPolicy.from_managed_policy_arn(
                self, "PermissionsBoundary", permissions_boundary_policy_arn
            )
            iam.PermissionsBoundary.of(self).apply(policy)

        # apply tags to everything in the stack
        app_tags = self.node.try_get_context("Tags") or {}
        for key, value in app_tags.items():
            Tags.of(self).add(key, value)

        zone_tag_key = self.node.try_get_context("ZoneTagKey") or ZONE_TAG_KEY
        record_ttl = self.node.try_get_context("RecordTtl") or 60
        log_level = self.node.try_get_context("LogLevel") or "INFO"

        # topic for autoscaling events
        self.scaling_topic = sns.Topic(self, "AsgScalingEvent")

        notifications_address = self.node.try_get_context("NotificationsEmailAddress")
        if notifications_address:
            self.scaling_topic.add_subscription(
                subscriptions.EmailSubscription(
                    email_address=notifications_address,
                )
            )

        # settings for all python Lambda functions
        lambda_root = join(dirname(dirname(__file__)), "lambda")
        lambda_principal = iam.ServicePrincipal("lambda.amazonaws.com")

        basic_lambda_policy = iam.ManagedPolicy.from_aws_managed_policy_name(
            "service-role/AWSLambdaBasicExecutionRole"
        )

        resource_name = "RecordReactorRole"
        reactor_role = iam.Role(
            self,
            resource_name,
            assumed_by=lambda_principal,
            managed_policies=[basic_lambda_policy],
            inline_policies={
                "RecordReactorPolicies": iam.PolicyDocument(
                    assign_sids=True,
                    statements=[
                        iam.PolicyStatement(
                            effect=iam.Effect.ALLOW,
                            actions=[
                                "autoscaling:DescribeAutoScalingGroups",
                                "ec2:DescribeInstances",
                            ],
                            resources=["*"],
                        ),
                        iam.PolicyStatement(
                            effect=iam.Effect.ALLOW,
                            actions=[
                                "route53:GetHostedZone",
                                "route53:ChangeResourceRecordSets",
                            ],
                            resources=[
                                self.format_arn(
                                    service="route53",
                                    region="",
                                    account="",
                                    resource="hostedzone",
                                    resource_name="*",
                                )
                            ],
                        ),
                    ],
                )
            },
        )

        self.reactor_lambda = _lambda.Function(
            self,
            "RecordReactor",
            code=_lambda.Code.from_asset(join(lambda_root, "record_reactor")),
            handler="record_reactor.lambda_handler",
            role=reactor_role,
            runtime=_lambda.Runtime.PYTHON_3_12,
            timeout=Duration.seconds(60),
            log_retention=logs.RetentionDays.ONE_WEEK,
            environment={
                "ZONE_TAG_KEY": zone_tag_key,
                "RECORD_TTL": str(record_ttl),
                "LOG_LEVEL": log_level,
            },
        )

        self.scaling_topic.add_subscription(
            subscriptions.LambdaSubscription(self.reactor_lambda)
        )

        asg_names = self.node.try_get_context("AutoScalingGroupNames") or []
        for index, asg_name in enumerate(asg_names):
            self.add_notification_configuration(
                construct_id=f"ScalingGroup{index}", asg_name=asg_name
            )

        CfnOutput(
            self,
            "ScalingTopicArn",
            value=self.scaling_topic.topic_arn,
            description="point auto scaling group notifications at this topic",
        )

    def add_notification_configuration(self, construct_id=None, asg_name=None):
        """send the lifecycle notifications of an existing ASG to the topic"""

        # https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk.custom_resources/AwsCustomResource.html

        asg_arn = (
            f"arn:{self.partition}:autoscaling:{self.region}:"
            + f"{self.account}:autoScalingGroup:*:autoScalingGroupName/{asg_name}"
        )

        put_config_sdk_call = cr.AwsSdkCall(
            service="AutoScaling",
            action="putNotificationConfiguration",
            parameters={
                "AutoScalingGroupName": asg_name,
                "TopicARN": self.scaling_topic.topic_arn,
                "NotificationTypes": NOTIFICATION_TYPES,
            },
            physical_resource_id=cr.PhysicalResourceId.of(
                construct_id + "PutNotificationSetting"
            ),
        )

        delete_config_sdk_call = cr.AwsSdkCall(
            service="AutoScaling",
            action="deleteNotificationConfiguration",
            parameters={
                "AutoScalingGroupName": asg_name,
                "TopicARN": self.scaling_topic.topic_arn,
            },
            physical_resource_id=cr.PhysicalResourceId.of(
                construct_id + "DeleteNotificationSetting"
            ),
        )

        config_resource = cr.AwsCustomResource(
            self,
            construct_id + "NotificationCustomResource",
            on_create=put_config_sdk_call,
            on_update=put_config_sdk_call,  # update just does the same thing as create.
            on_delete=delete_config_sdk_call,
            policy=cr.AwsCustomResourcePolicy.from_statements(
                [
                    iam.PolicyStatement(
                        effect=iam.Effect.ALLOW,
                        actions=[
                            "autoscaling:PutNotificationConfiguration",
                            "autoscaling:DeleteNotificationConfiguration",
                        ],
                        resources=[asg_arn],
                    ),
                ]
            ),
        )

        # the lambda must be subscribed before the ASG starts publishing
        config_resource.node.add_dependency(self.reactor_lambda)

        return config_resource
