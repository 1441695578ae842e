#!/usr/bin/env python3
import os

import aws_cdk as cdk

from asg_a_record.asg_a_record_stack import AsgARecordStack


app = cdk.App()
AsgARecordStack(
    app,
    app.node.try_get_context("StackName") or "AsgARecordStack",
    env=cdk.Environment(
        account=os.getenv("CDK_DEFAULT_ACCOUNT"), region=os.getenv("CDK_DEFAULT_REGION")
    ),
)

app.synth()
