import os
import json
import pytest

# record_reactor builds its boto3 clients at import time
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

ZONE_TAG_KEY = "massive:DNS-SD:Route53:zone"


class FakeScalingGroups:
    def __init__(self, groups):
        self.groups = groups
        self.calls = []

    def lookup(self, name):
        self.calls.append(name)
        return self.groups.get(name)


class FakeInstances:
    def __init__(self, instances):
        self.instances = instances
        self.calls = []

    def lookup(self, instance_id):
        self.calls.append(instance_id)
        return self.instances.get(instance_id)


class FakeZones:
    def __init__(self, zones):
        self.zones = zones
        self.calls = []

    def lookup(self, zone_id):
        self.calls.append(zone_id)
        return self.zones[zone_id]


class FakeRecords:
    def __init__(self):
        self.calls = []

    def submit(self, zone_id, change):
        self.calls.append((zone_id, change))
        return {"Id": "/change/C1", "Status": "PENDING"}


def sns_event(message):
    return {"Records": [{"EventSource": "aws:sns", "Sns": {"Message": message}}]}


def scaling_message(event_type="autoscaling:EC2_INSTANCE_LAUNCH", **overrides):
    body = {
        "EC2InstanceId": "i-0e2132792885032a7",
        "AutoScalingGroupName": "web-asg",
        "Event": event_type,
    }
    body.update(overrides)
    return json.dumps(body)


@pytest.fixture
def scaling_groups():
    return FakeScalingGroups(
        {
            "web-asg": {
                "AutoScalingGroupName": "web-asg",
                "Tags": [
                    {"Key": "Name", "Value": "web"},
                    {"Key": ZONE_TAG_KEY, "Value": "Z123"},
                ],
            }
        }
    )


@pytest.fixture
def instances():
    return FakeInstances(
        {
            "i-0e2132792885032a7": {
                "InstanceId": "i-0e2132792885032a7",
                "PrivateIpAddress": "10.0.1.17",
                "Placement": {"AvailabilityZone": "us-east-1a"},
                "Tags": [],
            }
        }
    )


@pytest.fixture
def zones():
    return FakeZones({"Z123": {"Id": "/hostedzone/Z123", "Name": "example.internal."}})


@pytest.fixture
def records():
    return FakeRecords()


@pytest.fixture
def reactor(scaling_groups, instances, zones, records):
    from record_reactor import Reactor

    return Reactor(
        scaling_groups=scaling_groups,
        instances=instances,
        zones=zones,
        records=records,
    )
