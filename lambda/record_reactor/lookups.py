import logging
import boto3
from botocore.exceptions import ClientError


logger = logging.getLogger(__name__)


class ScalingGroupLookup:
    def __init__(self, autoscaling_client=None):
        self.client = autoscaling_client or boto3.client("autoscaling")

    def lookup(self, name):
        """return the scaling group named `name`, or None if there isn't one"""

        try:
            response = self.client.describe_auto_scaling_groups(
                AutoScalingGroupNames=[name]
            )
        except ClientError as exc:
            logger.error(f"could not describe auto scaling group {name}: {exc}")
            raise exc

        groups = response["AutoScalingGroups"]
        return groups[0] if groups else None


class InstanceLookup:
    def __init__(self, ec2_client=None):
        self.client = ec2_client or boto3.client("ec2")

    def lookup(self, instance_id):
        """return the instance with id `instance_id`, or None if there isn't one"""

        try:
            response = self.client.describe_instances(
                Filters=[{"Name": "instance-id", "Values": [instance_id]}]
            )
        except ClientError as exc:
            logger.error(f"could not describe instance {instance_id}: {exc}")
            raise exc

        # there can only be one
        for reservation in response["Reservations"]:
            if reservation["Instances"]:
                return reservation["Instances"][0]
        return None


class ZoneLookup:
    def __init__(self, route53_client=None):
        self.client = route53_client or boto3.client("route53")

    def lookup(self, zone_id):
        try:
            response = self.client.get_hosted_zone(Id=zone_id)
        except ClientError as exc:
            logger.error(f"could not get hosted zone {zone_id}: {exc}")
            raise exc

        return response["HostedZone"]


class RecordChanger:
    def __init__(self, route53_client=None):
        self.client = route53_client or boto3.client("route53")

    def submit(self, zone_id, change):
        """send a single change to the zone and return the ChangeInfo"""

        record_set = change["ResourceRecordSet"]
        try:
            response = self.client.change_resource_record_sets(
                HostedZoneId=zone_id,
                ChangeBatch={
                    "Comment": "updated by asg-a-record",
                    "Changes": [change],
                },
            )
        except ClientError as exc:
            logger.error(
                f"could not {change['Action']} {record_set['Name']} in {zone_id}: {exc}"
            )
            raise exc

        return response["ChangeInfo"]
