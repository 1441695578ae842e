import os
import json
import logging
from dataclasses import dataclass
from datetime import datetime
import boto3

from errors import (
    InvalidInputError,
    RecordValueError,
    ScalingGroupNotFoundError,
    InstanceNotFoundError,
    ZoneNotFoundError,
)
from hostname import extract_tag, generate_hostname
from lookups import ScalingGroupLookup, InstanceLookup, ZoneLookup, RecordChanger

LAUNCH_EVENT = "autoscaling:EC2_INSTANCE_LAUNCH"
TEST_EVENT = "autoscaling:TEST_NOTIFICATION"

ZONE_TAG_KEY = "massive:DNS-SD:Route53:zone"
RECORD_TTL = 60

logger = logging.getLogger(__name__)


def stringify(o):
    # hack around the fact that datetime does not have a JSON converter
    return o.__str__() if isinstance(o, datetime) else o


@dataclass(frozen=True)
class Notification:
    instance_id: str
    scaling_group_name: str
    event_type: str

    @classmethod
    def from_body(cls, body):
        """build from the decoded body of an autoscaling SNS notification"""

        missing = [
            key
            for key in ("EC2InstanceId", "AutoScalingGroupName", "Event")
            if not body.get(key) or not isinstance(body[key], str)
        ]
        if missing:
            raise InvalidInputError(
                "message is missing or has non-string " + ", ".join(missing)
            )

        return cls(
            instance_id=body["EC2InstanceId"],
            scaling_group_name=body["AutoScalingGroupName"],
            event_type=body["Event"],
        )


def build_change(action, fqdn, private_ip, ttl=RECORD_TTL):
    return {
        "Action": action,
        "ResourceRecordSet": {
            "Name": fqdn,
            "Type": "A",
            "TTL": ttl,
            "ResourceRecords": [{"Value": private_ip}],
        },
    }


class Reactor:
    """Keeps an A record in step with the lifecycle of an autoscaled instance.

    The four collaborators are narrow wrappers around the AutoScaling, EC2 and
    Route53 APIs; anything with the same `lookup`/`submit` methods will do.
    """

    def __init__(
        self,
        scaling_groups=None,
        instances=None,
        zones=None,
        records=None,
        zone_tag_key=ZONE_TAG_KEY,
        ttl=RECORD_TTL,
    ):
        self.scaling_groups = scaling_groups
        self.instances = instances
        self.zones = zones
        self.records = records
        self.zone_tag_key = zone_tag_key
        self.ttl = int(ttl)

    @classmethod
    def from_session(cls, session=None, **kwargs):
        session = session or boto3.session.Session()
        route53_client = session.client("route53")

        return cls(
            scaling_groups=ScalingGroupLookup(session.client("autoscaling")),
            instances=InstanceLookup(session.client("ec2")),
            zones=ZoneLookup(route53_client),
            records=RecordChanger(route53_client),
            **kwargs,
        )

    def handle(self, event):
        """process the first record of an SNS event, return the instance id"""

        records = event.get("Records") if isinstance(event, dict) else None
        if not records or not isinstance(records, list):
            raise InvalidInputError("no SNS message found")

        record = records[0] if isinstance(records[0], dict) else {}
        sns_record = record.get("Sns")
        message = sns_record.get("Message") if isinstance(sns_record, dict) else None
        if not message or not isinstance(message, str):
            raise InvalidInputError("no SNS message found")

        try:
            body = json.loads(message)
        except ValueError as exc:
            raise InvalidInputError(f"SNS message is not valid JSON: {exc}") from exc

        if not isinstance(body, dict):
            raise InvalidInputError("SNS message is not a JSON object")

        # sent once when the notification configuration is attached
        if body.get("Event") == TEST_EVENT:
            logger.info(f"ignoring test notification for {body.get('AutoScalingGroupName')}")
            return None

        notification = Notification.from_body(body)
        return self.process_event(notification)

    def process_event(self, notification):
        logger.info(
            f"{notification.event_type} for {notification.instance_id} "
            + f"in {notification.scaling_group_name}"
        )

        asg = self.scaling_groups.lookup(notification.scaling_group_name)
        if asg is None:
            raise ScalingGroupNotFoundError(
                f"auto scaling group {notification.scaling_group_name} not found"
            )

        instance = self.instances.lookup(notification.instance_id)
        if instance is None:
            raise InstanceNotFoundError(
                f"instance {notification.instance_id} not found"
            )

        zone_id = extract_tag(self.zone_tag_key, asg.get("Tags"))
        if not zone_id:
            raise ZoneNotFoundError(
                f"auto scaling group {notification.scaling_group_name} "
                + f"has no {self.zone_tag_key} tag"
            )

        zone = self.zones.lookup(zone_id)

        hostname = generate_hostname(instance)
        fqdn = ".".join([hostname, zone["Name"]])

        private_ip = instance.get("PrivateIpAddress")
        if not private_ip:
            raise RecordValueError(
                f"instance {notification.instance_id} has no private IP address"
            )

        action = "UPSERT" if notification.event_type == LAUNCH_EVENT else "DELETE"
        change = build_change(action, fqdn, private_ip, ttl=self.ttl)

        logger.info(f"{action} {fqdn} A {private_ip} in {zone_id}")
        change_info = self.records.submit(zone_id, change)
        logger.info(json.dumps(change_info, default=stringify))

        return notification.instance_id


def build_reactor():
    return Reactor.from_session(
        zone_tag_key=os.environ.get("ZONE_TAG_KEY", ZONE_TAG_KEY),
        ttl=os.environ.get("RECORD_TTL", RECORD_TTL),
    )


# clients are created once per execution environment and reused while warm
reactor = build_reactor()


def lambda_handler(event, context):
    root_logger = logging.getLogger()
    root_logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())

    logger.info(json.dumps(event, default=stringify))

    return reactor.handle(event)
