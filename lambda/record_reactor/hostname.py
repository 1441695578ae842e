import re
from errors import HostnameError

PREFIX_TAG_KEY = "massive:DNS-SD:hostname-prefix"


def extract_tag(tag_key, tags):
    """return the value of the first tag whose key matches exactly, or None"""

    return next((tag["Value"] for tag in tags or [] if tag["Key"] == tag_key), None)


def short_location(availability_zone):
    # us-east-1a -> use1a, ap-southeast-2b -> aps2b
    match = re.match(r"^([a-z]+(?:-[a-z]+)*)-(\d+)([a-z])$", availability_zone or "")
    if not match:
        return None

    area, number, zone_letter = match.groups()
    initials = "".join(part[0] for part in area.split("-")[1:])
    return area.split("-")[0] + initials + number + zone_letter


def generate_hostname(instance):
    """Build a hostname from the identity of an EC2 instance.

    The name is `[<prefix>-]<location>-<id>` where the prefix comes from the
    hostname-prefix tag on the instance, the location is the abbreviated
    availability zone and the id is the instance id without its `i-`.
    """

    instance_id = instance.get("InstanceId")
    if not instance_id:
        raise HostnameError("instance has no InstanceId")

    parts = []

    # the prefix has to stay inside a single DNS label
    prefix = extract_tag(PREFIX_TAG_KEY, instance.get("Tags")) or ""
    prefix = re.sub(r"[^a-z0-9-]+", "-", prefix.lower()).strip("-")
    if prefix:
        parts.append(prefix)

    location = short_location(instance.get("Placement", {}).get("AvailabilityZone"))
    if location:
        parts.append(location)

    parts.append(re.sub(r"^i-", "", instance_id))

    return "-".join(parts).lower()
