"""Device classification from a user agent string."""

import re

from syncflow.domain.models.presence_record import DeviceClass

_MOBILE = re.compile(r"Mobile|Android|iPhone|iPad")
_LAPTOP = re.compile(r"Mac|MacBook")


def detect_device_class(user_agent: str) -> DeviceClass:
    """Classify a client as mobile, laptop or desktop. Unknown agents are desktops."""
    if _MOBILE.search(user_agent):
        return DeviceClass.MOBILE
    if _LAPTOP.search(user_agent):
        return DeviceClass.LAPTOP
    return DeviceClass.DESKTOP
