import time

import click
from ape.utils import ZERO_ADDRESS
from eth_utils import to_checksum_address


class StartTime(click.ParamType):
    """
    A pool start time: either an absolute unix timestamp, or '+<seconds>'
    counted from now. Start times in the past are rejected.
    """

    name = "start_time"

    def __init__(self, clock=time.time):
        self.clock = clock

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        now = int(self.clock())
        text = str(value).strip()
        try:
            if text.startswith("+"):
                timestamp = now + int(text[1:])
            else:
                timestamp = int(text)
        except ValueError:
            self.fail(f"{value} is not a unix timestamp or a '+<seconds>' offset", param, ctx)
        if timestamp < now:
            self.fail(f"{value} is in the past (now is {now})", param, ctx)
        return timestamp


class PoolAddress(click.ParamType):
    name = "pool_address"

    def convert(self, value, param, ctx):
        try:
            address = to_checksum_address(value)
        except ValueError:
            self.fail(f"{value} is not a valid ethereum address", param, ctx)
        if address == ZERO_ADDRESS:
            self.fail("a staking pool cannot live at the zero address", param, ctx)
        return address
