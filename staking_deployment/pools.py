from typing import Any, Dict, NamedTuple

from eth_typing import ChecksumAddress

from staking_deployment.utils import format_token_amount, to_token_units


class PoolConfig(NamedTuple):
    """A single staking pool to deploy: reward allocation, lock length and display name."""

    reward_amount: str
    duration: int
    name: str

    @property
    def reward_units(self) -> int:
        return to_token_units(self.reward_amount)


class DeploymentWindow(NamedTuple):
    start_time: int
    stop_time: int

    @classmethod
    def from_start(cls, start_time: int, duration: int) -> "DeploymentWindow":
        return cls(start_time=start_time, stop_time=start_time + duration)


class PoolRecord(NamedTuple):
    """Represents a deployed, funded staking pool."""

    start_time: int
    stop_time: int
    reward_amount: str
    staking: ChecksumAddress
    name: str

    @classmethod
    def from_deployment(
        cls,
        pool: PoolConfig,
        window: DeploymentWindow,
        address: ChecksumAddress,
        symbol: str,
    ) -> "PoolRecord":
        return cls(
            start_time=window.start_time,
            stop_time=window.stop_time,
            reward_amount=format_token_amount(pool.reward_units, symbol),
            staking=address,
            name=pool.name,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startTime": self.start_time,
            "stopTime": self.stop_time,
            "rewardAmount": self.reward_amount,
            "staking": self.staking,
            "name": self.name,
        }
