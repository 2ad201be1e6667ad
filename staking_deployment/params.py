import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional

from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from staking_deployment.constants import (
    POOL_VARIABLES,
    REQUIRED_ADDRESS_CONSTANTS,
    START_TIME_CONSTANT,
)
from staking_deployment.pools import DeploymentWindow, PoolConfig
from staking_deployment.propagation import PropagationSettings
from staking_deployment.utils import _load_yaml
from staking_deployment.verify import VerificationSettings

DEFAULT_CONSTRUCTOR_TEMPLATE = OrderedDict(
    [
        ("stakingToken", "$STAKING_TOKEN"),
        ("rewardToken", "$REWARD_TOKEN"),
        ("rewardAmount", "$reward_amount"),
        ("startTime", "$start_time"),
        ("stopTime", "$stop_time"),
        ("router", "$ROUTER"),
        ("wrappedNative", "$WRAPPED_NATIVE"),
    ]
)


class InvalidParameters(ValueError):
    """Raised when the staking deployment parameters are invalid"""


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, pool_variables: Dict[str, Any]) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        return isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)


class Constant(Variable):
    def __init__(self, constant_name: str, constants: Dict[str, Any]):
        try:
            self.constant_value = constants[constant_name]
        except KeyError:
            raise InvalidParameters(f"Constant '{constant_name}' not found in deployment file.")

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self, pool_variables: Dict[str, Any]) -> Any:
        return self.constant_value


class PoolVariable(Variable):
    """A value computed for each pool, e.g. its scaled reward amount or its stop time."""

    def __init__(self, variable_name: str):
        if variable_name not in POOL_VARIABLES:
            raise InvalidParameters(
                f"Unknown pool variable '{variable_name}'; expected one of {POOL_VARIABLES}"
            )
        self.variable_name = variable_name

    def resolve(self, pool_variables: Dict[str, Any]) -> Any:
        return pool_variables[self.variable_name]


def _variable_from_value(value: str, constants: Dict[str, Any]) -> Variable:
    name = value[len(Variable.VARIABLE_PREFIX) :]
    if Constant.is_constant(name):
        return Constant(name, constants)
    return PoolVariable(name)


def _process_raw_value(value: Any, constants: Dict[str, Any]) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, constants) for v in value]
    if Variable.is_variable(value):
        return _variable_from_value(value, constants)
    return value


def _resolve_param(value: Any, pool_variables: Dict[str, Any]) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, pool_variables) for v in value]
    if isinstance(value, Variable):
        return value.resolve(pool_variables)
    return value  # literally a value


def _process_raw_values(values: OrderedDict, constants: Dict[str, Any]) -> OrderedDict:
    if not values:
        raise InvalidParameters("Constructor template is empty.")
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, constants)
    return processed_parameters


# Validation


def _validate_address(name: str, value: Any) -> ChecksumAddress:
    try:
        address = to_checksum_address(value)
    except (TypeError, ValueError):
        raise InvalidParameters(f"Constant '{name}' is not a valid address: {value}")
    if address == ZERO_ADDRESS:
        raise InvalidParameters(f"Constant '{name}' cannot be the zero address")
    return address


def _validate_constants(constants: Dict[str, Any]) -> Dict[str, Any]:
    validated = dict(constants)
    for name in REQUIRED_ADDRESS_CONSTANTS:
        if name not in constants:
            raise InvalidParameters(f"Constant '{name}' is not set in params file.")
        validated[name] = _validate_address(name, constants[name])

    start_time = constants.get(START_TIME_CONSTANT)
    if isinstance(start_time, bool) or not isinstance(start_time, int) or start_time < 0:
        raise InvalidParameters(
            f"Constant '{START_TIME_CONSTANT}' must be a non-negative integer; got {start_time}"
        )
    return validated


def _validate_reward_amount(name: str, reward_amount: Any) -> str:
    reward_amount = str(reward_amount)
    try:
        value = Decimal(reward_amount)
    except InvalidOperation:
        raise InvalidParameters(f"Reward amount '{reward_amount}' of {name} is not a number")
    if not value.is_finite() or value <= 0:
        raise InvalidParameters(f"Reward amount of {name} must be positive; got {reward_amount}")
    # trailing zeros do not count as decimals
    if value.normalize().as_tuple().exponent < -18:
        raise InvalidParameters(
            f"Reward amount of {name} has more than 18 decimals; got {reward_amount}"
        )
    return reward_amount


def _process_pools(pools_config: Any) -> List[PoolConfig]:
    if not pools_config or not isinstance(pools_config, list):
        raise InvalidParameters("Params file must define at least one pool.")

    pools = list()
    for pool_config in pools_config:
        if not isinstance(pool_config, dict):
            raise InvalidParameters("Malformed pool entry in params file.")
        try:
            name = str(pool_config["name"])
            reward_amount = pool_config["reward_amount"]
            duration = pool_config["duration"]
        except KeyError as e:
            raise InvalidParameters(f"Pool entry is missing the {e} field.")

        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise InvalidParameters(f"Duration of {name} must be a positive integer of seconds")
        pools.append(
            PoolConfig(
                reward_amount=_validate_reward_amount(name, reward_amount),
                duration=duration,
                name=name,
            )
        )

    names = [pool.name for pool in pools]
    if len(set(names)) != len(names):
        raise InvalidParameters(f"Pool names must be unique; got {names}")

    for previous, current in zip(pools, pools[1:]):
        if current.duration <= previous.duration:
            raise InvalidParameters(
                f"Pool durations must be strictly increasing; "
                f"{current.name} ({current.duration}s) follows {previous.name} "
                f"({previous.duration}s)"
            )
    return pools


def _settings_from_config(defaults: typing.NamedTuple, section: str, config: Optional[Dict]):
    try:
        return defaults._replace(**(config or dict()))
    except (TypeError, ValueError):
        raise InvalidParameters(f"Malformed '{section}' section: {config}")


def _process_propagation(config: Optional[Dict]) -> PropagationSettings:
    settings = _settings_from_config(PropagationSettings(), "propagation", config)
    for name, value in settings._asdict().items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            raise InvalidParameters(f"Propagation setting '{name}' must be a non-negative number")
    if settings.poll_interval <= 0:
        raise InvalidParameters("Propagation setting 'poll_interval' must be positive")
    return settings


def _process_verification(config: Optional[Dict]) -> VerificationSettings:
    settings = _settings_from_config(VerificationSettings(), "verification", config)
    if settings.enabled and not (settings.source and settings.compiler_version):
        raise InvalidParameters("Verification requires 'source' and 'compiler_version'.")
    return settings


class StakingParameters:
    """Represents the validated parameters of a staking pools deployment."""

    Invalid = InvalidParameters

    def __init__(
        self,
        name: str,
        chain_id: int,
        staking_contract: str,
        reward_token_interface: str,
        constants: Dict[str, Any],
        constructor: OrderedDict,
        pools: List[PoolConfig],
        reward_token_symbol: str,
        native_symbol: str,
        propagation: PropagationSettings = PropagationSettings(),
        verification: VerificationSettings = VerificationSettings(),
    ):
        self.name = name
        self.chain_id = chain_id
        self.staking_contract = staking_contract
        self.reward_token_interface = reward_token_interface
        self.constants = _validate_constants(constants)
        self.constructor = _process_raw_values(constructor, self.constants)
        self.pools = pools
        self.reward_token_symbol = reward_token_symbol
        self.native_symbol = native_symbol
        self.propagation = propagation
        self.verification = verification

    @classmethod
    def from_config(
        cls, config: typing.Dict, start_time: Optional[int] = None
    ) -> "StakingParameters":
        print("Validating parameters YAML...")
        if not isinstance(config, dict):
            raise InvalidParameters("Malformed params file.")

        deployment = config.get("deployment")
        if not deployment:
            raise InvalidParameters("deployment is not set in params file.")
        chain_id = deployment.get("chain_id")
        if not chain_id:
            raise InvalidParameters("chain_id is not set in params file.")

        contracts = config.get("contracts")
        if not contracts or "staking" not in contracts:
            raise InvalidParameters("Params file missing 'contracts.staking' field.")

        constants = dict(config.get("constants") or dict())
        if start_time is not None:
            constants[START_TIME_CONSTANT] = start_time

        return cls(
            name=deployment.get("name", "staking"),
            chain_id=int(chain_id),
            staking_contract=contracts["staking"],
            reward_token_interface=contracts.get("reward_token_interface", "IERC20"),
            constants=constants,
            constructor=OrderedDict(config.get("constructor") or DEFAULT_CONSTRUCTOR_TEMPLATE),
            pools=_process_pools(config.get("pools")),
            reward_token_symbol=config.get("reward_token_symbol", "REWARD"),
            native_symbol=config.get("native_symbol", "ETH"),
            propagation=_process_propagation(config.get("propagation")),
            verification=_process_verification(config.get("verification")),
        )

    @classmethod
    def from_yaml(cls, filepath: Path, start_time: Optional[int] = None) -> "StakingParameters":
        config = _load_yaml(filepath)
        return cls.from_config(config, start_time=start_time)

    @property
    def start_time(self) -> int:
        return self.constants[START_TIME_CONSTANT]

    @property
    def reward_token(self) -> ChecksumAddress:
        return self.constants["REWARD_TOKEN"]

    @property
    def total_reward_units(self) -> int:
        return sum(pool.reward_units for pool in self.pools)

    def get_pool(self, name: str) -> PoolConfig:
        for pool in self.pools:
            if pool.name == name:
                return pool
        raise ValueError(f"No pool named '{name}'; expected one of {[p.name for p in self.pools]}")

    def window(self, pool: PoolConfig) -> DeploymentWindow:
        return DeploymentWindow.from_start(start_time=self.start_time, duration=pool.duration)

    def resolve(self, pool: PoolConfig, deployer: Optional[ChecksumAddress] = None) -> OrderedDict:
        """Resolves the constructor parameters of a single pool, in constructor order."""
        window = self.window(pool)
        pool_variables = {
            "reward_amount": pool.reward_units,
            "start_time": window.start_time,
            "stop_time": window.stop_time,
            "deployer": deployer or ZERO_ADDRESS,
        }
        resolved_params = OrderedDict()
        for name, value in self.constructor.items():
            resolved_params[name] = _resolve_param(value, pool_variables)
        return resolved_params
