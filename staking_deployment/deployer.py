import json
import typing
from collections import OrderedDict
from typing import Any, Callable, List, Optional

from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance, ContractTransactionHandler
from eth_abi import is_encodable
from ethpm_types import MethodABI
from web3 import Web3

from staking_deployment.confirm import _confirm_resolution, _continue
from staking_deployment.constants import (
    APPROVE_STEP,
    DEPLOY_STEP,
    LOAD_REWARD_STEP,
    STEP_POLICIES,
    VERIFY_STEP,
    StepPolicy,
)
from staking_deployment.params import StakingParameters
from staking_deployment.pools import PoolConfig, PoolRecord
from staking_deployment.propagation import PropagationWait
from staking_deployment.utils import format_token_amount, get_contract_container
from staking_deployment.verify import EtherscanVerifier


def run_step(step: str, action: Callable, *args, **kwargs) -> Any:
    """
    Runs a single deployment step according to its declared policy:
    failures of required steps propagate, failures of best-effort steps are
    reported and the step yields None.
    """
    policy = STEP_POLICIES[step]
    try:
        return action(*args, **kwargs)
    except Exception as e:
        if policy is StepPolicy.REQUIRED:
            raise
        print(f"error in {step}: {e}")
        return None


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates the resolved constructor parameters against the constructor ABI."""
    if len(resolved_parameters) != len(abi_inputs):
        raise StakingParameters.Invalid(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, (name, value)) in codex:
        if not is_encodable(abi_input.type, value):
            raise StakingParameters.Invalid(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input.type}'"
            )


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        if hasattr(self._account, "set_autosign"):
            # only keyfile accounts can sign unattended
            self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        """Returns the transactor account."""
        return self._account

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method.abis[0].name}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        return method(*args, sender=self._account)


class PoolDeployer(Transactor):
    """
    Deploys, funds and verifies each configured staking pool, strictly one
    pool and one step at a time.
    """

    class InsufficientRewardBalance(Exception):
        """Raised when the deployer cannot fund every configured pool"""

    def __init__(
        self,
        params: StakingParameters,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
        verifier: Optional[EtherscanVerifier] = None,
        propagation: Optional[PropagationWait] = None,
        staking_container: Optional[ContractContainer] = None,
        reward_token: Optional[ContractInstance] = None,
    ):
        super().__init__(account, autosign)
        self.params = params
        self.staking_container = staking_container or get_contract_container(
            params.staking_contract
        )
        if reward_token is None:
            interface = get_contract_container(params.reward_token_interface)
            reward_token = interface.at(params.reward_token)
        self.reward_token = reward_token
        self.propagation = propagation or PropagationWait(settings=params.propagation)
        self.verifier = verifier

        # eager validation; nothing is sent before every pool resolves
        for pool in self.params.pools:
            self._resolve(pool)

        self._print_deployment_info()
        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    @property
    def constructor_types(self) -> List[str]:
        return [abi_input.type for abi_input in self.staking_container.constructor.abi.inputs]

    def _resolve(self, pool: PoolConfig) -> OrderedDict:
        resolved_params = self.params.resolve(pool, deployer=self.get_account().address)
        _validate_constructor_abi_inputs(
            contract_name=self.staking_container.contract_type.name,
            abi_inputs=self.staking_container.constructor.abi.inputs,
            resolved_parameters=resolved_params,
        )
        return resolved_params

    def check_reward_balance(self) -> int:
        """Checks that the deployer holds enough reward tokens to load every pool."""
        required = self.params.total_reward_units
        balance = self.reward_token.balanceOf(self.get_account().address)
        symbol = self.params.reward_token_symbol
        print(f"Reward token balance: {format_token_amount(balance, symbol)}")
        if balance < required:
            raise self.InsufficientRewardBalance(
                f"Deployer holds {format_token_amount(balance, symbol)} but "
                f"{format_token_amount(required, symbol)} is required to load all pools"
            )
        return balance

    def _deploy(self, pool: PoolConfig, resolved_params: OrderedDict) -> ContractInstance:
        if not self._autosign:
            _confirm_resolution(resolved_params, pool.name)
        return self.get_account().deploy(self.staking_container, *resolved_params.values())

    def deploy_pool(self, pool: PoolConfig) -> PoolRecord:
        symbol = self.params.reward_token_symbol
        window = self.params.window(pool)
        resolved_params = self._resolve(pool)

        staking = run_step(DEPLOY_STEP, self._deploy, pool, resolved_params)
        print(f"\nDeployed a staking pool: {staking.address}")
        self.propagation.wait(staking.receipt)

        # Approve the staking pool to move tokens from the deployer
        print(f"Approving contract to pull {symbol}")
        receipt = run_step(
            APPROVE_STEP,
            self.transact,
            self.reward_token.approve,
            staking.address,
            pool.reward_units,
        )
        self.propagation.wait(receipt)

        print(f"Loading {symbol} into contract")
        receipt = run_step(LOAD_REWARD_STEP, self.transact, staking.loadReward)
        self.propagation.wait(receipt)

        if self.verifier:
            run_step(
                VERIFY_STEP,
                self.verifier.verify,
                staking.address,
                self.constructor_types,
                list(resolved_params.values()),
            )
        else:
            print("(i) Verification disabled; skipping")

        return PoolRecord.from_deployment(
            pool=pool, window=window, address=staking.address, symbol=symbol
        )

    def run_deployment(self) -> List[PoolRecord]:
        self.check_reward_balance()
        records = list()
        for pool in self.params.pools:
            record = self.deploy_pool(pool)
            records.append(record)
        print(json.dumps([record.to_dict() for record in records], indent=4))
        return records

    def _print_deployment_info(self):
        account = self.get_account()
        balance = Web3.from_wei(account.balance, "ether")
        print(
            f"Deploying {self.params.name} with the account: {account.address}",
            f"Account balance: {balance} ${self.params.native_symbol}",
            f"Staking contract: {self.staking_container.contract_type.name}",
            f"Reward token: {self.reward_token.address}",
            f"Start time: {self.params.start_time}",
            f"Pools: {', '.join(pool.name for pool in self.params.pools)}",
            f"Verify: {self.verifier is not None}",
            sep="\n",
        )
