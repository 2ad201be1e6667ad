import os
from decimal import Decimal
from pathlib import Path

import yaml
from ape import networks, project
from ape.contracts import ContractContainer
from web3 import Web3

from staking_deployment.constants import (
    ETHERSCAN_API_KEY_ENVVAR,
    LOCAL_BLOCKCHAIN_ENVIRONMENTS,
    REWARD_TOKEN_DECIMALS,
)


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def is_local_network() -> bool:
    return networks.provider.network.name in LOCAL_BLOCKCHAIN_ENVIRONMENTS


def validate_chain_id(chain_id: int) -> None:
    """Checks that the params file targets the chain of the connected provider."""
    if is_local_network():
        return
    connected_chain_id = networks.provider.network.chain_id
    if chain_id != connected_chain_id:
        raise ValueError(
            f"chain_id in params file ({chain_id}) does not match "
            f"chain_id of current network ({connected_chain_id})."
        )


def check_verification_environment(verify: bool) -> None:
    """Checks that an explorer API key is available when verification is requested."""
    if not verify or is_local_network():
        # unnecessary for local deployment
        return
    if not os.environ.get(ETHERSCAN_API_KEY_ENVVAR):
        raise ValueError(f"{ETHERSCAN_API_KEY_ENVVAR} is not set.")


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            return getattr(dependency_api, contract)
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def to_token_units(amount: str) -> int:
    """Scales a decimal token amount (e.g. "500") to its 18-decimals integer value."""
    return Web3.to_wei(Decimal(amount), "ether")


def format_token_amount(units: int, symbol: str) -> str:
    """Formats an 18-decimals integer amount, e.g. 500 * 10**18 -> '500.0 $BUND'."""
    value = Decimal(units) / Decimal(10) ** REWARD_TOKEN_DECIMALS
    text = format(value.normalize(), "f")
    if "." not in text:
        text = f"{text}.0"
    return f"{text} ${symbol}"
