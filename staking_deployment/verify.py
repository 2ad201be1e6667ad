import json
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

import requests
from ape import compilers, project
from eth_abi import encode
from eth_typing import ChecksumAddress

from staking_deployment.constants import (
    ALREADY_VERIFIED_MESSAGES,
    ETHERSCAN_API_KEY_ENVVAR,
    ETHERSCAN_V2_API_URL,
    VERIFICATION_STATUS_ATTEMPTS,
    VERIFICATION_STATUS_INTERVAL,
)


class VerificationSettings(NamedTuple):
    enabled: bool = False
    source: Optional[str] = None  # e.g. contracts/LPStaking.sol:BUNDLPStaking
    compiler_version: Optional[str] = None
    optimization_runs: Optional[int] = None
    license_type: int = 1  # explorer license id, 1 = "No License"


class VerificationFailed(Exception):
    """Raised when the explorer rejects (or cannot receive) a verification request."""


def split_source_identifier(source: str) -> Tuple[str, str]:
    """Splits 'contracts/LPStaking.sol:BUNDLPStaking' into its path and contract name."""
    path, separator, contract_name = source.rpartition(":")
    if not separator or not path or not contract_name:
        raise VerificationFailed(
            f"Malformed source identifier '{source}'; expected '<path>:<ContractName>'"
        )
    return path, contract_name


def encode_constructor_args(types: Sequence[str], args: Sequence[Any]) -> str:
    """ABI encodes constructor arguments as explorers expect them: hex, without 0x prefix."""
    return encode(list(types), list(args)).hex()


def compiler_standard_input(source_path: Path) -> Dict[str, Any]:
    """
    Returns the solc standard JSON input ape-solidity compiles the source with:
    the source itself, every import it pulls in, remappings and settings.
    """
    compiler = compilers.get_compiler("solidity")
    if compiler is None:
        raise VerificationFailed("The ape-solidity plugin is required to verify sources.")
    inputs = compiler.get_standard_input_json([source_path], project=project)
    for standard_input in inputs.values():
        if find_source_id(standard_input, source_path) is not None:
            return standard_input
    raise VerificationFailed(f"No compiler input contains {source_path}")


def find_source_id(standard_input: Dict[str, Any], source_path: Path) -> Optional[str]:
    """Returns the key under which the source is listed in a standard JSON input."""
    for source_id in standard_input.get("sources", dict()):
        parts = Path(source_id).parts
        if source_path.parts[-len(parts) :] == parts:
            return source_id
    return None


class EtherscanVerifier:
    """Submits contract sources to an Etherscan-compatible explorer (v2 multichain API)."""

    def __init__(
        self,
        chain_id: int,
        settings: VerificationSettings,
        api_key: Optional[str] = None,
        api_url: str = ETHERSCAN_V2_API_URL,
        source_root: Optional[Path] = None,
        standard_input: Callable[[Path], Dict[str, Any]] = compiler_standard_input,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not settings.source or not settings.compiler_version:
            raise ValueError("Verification requires 'source' and 'compiler_version' settings.")
        self.chain_id = chain_id
        self.settings = settings
        self.api_key = api_key or os.environ.get(ETHERSCAN_API_KEY_ENVVAR)
        self.api_url = api_url
        # sources are resolved against the ape project, not the installed package
        self.source_root = Path(source_root or project.path)
        self._standard_input = standard_input
        self._sleep = sleep

    def _standard_json_input(self, path: str) -> Tuple[str, Dict[str, Any]]:
        filepath = self.source_root / path
        if not filepath.exists():
            raise VerificationFailed(f"Source file not found at {filepath}")
        standard_input = self._standard_input(filepath)
        source_id = find_source_id(standard_input, filepath)
        if source_id is None:
            raise VerificationFailed(f"Compiler input for {filepath} does not list its source")
        return source_id, standard_input

    def _request(self, method: str, params: Dict[str, Any], data=None) -> Dict[str, Any]:
        params = {"chainid": self.chain_id, "apikey": self.api_key, **params}
        response = requests.request(method, self.api_url, params=params, data=data)
        response.raise_for_status()
        return response.json()

    def build_payload(
        self, address: ChecksumAddress, constructor_types: List[str], constructor_args: List[Any]
    ) -> Dict[str, Any]:
        path, contract_name = split_source_identifier(self.settings.source)
        source_id, standard_input = self._standard_json_input(path)
        runs = self.settings.optimization_runs
        return {
            "module": "contract",
            "action": "verifysourcecode",
            "contractaddress": address,
            "sourceCode": json.dumps(standard_input),
            "codeformat": "solidity-standard-json-input",
            "contractname": f"{source_id}:{contract_name}",
            "compilerversion": self.settings.compiler_version,
            "optimizationUsed": 0 if runs is None else 1,
            "runs": runs or 0,
            "constructorArguements": encode_constructor_args(constructor_types, constructor_args),
            "licenseType": self.settings.license_type,
        }

    def submit(
        self, address: ChecksumAddress, constructor_types: List[str], constructor_args: List[Any]
    ) -> Optional[str]:
        """Submits a verification request; returns its GUID, or None if already verified."""
        if not self.api_key:
            raise VerificationFailed(f"{ETHERSCAN_API_KEY_ENVVAR} is not set.")
        payload = self.build_payload(address, constructor_types, constructor_args)
        data = self._request("POST", params={}, data=payload)
        result = str(data.get("result", ""))
        if data.get("status") == "1":
            return result
        if any(message in result for message in ALREADY_VERIFIED_MESSAGES):
            return None
        raise VerificationFailed(f"Verification request rejected: {result}")

    def check_status(self, guid: str) -> None:
        for _ in range(VERIFICATION_STATUS_ATTEMPTS):
            self._sleep(VERIFICATION_STATUS_INTERVAL)
            data = self._request(
                "GET", params={"module": "contract", "action": "checkverifystatus", "guid": guid}
            )
            result = str(data.get("result", ""))
            if "Pending" in result:
                continue
            if data.get("status") == "1" or any(m in result for m in ALREADY_VERIFIED_MESSAGES):
                return
            raise VerificationFailed(result)
        raise VerificationFailed(
            f"Verification still pending after {VERIFICATION_STATUS_ATTEMPTS} checks"
        )

    def verify(
        self, address: ChecksumAddress, constructor_types: List[str], constructor_args: List[Any]
    ) -> None:
        print(f"(i) Verifying {self.settings.source} at {address}...")
        guid = self.submit(address, constructor_types, constructor_args)
        if guid is None:
            print(f"(i) {address} is already verified")
            return
        self.check_status(guid)
        print(f"(i) Verified {address}")
