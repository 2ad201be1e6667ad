from types import SimpleNamespace

import pytest
from eth_utils import to_checksum_address

from staking_deployment.params import StakingParameters
from staking_deployment.propagation import PropagationSettings, PropagationWait

# Common constants
START_TIME = 1732665600
REWARD_AMOUNTS = ["500", "750", "1000"]
DURATIONS = [5184000, 7776000, 15552000]
NAMES = ["60 day lock", "90 day lock", "180 day lock"]
ONE_TOKEN = 10**18

STAKING_TOKEN = "0xeFbe61Cd97eD5419e435Da5C6b14d0C982653826"
REWARD_TOKEN = "0x47dae46d31f31f84336ac120b15efda261d484fb"
ROUTER = "0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff"
WRAPPED_NATIVE = "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270"

CONSTRUCTOR_INPUTS = [
    ("stakingToken", "address"),
    ("rewardToken", "address"),
    ("rewardAmount", "uint256"),
    ("startTime", "uint256"),
    ("stopTime", "uint256"),
    ("router", "address"),
    ("wrappedNative", "address"),
]


def make_address(seed: int) -> str:
    return to_checksum_address(f"0x{seed:040x}")


def abi_inputs(inputs):
    return [SimpleNamespace(name=name, type=_type) for name, _type in inputs]


def base_config():
    return {
        "deployment": {"name": "test-lp-staking", "chain_id": 137},
        "contracts": {"staking": "BUNDLPStaking", "reward_token_interface": "IERC20"},
        "constants": {
            "STAKING_TOKEN": STAKING_TOKEN,
            "REWARD_TOKEN": REWARD_TOKEN,
            "ROUTER": ROUTER,
            "WRAPPED_NATIVE": WRAPPED_NATIVE,
            "START_TIME": START_TIME,
        },
        "reward_token_symbol": "BUND",
        "native_symbol": "MATIC",
        "pools": [
            {"name": name, "reward_amount": amount, "duration": duration}
            for name, amount, duration in zip(NAMES, REWARD_AMOUNTS, DURATIONS)
        ],
        "verification": {"enabled": False},
    }


# Simulated chain collaborators


class FakeChain:
    def __init__(self):
        self.height = 100

    def mine(self) -> SimpleNamespace:
        self.height += 1
        return SimpleNamespace(block_number=self.height, txn_hash=f"0x{self.height:064x}")


class FakeMethod:
    def __init__(self, contract, name, inputs, action):
        self.contract = contract
        self.abis = [SimpleNamespace(name=name, inputs=abi_inputs(inputs))]
        self._action = action
        self.calls = list()

    def __call__(self, *args, sender=None):
        self.calls.append(args)
        self._action(*args, sender=sender)
        return self.contract.chain.mine()


class FakeContract:
    def __init__(self, chain, name, address):
        self.chain = chain
        self.contract_type = SimpleNamespace(name=name)
        self.address = address


class FakeRewardToken(FakeContract):
    def __init__(self, chain, address, balances):
        super().__init__(chain, "IERC20", address)
        self.balances = dict(balances)
        self.allowances = dict()
        self.failing_spenders = set()
        self.approve = FakeMethod(
            self, "approve", [("spender", "address"), ("amount", "uint256")], self._approve
        )

    def balanceOf(self, account):
        return self.balances.get(account, 0)

    def _approve(self, spender, amount, sender=None):
        if spender in self.failing_spenders:
            raise RuntimeError("approve reverted")
        self.allowances[(sender.address, spender)] = amount

    def transfer_from(self, owner, recipient, amount):
        allowance = self.allowances.get((owner, recipient), 0)
        if allowance < amount or self.balances.get(owner, 0) < amount:
            raise RuntimeError("ERC20: insufficient allowance")
        self.allowances[(owner, recipient)] = allowance - amount
        self.balances[owner] -= amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount


class FakePool(FakeContract):
    def __init__(self, chain, address, reward_token, args, fail_load=False):
        super().__init__(chain, "BUNDLPStaking", address)
        self.args = args
        self.receipt = chain.mine()
        self.reward_token = reward_token
        self.fail_load = fail_load
        self.loadReward = FakeMethod(self, "loadReward", [], self._load_reward)

    def _load_reward(self, sender=None):
        if self.fail_load:
            raise RuntimeError("loadReward reverted")
        reward_amount = self.args[2]
        self.reward_token.transfer_from(sender.address, self.address, reward_amount)


class FakeContainer:
    def __init__(self, inputs=CONSTRUCTOR_INPUTS):
        self.contract_type = SimpleNamespace(name="BUNDLPStaking")
        self.constructor = SimpleNamespace(abi=SimpleNamespace(inputs=abi_inputs(inputs)))
        self.deployments = list()


class FakeAccount:
    def __init__(self, chain, reward_token, address, balance=50 * ONE_TOKEN):
        self.chain = chain
        self.reward_token = reward_token
        self.address = address
        self.balance = balance
        self.failing_deployments = set()
        self.failing_loads = set()

    def deploy(self, container, *args):
        index = len(container.deployments)
        if index in self.failing_deployments:
            raise RuntimeError(f"deployment {index} reverted")
        pool = FakePool(
            chain=self.chain,
            address=make_address(0xBEEF0 + index),
            reward_token=self.reward_token,
            args=args,
            fail_load=index in self.failing_loads,
        )
        container.deployments.append(pool)
        return pool


class FakeVerifier:
    def __init__(self):
        self.submissions = list()
        self.failing_addresses = set()

    def verify(self, address, constructor_types, constructor_args):
        self.submissions.append((address, constructor_types, constructor_args))
        if address in self.failing_addresses:
            raise RuntimeError("explorer unavailable")


# Fixtures


@pytest.fixture
def params_config():
    return base_config()


@pytest.fixture
def params(params_config):
    return StakingParameters.from_config(params_config)


@pytest.fixture
def fake_chain():
    return FakeChain()


@pytest.fixture
def deployer_address():
    return make_address(0xDE9)


@pytest.fixture
def reward_token(fake_chain, deployer_address):
    return FakeRewardToken(
        fake_chain, to_checksum_address(REWARD_TOKEN), {deployer_address: 5000 * ONE_TOKEN}
    )


@pytest.fixture
def account(fake_chain, reward_token, deployer_address):
    return FakeAccount(fake_chain, reward_token, deployer_address)


@pytest.fixture
def container():
    return FakeContainer()


@pytest.fixture
def sleeps():
    return list()


@pytest.fixture
def propagation(fake_chain, sleeps):
    settings = PropagationSettings(delay=10, confirmations=1, timeout=30, poll_interval=1)
    return PropagationWait(
        settings=settings, get_height=lambda: fake_chain.height, sleep=sleeps.append
    )


@pytest.fixture
def verifier():
    return FakeVerifier()
