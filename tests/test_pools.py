import pytest

from staking_deployment.pools import DeploymentWindow, PoolConfig, PoolRecord
from staking_deployment.utils import format_token_amount, to_token_units
from tests.conftest import ONE_TOKEN, START_TIME, make_address


@pytest.mark.parametrize(
    "amount,units",
    [
        ("500", 500 * ONE_TOKEN),
        ("750", 750 * ONE_TOKEN),
        ("1000", 1000 * ONE_TOKEN),
        ("0.5", ONE_TOKEN // 2),
        ("0.000000000000000001", 1),
    ],
)
def test_to_token_units(amount, units):
    assert units == to_token_units(amount)


def test_format_token_amount():
    assert "500.0 $BUND" == format_token_amount(500 * ONE_TOKEN, "BUND")
    assert "1000.0 $BUND" == format_token_amount(1000 * ONE_TOKEN, "BUND")
    assert "0.5 $BUND" == format_token_amount(ONE_TOKEN // 2, "BUND")
    assert "0.0 $MATIC" == format_token_amount(0, "MATIC")


def test_deployment_window():
    window = DeploymentWindow.from_start(start_time=START_TIME, duration=7776000)
    assert START_TIME == window.start_time
    assert 1740441600 == window.stop_time


def test_pool_record():
    pool = PoolConfig(reward_amount="750", duration=7776000, name="90 day lock")
    window = DeploymentWindow.from_start(start_time=START_TIME, duration=pool.duration)
    address = make_address(0xBEEF)

    record = PoolRecord.from_deployment(pool=pool, window=window, address=address, symbol="BUND")

    assert {
        "startTime": START_TIME,
        "stopTime": 1740441600,
        "rewardAmount": "750.0 $BUND",
        "staking": address,
        "name": "90 day lock",
    } == record.to_dict()

    # records are immutable
    with pytest.raises(AttributeError):
        record.staking = make_address(0xDEAD)
