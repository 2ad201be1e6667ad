#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from staking_deployment.options import (
    params_filepath_option,
    pool_address_option,
    pool_name_option,
    start_time_option,
)
from staking_deployment.params import StakingParameters
from staking_deployment.utils import (
    check_verification_environment,
    get_contract_container,
    validate_chain_id,
)
from staking_deployment.verify import EtherscanVerifier, VerificationFailed


@click.command(cls=ConnectedProviderCommand, name="verify-pool")
@network_option(required=True)
@params_filepath_option
@start_time_option
@pool_name_option
@pool_address_option
def cli(network, params_filepath, start_time, pool_name, pool_address):
    """Verify an already deployed staking pool."""
    click.echo(f"Connected to {network.name} network.")
    params = StakingParameters.from_yaml(filepath=params_filepath, start_time=start_time)
    validate_chain_id(params.chain_id)
    check_verification_environment(verify=True)

    pool = params.get_pool(pool_name)
    container = get_contract_container(params.staking_contract)
    constructor_types = [abi_input.type for abi_input in container.constructor.abi.inputs]
    constructor_args = list(params.resolve(pool).values())

    verifier = EtherscanVerifier(chain_id=params.chain_id, settings=params.verification)
    try:
        verifier.verify(pool_address, constructor_types, constructor_args)
    except VerificationFailed as e:
        raise click.ClickException(f"error in verifying: {e}")


if __name__ == "__main__":
    cli()
