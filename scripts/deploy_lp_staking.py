#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from staking_deployment.deployer import PoolDeployer
from staking_deployment.options import auto_option, params_filepath_option, start_time_option
from staking_deployment.params import StakingParameters
from staking_deployment.utils import (
    check_verification_environment,
    is_local_network,
    validate_chain_id,
)
from staking_deployment.verify import EtherscanVerifier


@click.command(cls=ConnectedProviderCommand, name="deploy-lp-staking")
@account_option()
@network_option(required=True)
@params_filepath_option
@start_time_option
@auto_option
def cli(account, network, params_filepath, start_time, auto):
    """
    Deploys every staking pool of the params file, loads its rewards and
    submits it for verification.

    ape run deploy_lp_staking --network polygon:mainnet:infura
    """

    # Setup
    click.echo(f"Connected to {network.name} network.")
    params = StakingParameters.from_yaml(filepath=params_filepath, start_time=start_time)
    validate_chain_id(params.chain_id)

    verify = params.verification.enabled and not is_local_network()
    check_verification_environment(verify=verify)
    verifier = None
    if verify:
        verifier = EtherscanVerifier(chain_id=params.chain_id, settings=params.verification)

    click.echo(f"Start Time set to: {params.start_time}")
    deployer = PoolDeployer(params=params, account=account, autosign=auto, verifier=verifier)
    try:
        deployer.run_deployment()
    except Exception as e:
        # remaining pools are left undeployed
        raise click.ClickException(str(e))


if __name__ == "__main__":
    cli()
