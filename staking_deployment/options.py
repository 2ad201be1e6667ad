from pathlib import Path

import click

from staking_deployment.constants import DEFAULT_PARAMS_FILEPATH
from staking_deployment.types import PoolAddress, StartTime

params_filepath_option = click.option(
    "--params-filepath",
    "-p",
    help="Staking pools deployment parameters YAML.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=DEFAULT_PARAMS_FILEPATH,
    show_default=True,
)

start_time_option = click.option(
    "--start-time",
    "-s",
    help=(
        "Unix timestamp, or '+<seconds>' from now, at which every pool starts; "
        "overrides START_TIME from the params file."
    ),
    type=StartTime(),
    required=False,
)

auto_option = click.option(
    "--auto",
    help="Automatically sign transactions.",
    is_flag=True,
)

pool_name_option = click.option(
    "--pool-name",
    "-n",
    help="Name of the pool, as listed in the params file.",
    type=str,
    required=True,
)

pool_address_option = click.option(
    "--pool-address",
    "-a",
    help="Address of the deployed staking pool.",
    type=PoolAddress(),
    required=True,
)
