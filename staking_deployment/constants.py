from enum import Enum
from pathlib import Path

#
# Filesystem
#

DEPLOYMENT_DIR = Path(__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
DEFAULT_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / "polygon" / "lp_staking.yml"

#
# Networks
#

LOCAL_BLOCKCHAIN_ENVIRONMENTS = ["local"]

#
# Tokens
#

REWARD_TOKEN_DECIMALS = 18

#
# Propagation
#

DEFAULT_PROPAGATION_DELAY = 10  # seconds
DEFAULT_REQUIRED_CONFIRMATIONS = 1
DEFAULT_CONFIRMATION_TIMEOUT = 300  # seconds
DEFAULT_POLL_INTERVAL = 2  # seconds

#
# Verification
#

ETHERSCAN_API_KEY_ENVVAR = "ETHERSCAN_API_KEY"
ETHERSCAN_V2_API_URL = "https://api.etherscan.io/v2/api"
VERIFICATION_STATUS_ATTEMPTS = 10
VERIFICATION_STATUS_INTERVAL = 5  # seconds
ALREADY_VERIFIED_MESSAGES = ("Already Verified", "Contract source code already verified")

#
# Constructor parameters
#

# per-pool variables available to the constructor template
POOL_VARIABLES = ("reward_amount", "start_time", "stop_time", "deployer")

# collaborator addresses that must be set for every deployment
REQUIRED_ADDRESS_CONSTANTS = ("STAKING_TOKEN", "REWARD_TOKEN", "ROUTER", "WRAPPED_NATIVE")

START_TIME_CONSTANT = "START_TIME"


class StepPolicy(Enum):
    REQUIRED = "required"
    BEST_EFFORT = "best-effort"


# Steps of a single pool deployment, in order
DEPLOY_STEP = "deploy"
APPROVE_STEP = "approve"
LOAD_REWARD_STEP = "load reward"
VERIFY_STEP = "verify"

STEP_POLICIES = {
    DEPLOY_STEP: StepPolicy.REQUIRED,
    APPROVE_STEP: StepPolicy.REQUIRED,
    LOAD_REWARD_STEP: StepPolicy.REQUIRED,
    VERIFY_STEP: StepPolicy.BEST_EFFORT,
}
