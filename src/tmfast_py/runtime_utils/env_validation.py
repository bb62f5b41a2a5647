import os
from typing import Dict, List, Optional

from tmfast_py.runtime_utils.process_logger import ProcessLogger


def validate_environment(
    required_variables: List[str],
    private_variables: Optional[List[str]] = None,
    optional_variables: Optional[List[str]] = None,
) -> Dict[str, str]:
    """
    ensure that the environment has all the variables its required to have
    before starting triggering main, making certain errors easier to debug.

    :return mapping of every required and optional variable that is set to its
        value. private values are returned unmasked but never logged.
    """
    process_logger = ProcessLogger("validate_env")
    process_logger.log_start()

    if private_variables is None:
        private_variables = []

    # every pipeline needs a service name for logging
    required_variables = list(required_variables)
    if "SERVICE_NAME" not in required_variables:
        required_variables.append("SERVICE_NAME")

    found: Dict[str, str] = {}

    # check for missing variables. add found variables to our logs.
    missing_required = []
    for key in required_variables:
        value = os.environ.get(key, None)
        if value is None:
            missing_required.append(key)
        else:
            found[key] = value
        # do not log private variables
        if key in private_variables and value is not None:
            value = "**********"
        process_logger.add_metadata(**{key: value})

    # for optional variables, access ones that exist and add them to logs.
    for key in optional_variables or []:
        value = os.environ.get(key, None)
        if value is None:
            continue
        found[key] = value
        if key in private_variables:
            value = "**********"
        process_logger.add_metadata(**{key: value})

    # if required variables are missing, log a failure and throw.
    if missing_required:
        exception = EnvironmentError(f"Missing required environment variables {missing_required}")
        process_logger.log_failure(exception)
        raise exception

    process_logger.log_complete()

    return found
