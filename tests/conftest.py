import logging
import pathlib

import pytest

EXAMPLE_POLICY = pathlib.Path(__file__).resolve().parent.parent / "examples" / "policy.yaml"


@pytest.fixture
def example_policy_path() -> pathlib.Path:
    return EXAMPLE_POLICY


@pytest.fixture(autouse=True)
def reset_audit_logger():
    yield
    logger = logging.getLogger("ipacl.audit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
