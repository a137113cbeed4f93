import logging

import pytest

from voicebridge.config.settings import Settings


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


@pytest.fixture
def settings():
    """Fully configured settings that never touch the process environment"""
    return Settings(
        telnyx_api_key="KEY_test",
        telnyx_connection_id="conn-1",
        telnyx_from_number="+15550100",
        telnyx_api_base="https://telnyx.test/v2",
        openai_api_key="sk-test",
        agent_greeting=None,
        public_domain="bridge.example.com",
    )
