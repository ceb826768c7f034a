import os

import pytest
from dotenv import find_dotenv, load_dotenv

# Load .env as early as possible (before pytest_collection_modifyitems)
load_dotenv(find_dotenv(usecwd=True))


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    url = os.getenv("SSE_TEST_URL")
    for item in items:
        if "integration" in item.keywords and not url:
            item.add_marker(pytest.mark.skip(reason="SSE_TEST_URL is not set in environment/.env"))


@pytest.fixture
def stream_url() -> str:
    return os.environ["SSE_TEST_URL"]
