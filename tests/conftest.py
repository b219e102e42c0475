from __future__ import annotations

import pytest

from imgmc.descriptor import RequestDescriptor


@pytest.fixture
def descriptor() -> RequestDescriptor:
    return RequestDescriptor(
        prompt="A red fox in snow",
        endpoint_base="https://example.openai.azure.com/",
        credential="secret-key",
        deployment_id="gpt-image-1",
        quality="medium",
        resolution="1024x1536",
        count=2,
    )
