"""Test basic package functionality."""

import provision_client


def test_version():
    """Test that package version is defined."""
    assert hasattr(provision_client, "__version__")
    assert provision_client.__version__ == "0.1.0"


def test_api_path():
    """All resources live under the v3 API root."""
    assert provision_client.APIPATH == "/api/v3"
