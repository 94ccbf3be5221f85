"""Tests for HaloPSA configuration parsing."""
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from halodesk.core.config import Settings


def test_blank_halo_values_become_none():
    with patch.dict(os.environ, {"HALO_BASE_URL": "", "HALO_TENANT": "  ", "HALO_CLIENT_ID": ""}):
        settings = Settings()
        assert settings.halo_base_url is None
        assert settings.halo_tenant is None
        assert settings.halo_client_id is None


def test_defaults_for_duplicates_and_closing():
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings()
        assert settings.duplicate_lookback_hours == 72
        assert settings.duplicate_similarity_threshold == 0.7
        assert settings.halo_closed_status_id == 9
        assert settings.halo_request_timeout == 30.0


def test_threshold_must_be_a_fraction():
    with patch.dict(os.environ, {"DUPLICATE_SIMILARITY_THRESHOLD": "1.5"}):
        with pytest.raises(ValidationError):
            Settings()


def test_values_read_from_environment():
    with patch.dict(
        os.environ,
        {
            "HALO_BASE_URL": "https://acme.halopsa.com",
            "HALO_TENANT": "acme",
            "HALO_CLOSED_STATUS_ID": "12",
            "DUPLICATE_LOOKBACK_HOURS": "24",
        },
    ):
        settings = Settings()
        assert str(settings.halo_base_url).startswith("https://acme.halopsa.com")
        assert settings.halo_tenant == "acme"
        assert settings.halo_closed_status_id == 12
        assert settings.duplicate_lookback_hours == 24
