"""Shared fixtures: every test runs against a Chicago-time configuration."""

import pytest
from dateutil import tz

from formant import configure, get_config, set_config

TIME_ZONE = "America/Chicago"


@pytest.fixture(autouse=True)
def chicago_config():
    """Pin the process configuration and restore the previous one afterwards."""
    previous = get_config()
    configure(time_zone=TIME_ZONE, default_locale="en", default_country="US")
    yield
    set_config(previous)


@pytest.fixture
def zone():
    return tz.gettz(TIME_ZONE)
