import pytest

from fake_relay import FakeRelay
from pigg.infrastructure.gpio.fake_hardware import FakeHardware
from pigg.infrastructure.transport.identity import generate_identity


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def hardware():
    return FakeHardware()


@pytest.fixture
def server_identity():
    return generate_identity()


@pytest.fixture
def client_identity():
    return generate_identity()
