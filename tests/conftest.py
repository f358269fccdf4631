from decimal import Decimal

import pytest

from homefaerie.heating_manager.config import Config
from homefaerie.heating_manager.session import MQTTSession
from homefaerie.shared.database import DBConfig
from homefaerie.shared.mqtt import MQTTConfig
from tests.fakes import FakeMQTTClient


@pytest.fixture
def mqtt_config():
    return MQTTConfig(broker="broker.local", port=1883, client_id="home-faerie-heating-manager-test123")


@pytest.fixture
def fake_client():
    return FakeMQTTClient()


@pytest.fixture
def session(mqtt_config, fake_client):
    return MQTTSession(mqtt_config, client=fake_client)


@pytest.fixture
def config(mqtt_config):
    return Config(
        db=DBConfig(host="localhost", user="", password="", database="sensors"),
        mqtt=mqtt_config,
        region="ee",
        threshold=Decimal("100.0"),
        markup=Decimal("1"),
        devices=("devA", "devB"),
        namespace="ns",
        publish_timeout=1.0,
        connect_timeout=1.0,
    )
