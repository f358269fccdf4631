import logging
from decimal import Decimal

import pytest

from homefaerie.heating_manager import main
from homefaerie.heating_manager.manager import EXIT_FAILURE, EXIT_OK, HeatingManager
from homefaerie.heating_manager.session import MQTTSession, SessionState
from homefaerie.shared.database import DatabaseConnectionError, PriceLookupError
from tests.fakes import FakeMQTTClient, FakePriceSource


class SessionFactory:
    """Builds sessions around a fake client and remembers them."""

    def __init__(self, client: FakeMQTTClient):
        self.client = client
        self.sessions = []

    def __call__(self, mqtt_config):
        session = MQTTSession(mqtt_config, client=self.client)
        self.sessions.append(session)
        return session


def make_manager(config, price_source, client):
    factory = SessionFactory(client)
    return HeatingManager(config, price_source=price_source, session_factory=factory), factory


class TestHeatingManagerRun:
    @pytest.mark.asyncio
    async def test_cheap_power_turns_heaters_on(self, config, caplog):
        client = FakeMQTTClient()
        prices = FakePriceSource(Decimal("80.00"))
        manager, factory = make_manager(config, prices, client)

        with caplog.at_level(logging.INFO):
            exit_code = await manager.run()

        assert exit_code == EXIT_OK
        assert [(m.topic, m.payload) for m in client.published] == [
            ("ns/devA/set", b'{"state":"ON"}'),
            ("ns/devB/set", b'{"state":"ON"}'),
        ]
        assert factory.sessions[0].state is SessionState.CLOSED
        assert client.calls[-2:] == ["disconnect", "loop_stop"]
        assert prices.regions == ["ee"]
        assert prices.closed
        assert "Current price: 80.0000, heater status: ON" in caplog.text

    @pytest.mark.asyncio
    async def test_expensive_power_turns_heaters_off(self, config):
        client = FakeMQTTClient()
        manager, _ = make_manager(config, FakePriceSource(Decimal("150.00")), client)

        assert await manager.run() == EXIT_OK
        assert [m.payload for m in client.published] == [b'{"state":"OFF"}', b'{"state":"OFF"}']

    @pytest.mark.asyncio
    async def test_markup_is_applied_before_deciding(self, config):
        config.markup = Decimal("1.2")
        client = FakeMQTTClient()
        manager, _ = make_manager(config, FakePriceSource(Decimal("90.00")), client)

        assert await manager.run() == EXIT_OK
        assert client.published[0].payload == b'{"state":"OFF"}'

    @pytest.mark.asyncio
    async def test_decision_uses_unrounded_price(self, config, caplog):
        config.markup = Decimal("1.2")
        client = FakeMQTTClient()
        manager, _ = make_manager(config, FakePriceSource(Decimal("83.33334")), client)

        with caplog.at_level(logging.INFO):
            assert await manager.run() == EXIT_OK

        assert client.published[0].payload == b'{"state":"OFF"}'
        assert "Current price: 100.0000, heater status: OFF" in caplog.text

    @pytest.mark.asyncio
    async def test_all_commands_are_sent_before_cancel(self, config):
        client = FakeMQTTClient()
        manager, factory = make_manager(config, FakePriceSource(Decimal("80.00")), client)
        published_at_cancel = []

        def build(mqtt_config):
            session = MQTTSession(mqtt_config, client=client)
            original = session.cancel

            def cancel():
                published_at_cancel.append(len(client.published))
                original()

            session.cancel = cancel
            factory.sessions.append(session)
            return session

        manager.session_factory = build

        assert await manager.run() == EXIT_OK
        assert published_at_cancel == [len(config.devices)]

    @pytest.mark.asyncio
    async def test_database_unreachable_never_opens_mqtt(self, config, caplog):
        client = FakeMQTTClient()
        prices = FakePriceSource(error=DatabaseConnectionError("Can't connect to MySQL server"))
        manager, factory = make_manager(config, prices, client)

        assert await manager.run() == EXIT_FAILURE
        assert factory.sessions == []
        assert client.calls == []
        assert "Unable to connect to database" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_price_never_opens_mqtt(self, config, caplog):
        client = FakeMQTTClient()
        prices = FakePriceSource(error=PriceLookupError("No current price for region 'ee'"))
        manager, factory = make_manager(config, prices, client)

        assert await manager.run() == EXIT_FAILURE
        assert factory.sessions == []
        assert prices.closed
        assert "Unable to look up price" in caplog.text

    @pytest.mark.asyncio
    async def test_second_publish_failure_fails_the_run(self, config):
        client = FakeMQTTClient(rejected=[1])
        manager, factory = make_manager(config, FakePriceSource(Decimal("80.00")), client)

        assert await manager.run() == EXIT_FAILURE

        session = factory.sessions[0]
        assert len(client.published) == 2
        assert not session.cancel_requested
        assert session.state is SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_broker_refusal_fails_the_run(self, config):
        client = FakeMQTTClient(refuse=True)
        manager, factory = make_manager(config, FakePriceSource(Decimal("80.00")), client)

        assert await manager.run() == EXIT_FAILURE
        assert client.published == []
        assert factory.sessions[0].state is SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_connection_lost_mid_run_fails_the_run(self, config):
        client = FakeMQTTClient(unacknowledged=[0])
        original_publish = client.publish

        def publish_then_drop(*args, **kwargs):
            info = original_publish(*args, **kwargs)
            client.drop_connection()
            return info

        client.publish = publish_then_drop
        manager, factory = make_manager(config, FakePriceSource(Decimal("80.00")), client)

        assert await manager.run() == EXIT_FAILURE
        assert len(client.published) == 1
        assert not factory.sessions[0].cancel_requested


class TestMain:
    @pytest.fixture(autouse=True)
    def quiet_logging_setup(self, monkeypatch):
        monkeypatch.setattr("homefaerie.shared.logging.setup_logging", lambda *args, **kwargs: None)

    def test_invalid_configuration_exits_nonzero(self, monkeypatch):
        def broken_config():
            raise ValueError("Unsupported database URL scheme: 'postgresql'")

        monkeypatch.setattr("homefaerie.heating_manager.config.load_config", broken_config)

        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == EXIT_FAILURE

    def test_config_file_with_wrong_shape_exits_nonzero(self, monkeypatch, tmp_path, caplog):
        path = tmp_path / "heating-manager.yaml"
        path.write_text("- a\n- b\n")
        monkeypatch.setenv("HEATING_MANAGER_CONFIG", str(path))

        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == EXIT_FAILURE
        assert "Invalid configuration" in caplog.text

    @pytest.mark.parametrize("exit_code", [EXIT_OK, EXIT_FAILURE])
    def test_exit_code_comes_from_the_run(self, monkeypatch, config, exit_code):
        class StubManager:
            def __init__(self, config):
                self.config = config

            async def run(self):
                return exit_code

        monkeypatch.setattr("homefaerie.heating_manager.config.load_config", lambda: config)
        monkeypatch.setattr("homefaerie.heating_manager.HeatingManager", StubManager)

        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == exit_code
