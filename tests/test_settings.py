import dataclasses

from shimmer import ControllerSettings


def test_declared_public_interface_and_promised_defaults():
    settings = ControllerSettings()
    assert settings.queueing.workers == 5
    assert settings.queueing.exit_timeout == 2.0
    assert settings.backoff.base_delay == 5.0
    assert settings.backoff.max_delay == 300.0
    assert settings.syncing.timeout is None
    assert settings.syncing.poll_interval == 0.1


def test_settings_are_not_shared():
    settings1 = ControllerSettings()
    settings2 = ControllerSettings()
    settings1.queueing.workers = 10
    assert settings2.queueing.workers == 5


def test_settings_can_be_replaced_partially():
    settings = ControllerSettings()
    settings = dataclasses.replace(settings, backoff=dataclasses.replace(settings.backoff, base_delay=1))
    assert settings.backoff.base_delay == 1
    assert settings.backoff.max_delay == 300.0
