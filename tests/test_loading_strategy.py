# tests/test_loading_strategy.py

import pytest
from core.loading_strategy import (
    ConnectionSpeed,
    ConstantSpeedProvider,
    EnvironmentSpeedProvider,
    LoadingStrategy,
    MissingStrategyError,
    StrategyCatalog,
)


@pytest.mark.parametrize("effective_type, expected", [
    ('slow-2g', ConnectionSpeed.SLOW),
    ('2g', ConnectionSpeed.SLOW),
    ('3g', ConnectionSpeed.MEDIUM),
    (' 3G ', ConnectionSpeed.MEDIUM),
    ('2G', ConnectionSpeed.SLOW),
    ('4g', ConnectionSpeed.FAST),
    (None, ConnectionSpeed.FAST),
])
def test_detect_connection_speed(effective_type, expected):
    catalog = StrategyCatalog(ConstantSpeedProvider(effective_type))

    assert catalog.connection_speed == expected


def test_detection_can_be_rerun(monkeypatch):
    monkeypatch.setenv('PRELOADER_EFFECTIVE_TYPE', '3g')
    catalog = StrategyCatalog(EnvironmentSpeedProvider())
    assert catalog.connection_speed == ConnectionSpeed.MEDIUM

    monkeypatch.setenv('PRELOADER_EFFECTIVE_TYPE', '2G')
    assert catalog.detect_connection_speed() == ConnectionSpeed.SLOW

    monkeypatch.delenv('PRELOADER_EFFECTIVE_TYPE')
    assert catalog.detect_connection_speed() == ConnectionSpeed.FAST


def test_slow_images_are_less_aggressive():
    catalog = StrategyCatalog()

    catalog.update_connection_speed('slow')
    slow = catalog.get_strategy('image')
    catalog.update_connection_speed(ConnectionSpeed.FAST)
    fast = catalog.get_strategy('image')

    assert slow.quality < fast.quality
    assert slow.root_margin < fast.root_margin
    assert slow.animation_delay > fast.animation_delay


def test_component_stagger_grows_as_speed_drops():
    catalog = StrategyCatalog()
    staggers = []
    for speed in ('fast', 'medium', 'slow'):
        catalog.update_connection_speed(speed)
        staggers.append(catalog.get_strategy('component').stagger_delay)

    assert staggers == sorted(staggers)
    assert staggers[0] < staggers[-1]


def test_falls_back_to_medium():
    data_medium = LoadingStrategy(threshold=0.2, root_margin=10, animation_delay=0)
    catalog = StrategyCatalog(strategies={'data-medium': data_medium})
    catalog.update_connection_speed('slow')

    assert catalog.get_strategy('data') is data_medium


def test_missing_strategy_raises():
    catalog = StrategyCatalog()

    with pytest.raises(MissingStrategyError):
        catalog.get_strategy('route')


def test_validate_reports_unseeded_types():
    catalog = StrategyCatalog()
    catalog.validate()

    catalog.set_custom_strategy(
        'route-fast', LoadingStrategy(threshold=0.1, root_margin=0, animation_delay=0)
    )
    with pytest.raises(MissingStrategyError, match='route-slow'):
        catalog.validate(['component', 'image', 'route'])


def test_custom_strategy_overrides_default():
    catalog = StrategyCatalog()
    custom = LoadingStrategy(threshold=0.5, root_margin=300, animation_delay=0, quality=95)

    catalog.set_custom_strategy('image-fast', custom)

    assert catalog.get_strategy('image') == custom
    assert catalog.get_strategy('image').root_margin_css == '300px'


def test_invalid_speed_rejected():
    with pytest.raises(ValueError):
        StrategyCatalog().update_connection_speed('warp')


def test_strategy_from_dict():
    strategy = LoadingStrategy.from_dict({'threshold': 0.1, 'root_margin': 40, 'animation_delay': 5})
    assert strategy.to_dict() == {'threshold': 0.1, 'root_margin': 40, 'animation_delay': 5}

    with pytest.raises(ValueError):
        LoadingStrategy.from_dict({'threshold': 0.1, 'rootMargin': 40, 'animation_delay': 5})
