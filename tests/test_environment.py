import numpy as np
import pytest

from ecosphere_engine import config as cfg
from ecosphere_engine.environment import Disaster, DisasterKind, Environment, Season, Weather


def test_daylight_follows_the_hour():
    env = Environment(tick=cfg.DAWN_HOUR)
    assert env.is_daytime
    assert env.daylight == cfg.DAY_LIGHT_FACTOR
    env.tick = cfg.DUSK_HOUR
    assert not env.is_daytime
    assert env.daylight == cfg.NIGHT_LIGHT_FACTOR
    env.tick = cfg.DAY_LENGTH + 2
    assert env.hour == 2
    assert env.day == 1


def test_seasons_cycle():
    env = Environment()
    seen = []
    for season_index in range(5):
        env.tick = season_index * cfg.SEASON_LENGTH
        seen.append(env.season)
    assert seen == [Season.SPRING, Season.SUMMER, Season.AUTUMN, Season.WINTER, Season.SPRING]
    env.tick = 3 * cfg.SEASON_LENGTH
    assert env.upkeep_factor() == cfg.WINTER_UPKEEP_FACTOR


def test_weather_rerolls_when_its_timer_expires():
    rng = np.random.default_rng(1)
    env = Environment(weather_timer=1)
    env.advance(rng)
    assert cfg.WEATHER_DURATION_MIN <= env.weather_timer <= cfg.WEATHER_DURATION_MAX
    assert env.tick == 1


def test_weather_draws_every_state_over_time():
    rng = np.random.default_rng(2)
    env = Environment()
    seen = set()
    for _ in range(5000):
        env.advance(rng)
        seen.add(env.weather)
    assert seen == set(Weather)


def test_clock_only_advances_when_weather_is_off():
    env = Environment(weather_timer=1)
    env.advance(np.random.default_rng(0), roll_weather=False)
    assert env.tick == 1
    assert env.weather is Weather.CLEAR
    assert env.weather_timer == 1


def test_storm_slows_movement():
    env = Environment(weather=Weather.STORM)
    assert env.move_factor() == cfg.STORM_MOVE_FACTOR
    assert Environment().move_factor() == 1.0


def test_disasters_wait_for_the_cooldown():
    rng = np.random.default_rng(0)
    env = Environment(disaster_cooldown=5)
    for _ in range(100):
        assert env.maybe_trigger(rng, 10, 10) is None
    env.disaster_cooldown = 0
    triggered = None
    for _ in range(5000):
        triggered = env.maybe_trigger(rng, 10, 10)
        if triggered is not None:
            break
    assert triggered is not None
    assert env.disaster_cooldown == cfg.DISASTER_COOLDOWN
    assert cfg.DISASTER_RADIUS_MIN <= triggered.radius <= cfg.DISASTER_RADIUS_MAX
    assert 0 <= triggered.center[0] < 10 and 0 <= triggered.center[1] < 10


def test_update_disasters_counts_down_and_expires():
    env = Environment(disasters=[Disaster(DisasterKind.FIRE, (1, 1), 2, 2)])
    assert env.update_disasters() == []
    assert env.disasters[0].remaining == 1
    expired = env.update_disasters()
    assert len(expired) == 1
    assert env.disasters == []


def test_environment_round_trips_through_dict():
    env = Environment(tick=77, weather=Weather.RAIN, weather_timer=4,
                      disasters=[Disaster(DisasterKind.OUTBREAK, (3, 4), 2, 5)])
    restored = Environment.from_dict(env.to_dict())
    assert restored == env


def test_light_factor_combines_all_modifiers():
    # tick 84: noon on a summer day
    env = Environment(tick=84, weather=Weather.DROUGHT)
    assert env.season is Season.SUMMER and env.is_daytime
    expected = cfg.DAY_LIGHT_FACTOR * cfg.SEASON_LIGHT['summer'] * cfg.WEATHER_LIGHT['drought']
    assert env.light_factor() == pytest.approx(expected)
