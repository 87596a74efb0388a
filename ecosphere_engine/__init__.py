# ecosphere_engine: cellular-automaton ecosystem simulation core

from .config import WorldSettings
from .entity import EntityType, LifeStage
from .environment import DisasterKind, Season, Weather
from .persistence import LoadResult
from .world import Snapshot, World

__all__ = [
    'World', 'WorldSettings', 'Snapshot', 'LoadResult',
    'EntityType', 'LifeStage', 'DisasterKind', 'Season', 'Weather',
]
