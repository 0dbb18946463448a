from .aggregator import LeaderboardAggregator

__all__ = ['LeaderboardAggregator']
