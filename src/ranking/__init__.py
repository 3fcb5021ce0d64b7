from .ranker import PersonalizedRanker, apply_translation, compare_ranked, rank_articles

__all__ = ["PersonalizedRanker", "apply_translation", "compare_ranked", "rank_articles"]
