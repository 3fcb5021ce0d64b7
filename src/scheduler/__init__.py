from .scheduler import CollectionScheduler

__all__ = ["CollectionScheduler"]
