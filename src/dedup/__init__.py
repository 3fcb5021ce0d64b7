from .clusterer import (
    ArticleClusterer,
    cluster_articles,
    deduplicate,
    extract_keywords,
    is_similar,
    keyword_overlap,
    quality_score,
    title_jaccard,
)

__all__ = [
    "ArticleClusterer",
    "cluster_articles",
    "deduplicate",
    "extract_keywords",
    "is_similar",
    "keyword_overlap",
    "quality_score",
    "title_jaccard",
]
