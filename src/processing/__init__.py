from .tagger import (
    classify_category,
    clean_text,
    contains_any,
    extract_entity_ids,
    extract_tags,
    is_breaking_title,
    tag_article,
    tag_text,
)

__all__ = [
    "classify_category",
    "clean_text",
    "contains_any",
    "extract_entity_ids",
    "extract_tags",
    "is_breaking_title",
    "tag_article",
    "tag_text",
]
