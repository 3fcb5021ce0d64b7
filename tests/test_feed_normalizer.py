from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import FIXED_NOW, atom_feed, rss_feed, rss_item
from src.collectors.feed_normalizer import FeedParseError, normalize_feed


def test_rss_items_become_raw_articles() -> None:
    published = datetime(2026, 5, 16, 9, 30, tzinfo=timezone.utc)
    body = rss_feed(
        [
            rss_item(
                "Arsenal beat Chelsea",
                "https://www.bbc.co.uk/sport/football/1",
                description="<p>Saka scored twice.</p>",
                published=published,
                guid="bbc-1",
                extra="<category>Premier League</category>",
            )
        ]
    )
    (article,) = normalize_feed(body, "bbc_sport", now=FIXED_NOW)

    assert article["title"] == "Arsenal beat Chelsea"
    assert article["url"] == "https://www.bbc.co.uk/sport/football/1"
    assert article["guid"] == "bbc-1"
    assert "Saka scored twice." in article["description"]
    assert article["published_at"] == published
    assert article["source_id"] == "bbc_sport"
    assert article["feed_tags"] == ["Premier League"]
    assert article["image_url"] is None


def test_atom_entries_use_alternate_link_and_updated() -> None:
    body = atom_feed(
        [
            {
                "title": "Bayern win the Bundesliga",
                "link": "https://www.espn.com/soccer/story/9",
                "id": "tag:espn.com,2026:9",
                "updated": "2026-05-16T08:00:00Z",
                "summary": "Another title for Bayern.",
            }
        ]
    )
    (article,) = normalize_feed(body, "espn", now=FIXED_NOW)
    assert article["url"] == "https://www.espn.com/soccer/story/9"
    assert article["guid"] == "tag:espn.com,2026:9"
    assert article["published_at"] == datetime(2026, 5, 16, 8, 0, tzinfo=timezone.utc)
    assert article["description"] == "Another title for Bayern."


def test_missing_or_future_dates_become_now() -> None:
    body = rss_feed(
        [
            rss_item("No date here", "https://example.com/a"),
            rss_item(
                "From the future",
                "https://example.com/b",
                published=FIXED_NOW + timedelta(days=2),
            ),
        ]
    )
    articles = normalize_feed(body, "goal", now=FIXED_NOW)
    assert [article["published_at"] for article in articles] == [FIXED_NOW, FIXED_NOW]
    assert articles[0]["guid"] == "https://example.com/a"


def test_items_without_title_or_absolute_link_are_skipped() -> None:
    body = rss_feed(
        [
            "<item><link>https://example.com/untitled</link></item>",
            "<item><title>No link at all</title></item>",
            rss_item("Wrong scheme", "ftp://files.example.com/story"),
            rss_item("Kept", "https://example.com/kept"),
        ]
    )
    articles = normalize_feed(body, "goal", now=FIXED_NOW)
    assert [article["title"] for article in articles] == ["Kept"]


def test_max_items_applies_before_filtering() -> None:
    items = ["<item><link>https://example.com/untitled</link></item>"]
    items += [rss_item(f"Story {n}", f"https://example.com/{n}") for n in range(30)]
    articles = normalize_feed(rss_feed(items), "goal", max_items=20, now=FIXED_NOW)
    assert len(articles) == 19
    assert articles[-1]["title"] == "Story 18"


@pytest.mark.parametrize(
    ("extra", "description", "expected"),
    [
        ('<media:content url="https://img.example.com/a.jpg" medium="image"/>', "", "https://img.example.com/a.jpg"),
        ('<enclosure url="https://img.example.com/b.jpg" type="image/jpeg" length="10"/>', "", "https://img.example.com/b.jpg"),
        ("", '<img src="https://img.example.com/c.png"/> Team news', "https://img.example.com/c.png"),
    ],
)
def test_image_url_sources(extra: str, description: str, expected: str) -> None:
    body = rss_feed(
        [rss_item("Team news", "https://example.com/team", description=description, extra=extra)]
    )
    (article,) = normalize_feed(body, "goal", now=FIXED_NOW)
    assert article["image_url"] == expected


def test_empty_feed_returns_no_articles() -> None:
    assert normalize_feed(rss_feed([]), "goal", now=FIXED_NOW) == []


def test_unrecoverable_body_raises() -> None:
    with pytest.raises(FeedParseError):
        normalize_feed("this is not a feed at all", "goal", now=FIXED_NOW)


def test_recoverable_markup_is_accepted() -> None:
    body = rss_feed(["<item><title>Arsenal & Chelsea</title><link>https://example.com/x</link></item>"])
    articles = normalize_feed(body, "goal", now=FIXED_NOW)
    assert len(articles) == 1
