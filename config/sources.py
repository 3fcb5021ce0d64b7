# config/sources.py
# Football feed registry for the news pipeline
# ============================================

"""
Static catalogue of the feeds the pipeline monitors.

Every source belongs to one trust tier:
- official: governing bodies, leagues and clubs (the primary record)
- tier1: national broadcasters and broadsheets with verified reporting
- tier2: established football outlets
- tier3: aggregators and tabloids, useful for volume but lower trust

Fields per source:
- name / url: display name and RSS or Atom endpoint
- tier: one of the tiers above
- base_trust_score: optional explicit trust; falls back to the tier table
- active: inactive sources are kept for reference but never fetched
- focus: the kind of news the feed mostly carries
"""

from urllib.parse import urlparse

SOURCE_TIERS = ("official", "tier1", "tier2", "tier3")

# Official sources
# ================

OFFICIAL_SOURCES = {
    "premier_league": {
        "name": "Premier League",
        "url": "https://www.premierleague.com/rss/news",
        "tier": "official",
        "base_trust_score": 100,
        "active": True,
        "focus": "general",
    },
    "uefa": {
        "name": "UEFA",
        "url": "https://www.uefa.com/rssfeed/news/rss.xml",
        "tier": "official",
        "base_trust_score": 100,
        "active": True,
        "focus": "general",
    },
    "fifa": {
        "name": "FIFA",
        "url": "https://www.fifa.com/rss/index.xml",
        "tier": "official",
        "base_trust_score": 100,
        "active": True,
        "focus": "general",
    },
    "bundesliga": {
        "name": "Bundesliga",
        "url": "https://www.bundesliga.com/en/news/rss",
        "tier": "official",
        "base_trust_score": 100,
        "active": False,  # feed intermittently returns HTML
        "focus": "general",
    },
}

# Tier 1: broadcasters and broadsheets
# ====================================

TIER1_SOURCES = {
    "bbc_sport": {
        "name": "BBC Sport",
        "url": "https://feeds.bbci.co.uk/sport/football/rss.xml",
        "tier": "tier1",
        "base_trust_score": 95,
        "active": True,
        "focus": "general",
    },
    "sky_sports": {
        "name": "Sky Sports",
        "url": "https://www.skysports.com/rss/12040",
        "tier": "tier1",
        "base_trust_score": 95,
        "active": True,
        "focus": "general",
    },
    "the_guardian": {
        "name": "The Guardian",
        "url": "https://www.theguardian.com/football/rss",
        "tier": "tier1",
        "base_trust_score": 90,
        "active": True,
        "focus": "analysis",
    },
    "the_athletic": {
        "name": "The Athletic",
        "url": "https://theathletic.com/soccer/rss/",
        "tier": "tier1",
        "base_trust_score": 95,
        "active": True,
        "focus": "analysis",
    },
    "espn": {
        "name": "ESPN",
        "url": "https://www.espn.com/espn/rss/soccer/news",
        "tier": "tier1",
        "base_trust_score": 90,
        "active": True,
        "focus": "general",
    },
    "the_independent": {
        "name": "The Independent",
        "url": "https://www.independent.co.uk/sport/football/rss",
        "tier": "tier1",
        "base_trust_score": 90,
        "active": True,
        "focus": "general",
    },
    "telegraph": {
        "name": "The Telegraph",
        "url": "https://www.telegraph.co.uk/football/rss.xml",
        "tier": "tier1",
        "base_trust_score": 90,
        "active": True,
        "focus": "general",
    },
}

# Tier 2: established football outlets
# ====================================

TIER2_SOURCES = {
    "ninety_min": {
        "name": "90min",
        "url": "https://www.90min.com/posts.rss",
        "tier": "tier2",
        "active": True,
        "focus": "general",
    },
    "talksport": {
        "name": "talkSPORT",
        "url": "https://talksport.com/football/feed/",
        "tier": "tier2",
        "active": True,
        "focus": "general",
    },
    "fourfourtwo": {
        "name": "FourFourTwo",
        "url": "https://www.fourfourtwo.com/rss",
        "tier": "tier2",
        "active": True,
        "focus": "analysis",
    },
    "football_london": {
        "name": "Football London",
        "url": "https://www.football.london/rss.xml",
        "tier": "tier2",
        "base_trust_score": 85,
        "active": True,
        "focus": "general",
    },
    "transfermarkt": {
        "name": "Transfermarkt",
        "url": "https://www.transfermarkt.com/rss/news",
        "tier": "tier2",
        "base_trust_score": 85,
        "active": True,
        "focus": "transfer",
    },
}

# Tier 3: aggregators and tabloids
# ================================

TIER3_SOURCES = {
    "mirror_football": {
        "name": "Mirror Football",
        "url": "https://www.mirror.co.uk/sport/football/rss.xml",
        "tier": "tier3",
        "active": True,
        "focus": "transfer",
    },
    "soccer_news": {
        "name": "Soccer News",
        "url": "https://www.soccernews.com/feed",
        "tier": "tier3",
        "active": True,
        "focus": "general",
    },
    "football_transfers": {
        "name": "Football Transfers",
        "url": "https://www.footballtransfers.com/en/feed",
        "tier": "tier3",
        "active": True,
        "focus": "transfer",
    },
    "goal": {
        "name": "Goal.com",
        "url": "https://www.goal.com/feeds/en/news",
        "tier": "tier3",
        "base_trust_score": 60,
        "active": True,
        "focus": "general",
    },
    "daily_mail": {
        "name": "Daily Mail Football",
        "url": "https://www.dailymail.co.uk/sport/football/index.rss",
        "tier": "tier3",
        "active": False,
        "focus": "transfer",
    },
}

ALL_SOURCES = {
    **OFFICIAL_SOURCES,
    **TIER1_SOURCES,
    **TIER2_SOURCES,
    **TIER3_SOURCES,
}

# Per-domain trust overrides
# ==========================
# Checked against the article link first, then the feed URL. Suffix match on
# the hostname so "www." and regional subdomains resolve to the same entry.

DOMAIN_TRUST_OVERRIDES = {
    "premierleague.com": 100,
    "uefa.com": 100,
    "fifa.com": 100,
    "manutd.com": 100,
    "liverpoolfc.com": 100,
    "mancity.com": 100,
    "chelseafc.com": 100,
    "arsenal.com": 100,
    "tottenhamhotspur.com": 100,
    "realmadrid.com": 100,
    "fcbarcelona.com": 100,
    "bbc.co.uk": 95,
    "bbc.com": 95,
    "skysports.com": 95,
    "theathletic.com": 95,
    "reuters.com": 90,
    "telegraph.co.uk": 90,
    "theguardian.com": 90,
    "espn.com": 85,
    "football.london": 85,
    "manchestereveningnews.co.uk": 85,
    "transfermarkt.com": 85,
    "standard.co.uk": 80,
    "goal.com": 75,
    "90min.com": 70,
    "mirror.co.uk": 65,
    "dailymail.co.uk": 60,
    "thesun.co.uk": 55,
    "express.co.uk": 55,
}


def domain_trust_override(url):
    """Return the override for the hostname of ``url`` or None."""
    host = (urlparse(url or "").hostname or "").lower()
    if not host:
        return None
    for domain, score in DOMAIN_TRUST_OVERRIDES.items():
        if host == domain or host.endswith("." + domain):
            return score
    return None


def get_active_sources(source_ids=None):
    """
    Active sources, optionally restricted to ``source_ids``.
    Unknown ids are ignored so a stale CLI argument never aborts a run.
    """
    selected = ALL_SOURCES if not source_ids else {
        source_id: ALL_SOURCES[source_id]
        for source_id in source_ids
        if source_id in ALL_SOURCES
    }
    return {
        source_id: source_config
        for source_id, source_config in selected.items()
        if source_config.get("active", True)
    }


def get_sources_by_tier(tier):
    return {
        source_id: source_config
        for source_id, source_config in ALL_SOURCES.items()
        if source_config["tier"] == tier
    }


def validate_sources():
    """Check every registry entry and return the number validated."""
    required_fields = ["name", "url", "tier"]

    for source_id, source_config in ALL_SOURCES.items():
        for field in required_fields:
            if field not in source_config:
                raise ValueError(f"Source {source_id} is missing field {field}")

        if source_config["tier"] not in SOURCE_TIERS:
            raise ValueError(f"Source {source_id} has unknown tier {source_config['tier']}")

        trust = source_config.get("base_trust_score")
        if trust is not None and not 0 <= trust <= 100:
            raise ValueError(f"Trust of {source_id} must be between 0 and 100")

        url = source_config["url"]
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"URL of {source_id} is not valid: {url}")

    return len(ALL_SOURCES)
