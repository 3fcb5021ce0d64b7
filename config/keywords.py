# config/keywords.py
# Keyword and alias tables used by the tagger, scorer and deduplicator
# =====================================================================

"""
Pure data. The functions in ``src.processing.tagger``, ``src.scoring`` and
``src.dedup`` read these tables and never embed keywords themselves, so a new
alias or a retuned list is a one-line change here.

All entries are lower case. Matching is done on word boundaries, so an entry
only matches whole words or phrases (``"loan"`` does not match ``"loaned"``;
list inflections explicitly).
"""

# Category detection
# ==================
# Evaluated in this order; the first family with a hit wins.

CATEGORY_PRECEDENCE = ("transfer", "injury", "match")
DEFAULT_CATEGORY = "general"

CATEGORY_KEYWORDS = {
    "transfer": (
        "transfer",
        "transfers",
        "signs",
        "signed",
        "signing",
        "moves to",
        "joins",
        "joined",
        "loan",
        "deal",
        "medical",
        "here we go",
        "bid",
    ),
    "injury": (
        "injury",
        "injuries",
        "injured",
        "sidelined",
        "out for",
        "recovery",
        "fitness",
        "ruled out",
        "hamstring",
    ),
    "match": (
        "vs",
        "v",
        "match",
        "win",
        "wins",
        "draw",
        "defeat",
        "beat",
        "beats",
        "score",
        "goal",
        "goals",
        "lineup",
        "line-up",
        "result",
        "highlights",
    ),
}

# Tags
# ====
# One tag per keyword family hit; independent of the chosen category.

TAG_KEYWORDS = {
    "Transfer": ("transfer", "signs", "signing", "joins", "loan"),
    "Injury": ("injury", "injured", "sidelined"),
    "Match": ("match", "vs", "lineup", "result"),
    "Goal": ("goal", "goals", "scores", "scored"),
}

# Entity aliases
# ==============
# Ids follow the API-Football numbering used by the rest of the platform.

TEAM_ALIASES = {
    33: ("manchester united", "man utd", "man united"),
    40: ("liverpool",),
    42: ("arsenal",),
    47: ("tottenham", "spurs"),
    49: ("chelsea",),
    50: ("manchester city", "man city"),
    85: ("psg", "paris saint-germain", "paris saint germain"),
    157: ("bayern munich", "bayern"),
    165: ("borussia dortmund", "dortmund"),
    489: ("ac milan", "milan"),
    496: ("juventus", "juve"),
    505: ("inter milan", "inter"),
    529: ("barcelona", "barca"),
    530: ("atletico madrid", "atletico"),
    541: ("real madrid",),
}

LEAGUE_ALIASES = {
    2: ("champions league",),
    3: ("europa league",),
    39: ("premier league",),
    61: ("ligue 1",),
    78: ("bundesliga",),
    135: ("serie a",),
    140: ("la liga", "laliga"),
}

LEAGUE_TAGS = {
    2: "Champions League",
    3: "Europa League",
    39: "Premier League",
    61: "Ligue 1",
    78: "Bundesliga",
    135: "Serie A",
    140: "La Liga",
}

PLAYER_ALIASES = {
    154: ("messi", "lionel messi"),
    184: ("harry kane",),
    278: ("mbappe", "mbappé", "kylian mbappe"),
    306: ("mohamed salah", "salah"),
    521: ("lewandowski",),
    629: ("de bruyne",),
    874: ("cristiano ronaldo",),
    1100: ("haaland", "erling haaland"),
}

# Trust language
# ==============

OFFICIAL_TERMS = ("official", "officially", "confirmed", "confirms", "announced", "announces")
BREAKING_TERMS = ("breaking", "exclusive")
SPECULATIVE_TERMS = (
    "rumour",
    "rumours",
    "rumor",
    "rumors",
    "speculation",
    "could",
    "might",
    "reportedly",
    "interested",
    "monitoring",
)

# Flag set on the article itself when present in the title.
BREAKING_TITLE_TERMS = ("breaking",)

# Deduplication
# =============

STOPWORDS = frozenset(
    {
        "the",
        "a",
        "an",
        "and",
        "or",
        "but",
        "in",
        "on",
        "at",
        "to",
        "for",
        "of",
        "with",
        "from",
        "by",
        "as",
        "is",
        "are",
        "was",
        "were",
        "has",
        "have",
        "had",
        "his",
        "her",
        "their",
        "its",
        "after",
        "over",
        "this",
        "that",
        "will",
        "new",
    }
)
