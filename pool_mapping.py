"""
Pool identity registry.

The PDFs never agree on what a pool is called ("Balboa Aquatics Center",
"BALBOA POOL", "Dr. Martin Luther King Jr.- Swimming Pool"). Every free-text
name is resolved to a stable pool id here, and nowhere else:

1. exact match of the normalized name against all known aliases
2. exact match after stripping filler words (pool, aquatics, center, ...)
3. fuzzy match on key-token overlap, accepted at POOL_MATCH_THRESHOLD

If a name doesn't resolve, add the spelling to the pool's aliases instead of
lowering the threshold: two different pools share words like "beach" or
"park" and a looser threshold starts merging them.
"""

import logging
import re
from dataclasses import dataclass, field

from constants import POOL_MATCH_THRESHOLD
from program_taxonomy import to_title_case

logger = logging.getLogger(__name__)

PUNCTUATION = re.compile(r"[.,\-–—:;!?'\"()\[\]{}]")
WHITESPACE = re.compile(r"\s+")
FILLER_WORDS = re.compile(r"\b(pool|aquatics?|center|swimming|community)\b")


@dataclass(frozen=True)
class PoolMeta:
    id: str
    short_name: str
    display_name: str
    aliases: list = field(default_factory=list)


POOLS = [
    PoolMeta(
        id="balboa",
        short_name="Balboa",
        display_name="Balboa Pool",
        aliases=["balboa", "balboa pool", "balboa aquatics center", "balboa aquatic center"],
    ),
    PoolMeta(
        id="coffman",
        short_name="Coffman",
        display_name="Coffman Pool",
        aliases=["coffman", "coffman pool", "coffman aquatics center", "coffman aquatic center"],
    ),
    PoolMeta(
        id="garfield",
        short_name="Garfield",
        display_name="Garfield Pool",
        aliases=["garfield", "garfield pool", "garfield aquatics center", "garfield aquatic center"],
    ),
    PoolMeta(
        id="hamilton",
        short_name="Hamilton",
        display_name="Hamilton Pool",
        aliases=["hamilton", "hamilton pool", "hamilton aquatics center", "hamilton aquatic center"],
    ),
    PoolMeta(
        id="mlk",
        short_name="MLK",
        display_name="MLK Pool",
        aliases=[
            "mlk",
            "mlk pool",
            "martin luther king",
            "martin luther king jr",
            "martin luther king jr.",
            "dr. martin luther king",
            "dr martin luther king",
            "dr. martin luther king jr",
            "dr martin luther king jr",
            "dr. martin luther king jr.",
            "dr martin luther king jr.",
            "dr. martin luther king jr- swimming pool",
            "dr. martin luther king jr.- swimming pool",
            "martin luther king jr pool",
            "martin luther king jr. pool",
            "martin luther king jr swimming pool",
            "martin luther king jr. swimming pool",
        ],
    ),
    PoolMeta(
        id="mission",
        short_name="Mission",
        display_name="Mission Pool",
        aliases=[
            "mission",
            "mission pool",
            "mission community pool",
            "mission aquatics center",
            "mission aquatic center",
        ],
    ),
    PoolMeta(
        id="northBeach",
        short_name="North Beach",
        display_name="North Beach Pool",
        aliases=[
            "north beach",
            "north beach pool",
            "north beach aquatics center",
            "north beach aquatic center",
            "north beach aquatics center - warm pool",
            "north beach aquatics center - cool pool",
        ],
    ),
    PoolMeta(
        id="rossi",
        short_name="Rossi",
        display_name="Rossi Pool",
        aliases=["rossi", "rossi pool", "rossi aquatics center", "rossi aquatic center"],
    ),
    PoolMeta(
        id="sava",
        short_name="Sava",
        display_name="Sava Pool",
        aliases=["sava", "sava pool", "sava aquatics center", "sava aquatic center"],
    ),
]


def normalize_for_match(name):
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    lowered = PUNCTUATION.sub(" ", (name or "").lower())
    return WHITESPACE.sub(" ", lowered).strip()


def strip_filler_words(normalized):
    return WHITESPACE.sub(" ", FILLER_WORDS.sub("", normalized)).strip()


def extract_key_tokens(name):
    """The words that actually identify a pool, e.g. {"north", "beach"}."""
    stripped = strip_filler_words(normalize_for_match(name))
    return [t for t in stripped.split(" ") if len(t) > 1]


def similarity(a, b):
    """Jaccard overlap of the key tokens of two names, between 0 and 1."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    a_tokens = set(extract_key_tokens(a))
    b_tokens = set(extract_key_tokens(b))
    if not a_tokens or not b_tokens:
        return 0.0
    return len(a_tokens & b_tokens) / len(a_tokens | b_tokens)


class PoolRegistry:
    """Lookup tables over a fixed list of pools, in declaration order."""

    def __init__(self, pools, threshold=POOL_MATCH_THRESHOLD):
        self.pools = list(pools)
        self.threshold = threshold
        self._by_id = {}
        self._by_name = {}
        for pool in self.pools:
            self._by_id[pool.id.lower()] = pool
            for name in [*pool.aliases, pool.display_name, pool.short_name]:
                self._by_name.setdefault(normalize_for_match(name), pool)

    def find_pool(self, raw_name):
        """Best matching PoolMeta for a free-text name, or None."""
        if not raw_name:
            return None

        normalized = normalize_for_match(raw_name)
        if not normalized:
            return None

        exact = self._by_name.get(normalized)
        if exact:
            return exact

        stripped = strip_filler_words(normalized)
        if stripped in self._by_name:
            return self._by_name[stripped]

        best_pool = None
        best_score = 0.0
        for pool in self.pools:
            for alias in pool.aliases:
                score = similarity(normalized, alias)
                # strictly greater, so ties go to the pool declared first
                if score > best_score:
                    best_score = score
                    best_pool = pool

        if best_score >= self.threshold:
            return best_pool
        return None

    def resolve(self, raw_name):
        """Pool id for a free-text name. Unmatched names are logged for alias curation."""
        pool = self.find_pool(raw_name)
        if pool is None:
            logger.warning('Failed to match pool name: "%s"', raw_name)
            return None
        return pool.id

    def get_pool_by_id(self, pool_id):
        if not pool_id:
            return None
        return self._by_id.get(pool_id.lower())

    def validate(self, pool_id):
        return self.get_pool_by_id(pool_id) is not None

    def all_ids(self):
        return [p.id for p in self.pools]

    def get_pool_by_short_name(self, short_name):
        for pool in self.pools:
            if pool.short_name.lower() == (short_name or "").lower():
                return pool
        return None

    def display_name(self, raw_name):
        pool = self.find_pool(raw_name)
        if pool:
            return pool.display_name
        return to_title_case(raw_name)

    def short_name(self, raw_name):
        pool = self.find_pool(raw_name)
        return pool.short_name if pool else None

    def position(self, pool_id):
        """Declaration index of a pool id, used to order the aggregate."""
        for i, pool in enumerate(self.pools):
            if pool.id == pool_id:
                return i
        return None


REGISTRY = PoolRegistry(POOLS)


def get_pool_id_from_name(name):
    return REGISTRY.resolve(name)


def get_pool_by_id(pool_id):
    return REGISTRY.get_pool_by_id(pool_id)


def validate_pool_id(pool_id):
    return REGISTRY.validate(pool_id)


def get_all_pool_ids():
    return REGISTRY.all_ids()


def get_all_pool_short_names():
    return [p.short_name for p in POOLS]
